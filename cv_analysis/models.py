from __future__ import annotations  # CV records, validation results and reports

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SkillKind = Literal["technical", "soft"]


class CvStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSED = "processed"


class CvRecord(BaseModel):  # Registered CV text owned by one candidate
    cv_id: str
    candidate_id: str
    filename: str
    content: str
    status: CvStatus = CvStatus.UPLOADED
    uploaded_at: datetime
    processed_at: Optional[datetime] = None


class ContentValidation(BaseModel):
    is_valid: bool
    score: int
    warnings: List[str] = Field(default_factory=list)
    fields: Dict[str, bool] = Field(default_factory=dict)


class CompletenessItem(BaseModel):
    field: str
    weight: int
    completed: bool
    points: int


class Completeness(BaseModel):
    score: int
    breakdown: List[CompletenessItem] = Field(default_factory=list)


class CvAnalysis(BaseModel):  # Structured reading of a CV, AI or heuristic
    strengths: List[str] = Field(default_factory=list)
    technical_skills: List[str] = Field(default_factory=list)
    soft_skills: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    experience_summary: str = ""
    education_summary: str = ""


class Skill(BaseModel):
    name: str
    kind: SkillKind


class CvReport(BaseModel):
    cv_id: str
    candidate_id: str
    validation: ContentValidation
    completeness: Completeness
    analysis: CvAnalysis
    skills: List[Skill] = Field(default_factory=list)
    ai_available: bool
    created_at: datetime


__all__ = [
    "Completeness",
    "CompletenessItem",
    "ContentValidation",
    "CvAnalysis",
    "CvRecord",
    "CvReport",
    "CvStatus",
    "Skill",
    "SkillKind",
]
