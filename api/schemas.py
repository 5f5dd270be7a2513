"""Pydantic schemas for the interview session and CV APIs."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from interview_evaluation import Evaluation
from interview_session.models import Difficulty, InterviewSession, SessionState, SubjectArea, Turn
from services.scoring import InteractionStats, SessionListSummary


class StartReq(BaseModel):
    subject_area_id: int
    difficulty: Optional[str] = None


class MessageReq(BaseModel):
    session_id: str
    text: Optional[str] = None


class SessionRef(BaseModel):
    session_id: str


class StartResp(BaseModel):
    session_id: str
    subject_area: SubjectArea
    difficulty: Difficulty
    state: SessionState
    opening_message: str
    ai_available: bool


class MessageResp(BaseModel):
    session_id: str
    reply: str
    state: SessionState
    turn_counts: Dict[str, int]
    ai_available: bool


class FinalizeResp(BaseModel):
    session_id: str
    state: SessionState
    evaluation: Evaluation
    statistics: InteractionStats
    duration_minutes: Optional[int] = None
    ai_available: bool


class AbandonResp(BaseModel):
    session_id: str
    state: SessionState


class SessionDetail(BaseModel):  # Full session including history, returned to the owner only
    session_id: str
    subject_area_id: int
    difficulty: Difficulty
    state: SessionState
    history: List[Turn] = Field(default_factory=list)
    score: Optional[float] = None
    performance_level: Optional[str] = None
    strengths: Optional[List[str]] = None
    improvement_areas: Optional[List[str]] = None
    final_comment: Optional[str] = None
    duration_minutes: Optional[int] = None
    evaluation: Optional[Dict[str, Any]] = None
    ai_evaluated: Optional[bool] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class SessionListItem(BaseModel):  # Session summary without history
    session_id: str
    subject_area_id: int
    difficulty: Difficulty
    state: SessionState
    score: Optional[float] = None
    performance_level: Optional[str] = None
    duration_minutes: Optional[int] = None
    turns: int
    started_at: datetime
    completed_at: Optional[datetime] = None


class SessionListResp(BaseModel):
    sessions: List[SessionListItem] = Field(default_factory=list)
    summary: SessionListSummary


class CandidateReq(BaseModel):
    full_name: str = Field(min_length=1)
    email: Optional[str] = None


class CvUploadReq(BaseModel):
    filename: str
    content: str


class CvSummary(BaseModel):
    cv_id: str
    filename: str
    status: str
    uploaded_at: datetime
    processed_at: Optional[datetime] = None


def session_detail(session: InterviewSession) -> SessionDetail:
    data = session.model_dump(exclude={"candidate_id", "version", "updated_at", "history"})
    return SessionDetail(history=session.conversation(), **data)


def session_list_item(session: InterviewSession) -> SessionListItem:
    return SessionListItem(
        session_id=session.session_id,
        subject_area_id=session.subject_area_id,
        difficulty=session.difficulty,
        state=session.state,
        score=session.score,
        performance_level=session.performance_level,
        duration_minutes=session.duration_minutes,
        turns=session.turn_counts()["total"],
        started_at=session.started_at,
        completed_at=session.completed_at,
    )
