from __future__ import annotations  # Interview session domain models

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

TurnRole = Literal["user", "assistant", "system"]
CONVERSATION_ROLES = ("user", "assistant")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):  # Interview difficulty, fixed per session
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SessionState(str, Enum):  # Lifecycle states of an interview session
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_open(self) -> bool:
        return self in OPEN_STATES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


OPEN_STATES = frozenset({SessionState.STARTED, SessionState.IN_PROGRESS})
TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.ABANDONED})


class SubjectArea(BaseModel):  # Career track an interview simulates
    subject_area_id: int
    name: str
    area: str
    description: str = ""
    duration_years: int = 3
    competencies: List[str] = Field(default_factory=list)


class Turn(BaseModel):  # One stored conversation message
    role: TurnRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class InterviewSession(BaseModel):  # Persisted interview attempt with embedded history
    session_id: str
    candidate_id: str
    subject_area_id: int
    difficulty: Difficulty
    state: SessionState = SessionState.STARTED
    history: List[Turn] = Field(default_factory=list)

    score: Optional[float] = None
    performance_level: Optional[str] = None
    strengths: Optional[List[str]] = None
    improvement_areas: Optional[List[str]] = None
    final_comment: Optional[str] = None
    duration_minutes: Optional[int] = None
    evaluation: Optional[Dict[str, Any]] = None
    ai_evaluated: Optional[bool] = None

    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    def conversation(self) -> List[Turn]:
        """Turns with a user or assistant role, in stored order."""
        return [turn for turn in self.history if turn.role in CONVERSATION_ROLES]

    def turn_counts(self) -> Dict[str, int]:
        turns = self.conversation()
        user = sum(1 for turn in turns if turn.role == "user")
        return {"user": user, "assistant": len(turns) - user, "total": len(turns)}


class SessionPatch(BaseModel):  # Fields a single update may change
    state: Optional[SessionState] = None
    history: Optional[List[Turn]] = None
    score: Optional[float] = None
    performance_level: Optional[str] = None
    strengths: Optional[List[str]] = None
    improvement_areas: Optional[List[str]] = None
    final_comment: Optional[str] = None
    duration_minutes: Optional[int] = None
    evaluation: Optional[Dict[str, Any]] = None
    ai_evaluated: Optional[bool] = None
    completed_at: Optional[datetime] = None


__all__ = [
    "CONVERSATION_ROLES",
    "Difficulty",
    "InterviewSession",
    "OPEN_STATES",
    "SessionPatch",
    "SessionState",
    "SubjectArea",
    "TERMINAL_STATES",
    "Turn",
    "TurnRole",
    "utcnow",
]
