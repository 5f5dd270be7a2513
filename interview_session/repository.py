from __future__ import annotations  # Persistence and directory interfaces consumed by the state machine

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from candidate_management import CandidateRecord

from .models import Difficulty, InterviewSession, SessionPatch, SessionState, SubjectArea, Turn


class SessionRepository(Protocol):
    async def find_open_session(self, candidate_id: str) -> Optional[InterviewSession]: ...

    async def get_session(self, session_id: str) -> Optional[InterviewSession]: ...

    async def create_session(
        self,
        *,
        candidate_id: str,
        subject_area_id: int,
        difficulty: Difficulty,
        initial_history: Sequence[Turn],
        started_at: Optional[datetime] = None,
    ) -> InterviewSession: ...

    async def update_session(self, session_id: str, expected_version: int, patch: SessionPatch) -> InterviewSession:
        """Apply ``patch``; raise ``StaleWriteError`` when the stored version differs."""
        ...

    async def append_audit_record(self, session_id: str, result_label: str) -> None: ...

    async def list_sessions(
        self,
        candidate_id: str,
        *,
        state: Optional[SessionState] = None,
        subject_area_id: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
    ) -> List[InterviewSession]: ...


class Directory(Protocol):  # Read access to candidates and subject areas
    async def get_candidate(self, candidate_id: str) -> Optional[CandidateRecord]: ...

    async def get_subject_area(self, subject_area_id: int) -> Optional[SubjectArea]: ...

    async def list_subject_areas(self) -> List[SubjectArea]: ...


__all__ = ["Directory", "SessionRepository"]
