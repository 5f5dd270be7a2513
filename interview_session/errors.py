"""Interview-specific errors built on the shared service taxonomy."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from services.errors import ConflictError, NotFoundError, ValidationFailed

from .models import Difficulty, SessionState

SUGGESTED_ACTIONS = ["continue", "finalize", "abandon"]


class EmptyMessage(ValidationFailed):
    code = "empty_message"

    def __init__(self) -> None:
        super().__init__("Message text is required.")


class InvalidDifficulty(ValidationFailed):
    code = "invalid_difficulty"

    def __init__(self, value: Optional[str]) -> None:
        allowed = [item.value for item in Difficulty]
        super().__init__(f"Difficulty must be one of: {', '.join(allowed)}.", received=value, allowed=allowed)


class InsufficientInteraction(ValidationFailed):
    code = "insufficient_interaction"


class SessionClosed(ValidationFailed):
    code = "session_closed"

    def __init__(self, session_id: str, state: SessionState, action: str) -> None:
        super().__init__(
            f"Cannot {action}: this interview is already {state.value}.",
            session_id=session_id,
            state=state.value,
        )


class OpenSessionExists(ConflictError):
    code = "open_session_exists"

    def __init__(self, session_id: str, suggested_actions: Optional[List[str]] = None) -> None:
        super().__init__(
            "You already have an interview in progress. Continue, finalize or abandon it before starting a new one.",
            session_id=session_id,
            suggested_actions=list(suggested_actions or SUGGESTED_ACTIONS),
        )
        self.session_id = session_id


class SessionAlreadyCompleted(ConflictError):
    code = "already_completed"

    def __init__(self, session_id: str, evaluation: Optional[Dict[str, Any]]) -> None:
        super().__init__(
            "This interview was already completed.",
            session_id=session_id,
            evaluation=evaluation,
        )
        self.evaluation = evaluation


class SessionNotFound(NotFoundError):
    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__("Interview not found.", session_id=session_id)


class SubjectAreaNotFound(NotFoundError):
    code = "subject_area_not_found"

    def __init__(self, subject_area_id: Any) -> None:
        super().__init__("Subject area not found.", subject_area_id=subject_area_id)


class CandidateNotFound(NotFoundError):
    code = "candidate_not_found"

    def __init__(self, candidate_id: str) -> None:
        super().__init__("Candidate not found.", candidate_id=candidate_id)


class NoActiveSession(NotFoundError):
    code = "no_active_session"

    def __init__(self) -> None:
        super().__init__("There is no active interview. Start a new one to begin.")


__all__ = [
    "CandidateNotFound",
    "EmptyMessage",
    "InsufficientInteraction",
    "InvalidDifficulty",
    "NoActiveSession",
    "OpenSessionExists",
    "SessionAlreadyCompleted",
    "SessionClosed",
    "SessionNotFound",
    "SubjectAreaNotFound",
]
