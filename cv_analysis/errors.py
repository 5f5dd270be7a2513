"""CV pipeline errors built on the shared service taxonomy."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from services.errors import ConflictError, NotFoundError, ValidationFailed


class EmptyCvContent(ValidationFailed):
    code = "empty_cv"

    def __init__(self) -> None:
        super().__init__("The CV has no readable text.")


class CvNotFound(NotFoundError):
    code = "cv_not_found"

    def __init__(self, cv_id: str) -> None:
        super().__init__("CV not found.", cv_id=cv_id)


class ReportNotReady(NotFoundError):
    code = "report_not_ready"

    def __init__(self, cv_id: str) -> None:
        super().__init__("The CV has not been processed yet.", cv_id=cv_id)


class CvAlreadyProcessed(ConflictError):
    code = "cv_already_processed"

    def __init__(self, cv_id: str, processed_at: Optional[datetime]) -> None:
        super().__init__(
            "This CV was already processed.",
            cv_id=cv_id,
            processed_at=processed_at.isoformat() if processed_at else None,
        )


__all__ = ["CvAlreadyProcessed", "CvNotFound", "EmptyCvContent", "ReportNotReady"]
