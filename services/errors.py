"""Error taxonomy shared by the interview and CV services."""
from __future__ import annotations

from typing import Any, Dict


class ServiceError(Exception):
    """Base class for user-facing service errors mapped to HTTP responses."""

    status_code = 400
    code = "service_error"

    def __init__(self, message: str, *, code: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra: Dict[str, Any] = extra

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        detail.update(self.extra)
        return detail


class ValidationFailed(ServiceError):  # User-correctable input or state problem
    code = "validation_error"


class ConflictError(ServiceError):  # Operation clashes with existing state
    code = "conflict"


class StaleWriteError(ConflictError):  # Record changed between read and write; safe to retry
    status_code = 409
    code = "stale_write"

    def __init__(self, record_id: str) -> None:
        super().__init__(
            "The record was modified by another request. Please retry.",
            record_id=record_id,
            retryable=True,
        )


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class InvariantViolation(RuntimeError):  # Internal bug; never mapped to a 4xx
    pass


class HistoryIntegrityError(InvariantViolation):
    pass


class CorruptedRecordError(InvariantViolation):
    pass


__all__ = [
    "ServiceError",
    "ValidationFailed",
    "ConflictError",
    "StaleWriteError",
    "NotFoundError",
    "InvariantViolation",
    "HistoryIntegrityError",
    "CorruptedRecordError",
]
