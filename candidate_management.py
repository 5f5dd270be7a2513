from __future__ import annotations  # Candidate storage helpers

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from storage.sqlite import get_conn


class CandidateRecord(BaseModel):  # Stored candidate entry
    candidate_id: str
    full_name: str
    email: Optional[str] = None
    created_at: str


class CandidateCreate(BaseModel):  # Registration payload
    full_name: str = Field(min_length=1)
    email: Optional[str] = None


class CandidateStore:  # SQLite-backed candidate storage
    def _row_to_record(self, row) -> CandidateRecord:
        return CandidateRecord(
            candidate_id=row["candidate_id"],
            full_name=row["full_name"],
            email=row["email"],
            created_at=row["created_at"],
        )

    def list_candidates(self) -> List[CandidateRecord]:  # List candidates ordered by recency
        with get_conn() as conn:
            rows = conn.execute(
                """
                SELECT candidate_id, full_name, email, created_at
                FROM candidates
                ORDER BY datetime(created_at) DESC, candidate_id DESC
                """
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_candidate(self, candidate_id: str) -> Optional[CandidateRecord]:
        with get_conn() as conn:
            row = conn.execute(
                "SELECT candidate_id, full_name, email, created_at FROM candidates WHERE candidate_id = ?",
                (candidate_id,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def create_candidate(
        self,
        *,
        full_name: str,
        email: Optional[str] = None,
        candidate_id: Optional[str] = None,
    ) -> CandidateRecord:  # Persist a new candidate
        payload = CandidateCreate(full_name=full_name.strip(), email=email)
        record = CandidateRecord(
            candidate_id=candidate_id or uuid4().hex,
            full_name=payload.full_name,
            email=payload.email,
            created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        with get_conn() as conn:
            conn.execute(
                """
                INSERT INTO candidates (candidate_id, full_name, email, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (record.candidate_id, record.full_name, record.email, record.created_at),
            )
        return record


__all__ = ["CandidateCreate", "CandidateRecord", "CandidateStore"]
