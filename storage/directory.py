"""Read access to candidates and subject areas for the interview services."""
from __future__ import annotations

import asyncio
import json
from typing import List, Optional

from candidate_management import CandidateRecord, CandidateStore
from interview_session.models import SubjectArea

from .sqlite import get_conn


def list_subject_areas() -> List[SubjectArea]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT subject_area_id, name, area, description, duration_years, competencies_json
               FROM subject_areas ORDER BY area, name"""
        ).fetchall()
    return [_row_to_subject(row) for row in rows]


def get_subject_area(subject_area_id: int) -> Optional[SubjectArea]:
    with get_conn() as conn:
        row = conn.execute(
            """SELECT subject_area_id, name, area, description, duration_years, competencies_json
               FROM subject_areas WHERE subject_area_id = ?""",
            (subject_area_id,),
        ).fetchone()
    return _row_to_subject(row) if row else None


def _row_to_subject(row) -> SubjectArea:
    return SubjectArea(
        subject_area_id=row["subject_area_id"],
        name=row["name"],
        area=row["area"],
        description=row["description"] or "",
        duration_years=row["duration_years"] or 3,
        competencies=json.loads(row["competencies_json"] or "[]"),
    )


class SqliteDirectory:
    def __init__(self, candidates: Optional[CandidateStore] = None) -> None:
        self._candidates = candidates or CandidateStore()

    async def get_candidate(self, candidate_id: str) -> Optional[CandidateRecord]:
        return await asyncio.to_thread(self._candidates.get_candidate, candidate_id)

    async def get_subject_area(self, subject_area_id: int) -> Optional[SubjectArea]:
        return await asyncio.to_thread(get_subject_area, subject_area_id)

    async def list_subject_areas(self) -> List[SubjectArea]:
        return await asyncio.to_thread(list_subject_areas)


__all__ = ["SqliteDirectory", "get_subject_area", "list_subject_areas"]
