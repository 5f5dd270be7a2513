"""SQLite persistence for CVs, detected skills and analysis reports."""
from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import uuid4

from cv_analysis.models import CvRecord, CvReport, CvStatus, Skill
from interview_session.models import utcnow

from .sqlite import get_conn


def _row_to_cv(row) -> CvRecord:
    return CvRecord(
        cv_id=row["cv_id"],
        candidate_id=row["candidate_id"],
        filename=row["filename"],
        content=row["content"],
        status=row["status"],
        uploaded_at=row["uploaded_at"],
        processed_at=row["processed_at"],
    )


class SqliteCvRepository:
    async def create_cv(self, candidate_id: str, filename: str, content: str) -> CvRecord:
        record = CvRecord(
            cv_id=uuid4().hex,
            candidate_id=candidate_id,
            filename=filename,
            content=content,
            uploaded_at=utcnow(),
        )
        await asyncio.to_thread(self._insert, record)
        return record

    async def get_cv(self, cv_id: str) -> Optional[CvRecord]:
        return await asyncio.to_thread(self._get, cv_id)

    async def list_cvs(self, candidate_id: str) -> List[CvRecord]:
        return await asyncio.to_thread(self._list, candidate_id)

    async def complete_processing(self, cv_id: str, report: CvReport, processed_at: datetime) -> bool:
        """Store skills and report and mark the CV processed.

        Returns False without writing when another request processed the CV first.
        """
        return await asyncio.to_thread(self._complete, cv_id, report, processed_at)

    async def get_report(self, cv_id: str) -> Optional[CvReport]:
        return await asyncio.to_thread(self._report, cv_id)

    def _insert(self, record: CvRecord) -> None:
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO cvs (cv_id, candidate_id, filename, content, status, uploaded_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    record.cv_id,
                    record.candidate_id,
                    record.filename,
                    record.content,
                    record.status.value,
                    record.uploaded_at.isoformat(),
                ),
            )

    def _get(self, cv_id: str) -> Optional[CvRecord]:
        with get_conn() as conn:
            row = conn.execute("SELECT * FROM cvs WHERE cv_id = ?", (cv_id,)).fetchone()
        return _row_to_cv(row) if row else None

    def _list(self, candidate_id: str) -> List[CvRecord]:
        with get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cvs WHERE candidate_id = ? ORDER BY uploaded_at DESC, cv_id DESC",
                (candidate_id,),
            ).fetchall()
        return [_row_to_cv(row) for row in rows]

    def _complete(self, cv_id: str, report: CvReport, processed_at: datetime) -> bool:
        with get_conn() as conn:
            cur = conn.execute(
                "UPDATE cvs SET status = ?, processed_at = ? WHERE cv_id = ? AND status = ?",
                (CvStatus.PROCESSED.value, processed_at.isoformat(), cv_id, CvStatus.UPLOADED.value),
            )
            if cur.rowcount == 0:
                return False
            self._link_skills(conn, cv_id, report.skills)
            conn.execute(
                """INSERT INTO reports
                   (cv_id, completeness_score, validation_score, analysis_json, ai_available, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    cv_id,
                    report.completeness.score,
                    report.validation.score,
                    report.model_dump_json(),
                    int(report.ai_available),
                    report.created_at.isoformat(),
                ),
            )
        return True

    def _link_skills(self, conn, cv_id: str, skills: Sequence[Skill]) -> None:
        for skill in skills:
            conn.execute("INSERT OR IGNORE INTO skills (name, kind) VALUES (?, ?)", (skill.name, skill.kind))
            row = conn.execute(
                "SELECT skill_id FROM skills WHERE name = ? AND kind = ?", (skill.name, skill.kind)
            ).fetchone()
            conn.execute(
                "INSERT OR IGNORE INTO cv_skills (cv_id, skill_id) VALUES (?, ?)",
                (cv_id, row["skill_id"]),
            )

    def _report(self, cv_id: str) -> Optional[CvReport]:
        with get_conn() as conn:
            row = conn.execute("SELECT analysis_json FROM reports WHERE cv_id = ?", (cv_id,)).fetchone()
        return CvReport.model_validate(json.loads(row["analysis_json"])) if row else None

    def skill_catalog(self) -> List[Skill]:
        with get_conn() as conn:
            rows = conn.execute("SELECT name, kind FROM skills ORDER BY kind, name").fetchall()
        return [Skill(name=row["name"], kind=row["kind"]) for row in rows]


__all__ = ["SqliteCvRepository"]
