"""SQLite repository for interview sessions and their audit trail."""
from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from pydantic import ValidationError

from interview_session.errors import OpenSessionExists
from interview_session.models import (
    Difficulty,
    InterviewSession,
    SessionPatch,
    SessionState,
    Turn,
    utcnow,
)
from services.errors import CorruptedRecordError, StaleWriteError

from .sqlite import get_conn

_JSON_COLUMNS = {
    "history": "history_json",
    "strengths": "strengths_json",
    "improvement_areas": "improvement_areas_json",
    "evaluation": "evaluation_json",
}
_PLAIN_COLUMNS = (
    "state",
    "score",
    "performance_level",
    "final_comment",
    "duration_minutes",
    "ai_evaluated",
    "completed_at",
)


def _loads(raw: Optional[str], session_id: str, column: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptedRecordError(f"Session {session_id} has unreadable {column}: {exc}") from exc


def _row_to_session(row: sqlite3.Row) -> InterviewSession:
    session_id = row["session_id"]
    data: Dict[str, Any] = {
        "session_id": session_id,
        "candidate_id": row["candidate_id"],
        "subject_area_id": row["subject_area_id"],
        "difficulty": row["difficulty"],
        "state": row["state"],
        "history": _loads(row["history_json"], session_id, "history_json") or [],
        "score": row["score"],
        "performance_level": row["performance_level"],
        "strengths": _loads(row["strengths_json"], session_id, "strengths_json"),
        "improvement_areas": _loads(row["improvement_areas_json"], session_id, "improvement_areas_json"),
        "final_comment": row["final_comment"],
        "duration_minutes": row["duration_minutes"],
        "evaluation": _loads(row["evaluation_json"], session_id, "evaluation_json"),
        "ai_evaluated": None if row["ai_evaluated"] is None else bool(row["ai_evaluated"]),
        "started_at": row["started_at"],
        "completed_at": row["completed_at"],
        "updated_at": row["updated_at"],
        "version": row["version"],
    }
    try:
        return InterviewSession.model_validate(data)
    except ValidationError as exc:
        raise CorruptedRecordError(f"Session {session_id} failed validation: {exc}") from exc


def _dump_turns(turns: Sequence[Turn]) -> str:
    return json.dumps([turn.model_dump(mode="json") for turn in turns])


def _column_value(value: Any) -> Any:
    if isinstance(value, SessionState):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class SqliteSessionRepository:
    """Session persistence with optimistic concurrency on a ``version`` column.

    Blocking sqlite calls run on worker threads so the event loop stays free.
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        return await asyncio.to_thread(self._get, session_id)

    async def find_open_session(self, candidate_id: str) -> Optional[InterviewSession]:
        return await asyncio.to_thread(self._find_open, candidate_id)

    async def list_sessions(
        self,
        candidate_id: str,
        *,
        state: Optional[SessionState] = None,
        subject_area_id: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
    ) -> List[InterviewSession]:
        return await asyncio.to_thread(self._list, candidate_id, state, subject_area_id, difficulty)

    def _get(self, session_id: str) -> Optional[InterviewSession]:
        with get_conn() as conn:
            row = conn.execute("SELECT * FROM interview_sessions WHERE session_id = ?", (session_id,)).fetchone()
        return _row_to_session(row) if row else None

    def _find_open(self, candidate_id: str) -> Optional[InterviewSession]:
        with get_conn() as conn:
            row = conn.execute(
                """SELECT * FROM interview_sessions
                   WHERE candidate_id = ? AND state IN ('started', 'in_progress')
                   ORDER BY started_at DESC LIMIT 1""",
                (candidate_id,),
            ).fetchone()
        return _row_to_session(row) if row else None

    def _list(
        self,
        candidate_id: str,
        state: Optional[SessionState],
        subject_area_id: Optional[int],
        difficulty: Optional[Difficulty],
    ) -> List[InterviewSession]:
        clauses = ["candidate_id = ?"]
        params: List[Any] = [candidate_id]
        if state is not None:
            clauses.append("state = ?")
            params.append(SessionState(state).value)
        if subject_area_id is not None:
            clauses.append("subject_area_id = ?")
            params.append(subject_area_id)
        if difficulty is not None:
            clauses.append("difficulty = ?")
            params.append(Difficulty(difficulty).value)
        query = (
            "SELECT * FROM interview_sessions WHERE "
            + " AND ".join(clauses)
            + " ORDER BY started_at DESC, session_id DESC"
        )
        with get_conn() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_session(row) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def create_session(
        self,
        *,
        candidate_id: str,
        subject_area_id: int,
        difficulty: Difficulty,
        initial_history: Sequence[Turn],
        started_at: Optional[datetime] = None,
    ) -> InterviewSession:
        session = InterviewSession(
            session_id=uuid4().hex,
            candidate_id=candidate_id,
            subject_area_id=subject_area_id,
            difficulty=difficulty,
            state=SessionState.STARTED,
            history=list(initial_history),
            started_at=started_at or utcnow(),
            updated_at=started_at or utcnow(),
            version=1,
        )
        await asyncio.to_thread(self._insert, session)
        return session

    async def update_session(self, session_id: str, expected_version: int, patch: SessionPatch) -> InterviewSession:
        return await asyncio.to_thread(self._update, session_id, expected_version, patch)

    async def append_audit_record(self, session_id: str, result_label: str) -> None:
        await asyncio.to_thread(self._audit, session_id, result_label)

    def _insert(self, session: InterviewSession) -> None:
        try:
            with get_conn() as conn:
                conn.execute(
                    """INSERT INTO interview_sessions
                       (session_id, candidate_id, subject_area_id, difficulty, state, history_json,
                        started_at, updated_at, version)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        session.session_id,
                        session.candidate_id,
                        session.subject_area_id,
                        session.difficulty.value,
                        session.state.value,
                        _dump_turns(session.history),
                        session.started_at.isoformat(),
                        session.updated_at.isoformat(),
                        session.version,
                    ),
                )
        except sqlite3.IntegrityError:
            # Partial unique index: another open session won the race.
            existing = self._find_open(session.candidate_id)
            raise OpenSessionExists(existing.session_id if existing else "") from None

    def _update(self, session_id: str, expected_version: int, patch: SessionPatch) -> InterviewSession:
        changes = patch.model_dump(exclude_unset=True)
        assignments: List[str] = []
        params: List[Any] = []
        for field, value in changes.items():
            if field in _JSON_COLUMNS:
                assignments.append(f"{_JSON_COLUMNS[field]} = ?")
                if field == "history":
                    params.append(_dump_turns(patch.history or []))
                else:
                    params.append(None if value is None else json.dumps(value))
            elif field in _PLAIN_COLUMNS:
                assignments.append(f"{field} = ?")
                params.append(_column_value(getattr(patch, field)))
        assignments.extend(["updated_at = ?", "version = version + 1"])
        params.extend([utcnow().isoformat(), session_id, expected_version])

        with get_conn() as conn:
            cur = conn.execute(
                f"UPDATE interview_sessions SET {', '.join(assignments)} WHERE session_id = ? AND version = ?",
                params,
            )
            if cur.rowcount == 0:
                raise StaleWriteError(session_id)
            row = conn.execute("SELECT * FROM interview_sessions WHERE session_id = ?", (session_id,)).fetchone()
        return _row_to_session(row)

    def _audit(self, session_id: str, result_label: str) -> None:
        with get_conn() as conn:
            row = conn.execute(
                "SELECT candidate_id, subject_area_id FROM interview_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            if row is None:
                return
            conn.execute(
                """INSERT INTO interview_audit (timestamp, session_id, candidate_id, subject_area_id, result)
                   VALUES (?, ?, ?, ?, ?)""",
                (utcnow().isoformat(), session_id, row["candidate_id"], row["subject_area_id"], result_label),
            )

    def audit_records(self, session_id: str) -> List[Dict[str, Any]]:
        with get_conn() as conn:
            rows = conn.execute(
                "SELECT timestamp, session_id, candidate_id, subject_area_id, result FROM interview_audit "
                "WHERE session_id = ? ORDER BY id",
                (session_id,),
            ).fetchall()
        return [dict(row) for row in rows]


__all__ = ["SqliteSessionRepository"]
