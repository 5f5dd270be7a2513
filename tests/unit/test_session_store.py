"""Tests for the sqlite session repository."""
from __future__ import annotations

import sqlite3

import pytest

from interview_session.errors import OpenSessionExists
from interview_session.models import Difficulty, SessionPatch, SessionState, Turn
from services.errors import CorruptedRecordError, StaleWriteError
from storage.sessions import SqliteSessionRepository


def _create(run, repo, candidate_id="c1", subject_area_id=1):
    return run(
        repo.create_session(
            candidate_id=candidate_id,
            subject_area_id=subject_area_id,
            difficulty=Difficulty.BASIC,
            initial_history=[Turn(role="assistant", content="Welcome")],
        )
    )


def test_create_and_reload_round_trip(run):
    repo = SqliteSessionRepository()
    created = _create(run, repo)
    loaded = run(repo.get_session(created.session_id))

    assert loaded is not None
    assert loaded.version == 1
    assert loaded.state == SessionState.STARTED
    assert [turn.content for turn in loaded.history] == ["Welcome"]
    assert run(repo.find_open_session("c1")).session_id == created.session_id


def test_update_bumps_version_and_rejects_stale_writes(run):
    repo = SqliteSessionRepository()
    created = _create(run, repo)
    history = created.history + [Turn(role="user", content="hi"), Turn(role="assistant", content="hello")]

    updated = run(
        repo.update_session(
            created.session_id,
            created.version,
            SessionPatch(history=history, state=SessionState.IN_PROGRESS),
        )
    )
    assert updated.version == 2
    assert len(updated.history) == 3

    with pytest.raises(StaleWriteError) as excinfo:
        run(repo.update_session(created.session_id, created.version, SessionPatch(state=SessionState.ABANDONED)))
    assert excinfo.value.status_code == 409
    assert excinfo.value.to_detail()["retryable"] is True
    assert run(repo.get_session(created.session_id)).state == SessionState.IN_PROGRESS


def test_partial_unique_index_blocks_second_open_session(run):
    repo = SqliteSessionRepository()
    first = _create(run, repo)

    with pytest.raises(OpenSessionExists) as excinfo:
        _create(run, repo)
    assert excinfo.value.session_id == first.session_id

    run(repo.update_session(first.session_id, first.version, SessionPatch(state=SessionState.ABANDONED)))
    second = _create(run, repo)
    assert second.session_id != first.session_id


def test_terminal_fields_and_filters(run):
    repo = SqliteSessionRepository()
    created = _create(run, repo)
    run(
        repo.update_session(
            created.session_id,
            created.version,
            SessionPatch(
                state=SessionState.COMPLETED,
                score=6.5,
                performance_level="Good",
                strengths=["Participation"],
                evaluation={"score": 6.5},
                ai_evaluated=False,
                duration_minutes=3,
            ),
        )
    )
    _create(run, repo, subject_area_id=2)

    completed = run(repo.list_sessions("c1", state=SessionState.COMPLETED))
    assert [s.session_id for s in completed] == [created.session_id]
    assert completed[0].ai_evaluated is False
    assert completed[0].strengths == ["Participation"]
    assert completed[0].evaluation == {"score": 6.5}
    assert len(run(repo.list_sessions("c1", subject_area_id=2))) == 1
    assert run(repo.list_sessions("c1", difficulty=Difficulty.ADVANCED)) == []


def test_corrupted_history_raises_invariant_violation(run, tmp_db):
    repo = SqliteSessionRepository()
    created = _create(run, repo)
    conn = sqlite3.connect(tmp_db)
    conn.execute("UPDATE interview_sessions SET history_json = '{not json' WHERE session_id = ?", (created.session_id,))
    conn.commit()
    conn.close()

    with pytest.raises(CorruptedRecordError):
        run(repo.get_session(created.session_id))
