"""State machine behaviour against the sqlite repository and scripted AI clients."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from interview_evaluation import FALLBACK_RECOMMENDATION
from interview_session.errors import (
    CandidateNotFound,
    EmptyMessage,
    InsufficientInteraction,
    InvalidDifficulty,
    NoActiveSession,
    OpenSessionExists,
    SessionAlreadyCompleted,
    SessionClosed,
    SessionNotFound,
    SubjectAreaNotFound,
)
from interview_session.models import SessionState, Turn
from interview_session.prompts import FALLBACK_REPLIES
from storage.sessions import SqliteSessionRepository


def _play(run, service, session_id, owner, answers):
    for answer in answers:
        run(service.send_message(session_id, owner, answer))


def test_example_scenario_seven_turns_then_completed(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    started = run(service.start(candidate.candidate_id, subject.subject_area_id, "intermediate"))
    assert started.session.state == SessionState.STARTED
    assert [turn.role for turn in started.session.history] == ["assistant"]

    sid = started.session.session_id
    _play(run, service, sid, candidate.candidate_id, ["I studied X", "I built Y", "I led Z"])
    session = run(service.get_session(sid, candidate.candidate_id))
    assert len(session.history) == 7
    assert session.state == SessionState.IN_PROGRESS

    result = run(service.finalize(sid, candidate.candidate_id))
    assert result.session.state == SessionState.COMPLETED
    assert 0 <= result.evaluation.score <= 10
    assert result.evaluation.strengths
    assert result.ai_available is True
    assert result.statistics.user_turns == 3
    assert result.session.duration_minutes >= 1


def test_history_is_append_only(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id

    before = run(service.get_session(sid, candidate.candidate_id)).history
    result = run(service.send_message(sid, candidate.candidate_id, "  My answer  "))
    after = result.session.history

    assert len(after) == len(before) + 2
    assert after[: len(before)] == before
    assert after[-2].role == "user" and after[-2].content == "My answer"
    assert after[-1].role == "assistant"
    assert result.turn_counts == {"user": 1, "assistant": 2, "total": 3}


def test_prompt_rebuilt_with_single_system_message(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "advanced")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "first"))
    run(service.send_message(sid, candidate.candidate_id, "second"))

    messages = fake_ai.conversation.calls[-1]["messages"]
    roles = [message["role"] for message in messages]
    assert roles[0] == "system"
    assert roles.count("system") == 1
    assert roles[1:] == ["assistant", "user", "assistant", "user"]
    assert messages[-1]["content"] == "second"
    assert fake_ai.conversation.calls[-1]["options"]["temperature"] == pytest.approx(0.7)


def test_finalize_twice_surfaces_stored_evaluation(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))
    first = run(service.finalize(sid, candidate.candidate_id))
    calls = len(fake_ai.evaluation.calls)

    with pytest.raises(SessionAlreadyCompleted) as excinfo:
        run(service.finalize(sid, candidate.candidate_id))

    assert len(fake_ai.evaluation.calls) == calls
    assert excinfo.value.evaluation["score"] == first.evaluation.score
    assert excinfo.value.to_detail()["error"] == "already_completed"


def test_finalize_without_user_turns(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id

    with pytest.raises(InsufficientInteraction) as excinfo:
        run(service.finalize(sid, candidate.candidate_id))
    assert excinfo.value.code == "no_user_turns"
    assert fake_ai.evaluation.calls == []


def test_finalize_below_minimum_total_turns(run, make_service, fake_ai, candidate, subject, tmp_db):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    repo = SqliteSessionRepository()
    lone = run(
        repo.create_session(
            candidate_id=candidate.candidate_id,
            subject_area_id=subject.subject_area_id,
            difficulty="basic",
            initial_history=[Turn(role="user", content="hello?")],
        )
    )

    with pytest.raises(InsufficientInteraction) as excinfo:
        run(service.finalize(lone.session_id, candidate.candidate_id))
    assert excinfo.value.code == "insufficient_exchanges"


def test_legacy_system_turns_are_ignored_by_gate(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    repo = SqliteSessionRepository()
    legacy = run(
        repo.create_session(
            candidate_id=candidate.candidate_id,
            subject_area_id=subject.subject_area_id,
            difficulty="basic",
            initial_history=[
                Turn(role="system", content="old instructions"),
                Turn(role="assistant", content="Welcome"),
            ],
        )
    )
    with pytest.raises(InsufficientInteraction) as excinfo:
        run(service.finalize(legacy.session_id, candidate.candidate_id))
    assert excinfo.value.code == "no_user_turns"


def test_single_open_session_per_candidate(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    first = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic"))

    with pytest.raises(OpenSessionExists) as excinfo:
        run(service.start(candidate.candidate_id, subject.subject_area_id, "advanced"))

    detail = excinfo.value.to_detail()
    assert detail["session_id"] == first.session.session_id
    assert detail["suggested_actions"] == ["continue", "finalize", "abandon"]
    listing = run(service.list_sessions(candidate.candidate_id))
    assert len(listing.sessions) == 1


def test_abandoned_session_does_not_block_new_start(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    first = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic"))
    abandoned = run(service.abandon(first.session.session_id, candidate.candidate_id))
    assert abandoned.state == SessionState.ABANDONED
    assert abandoned.score is None

    second = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic"))
    assert second.session.session_id != first.session.session_id


def test_terminal_sessions_reject_messages(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))
    run(service.finalize(sid, candidate.candidate_id))
    completed = run(service.get_session(sid, candidate.candidate_id))

    with pytest.raises(SessionClosed):
        run(service.send_message(sid, candidate.candidate_id, "one more thing"))
    with pytest.raises(SessionClosed):
        run(service.abandon(sid, candidate.candidate_id))

    unchanged = run(service.get_session(sid, candidate.candidate_id))
    assert unchanged.history == completed.history
    assert unchanged.version == completed.version


def test_abandoned_session_rejects_message_and_finalize(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.abandon(sid, candidate.candidate_id))

    with pytest.raises(SessionClosed):
        run(service.send_message(sid, candidate.candidate_id, "hello"))
    with pytest.raises(SessionClosed):
        run(service.finalize(sid, candidate.candidate_id))
    assert run(service.abandon(sid, candidate.candidate_id)).state == SessionState.ABANDONED


def test_degraded_mode_keeps_conversation_going(run, make_service, failing_ai, candidate, subject, metrics):
    service = make_service(failing_ai.conversation, failing_ai.evaluation)
    started = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic"))
    assert started.ai_available is False
    assert candidate.full_name in started.opening_message
    assert subject.name in started.opening_message

    sid = started.session.session_id
    replies = [run(service.send_message(sid, candidate.candidate_id, f"answer {i}")).reply for i in range(5)]
    assert all(reply in FALLBACK_REPLIES for reply in replies)
    assert all(a != b for a, b in zip(replies, replies[1:]))

    result = run(service.finalize(sid, candidate.candidate_id))
    assert result.ai_available is False
    assert result.evaluation.score == 6.5
    assert result.evaluation.performance_level == "Good"
    assert result.evaluation.hire_recommendation == FALLBACK_RECOMMENDATION
    assert result.session.ai_evaluated is False
    assert metrics.counter("interview.degraded", operation="message") == 5


def test_no_system_turns_persisted(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))
    run(service.finalize(sid, candidate.candidate_id))

    stored = run(service.get_session(sid, candidate.candidate_id))
    assert all(turn.role in ("user", "assistant") for turn in stored.history)


def test_duration_uses_injected_clock(run, make_service, fake_ai, candidate, subject):
    now = [datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)]
    service = make_service(fake_ai.conversation, fake_ai.evaluation, clock=lambda: now[0])
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))
    now[0] = now[0] + timedelta(minutes=12, seconds=40)

    result = run(service.finalize(sid, candidate.candidate_id))
    assert result.session.duration_minutes == 13
    assert result.session.completed_at == now[0]


def test_validation_and_lookup_errors(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    with pytest.raises(InvalidDifficulty):
        run(service.start(candidate.candidate_id, subject.subject_area_id, "expert"))
    with pytest.raises(InvalidDifficulty):
        run(service.start(candidate.candidate_id, subject.subject_area_id, None))
    with pytest.raises(SubjectAreaNotFound):
        run(service.start(candidate.candidate_id, 9999, "basic"))
    with pytest.raises(CandidateNotFound):
        run(service.start("ghost", subject.subject_area_id, "basic"))
    with pytest.raises(NoActiveSession):
        run(service.active_session(candidate.candidate_id))

    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "BASIC")).session.session_id
    with pytest.raises(EmptyMessage):
        run(service.send_message(sid, candidate.candidate_id, "   "))
    with pytest.raises(SessionNotFound):
        run(service.send_message(sid, "someone-else", "hi"))
    with pytest.raises(SessionNotFound):
        run(service.get_session("missing", candidate.candidate_id))


def test_finalize_writes_audit_record(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))
    run(service.finalize(sid, candidate.candidate_id))

    records = SqliteSessionRepository().audit_records(sid)
    assert len(records) == 1
    assert records[0]["result"] == "Good"
    assert records[0]["candidate_id"] == candidate.candidate_id


def test_audit_write_failure_does_not_undo_completion(run, make_service, fake_ai, candidate, subject, metrics, monkeypatch):
    async def broken_audit(self, session_id, result_label):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(SqliteSessionRepository, "append_audit_record", broken_audit)
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
    run(service.send_message(sid, candidate.candidate_id, "answer"))

    result = run(service.finalize(sid, candidate.candidate_id))

    assert result.session.state == SessionState.COMPLETED
    assert run(service.get_session(sid, candidate.candidate_id)).state == SessionState.COMPLETED
    assert metrics.counter("interview.audit_failed") == 1
    assert SqliteSessionRepository().audit_records(sid) == []


def test_statistics_aggregate_completed_sessions(run, make_service, fake_ai, candidate, subject):
    service = make_service(fake_ai.conversation, fake_ai.evaluation)
    for _ in range(2):
        sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "basic")).session.session_id
        run(service.send_message(sid, candidate.candidate_id, "answer"))
        run(service.finalize(sid, candidate.candidate_id))
    sid = run(service.start(candidate.candidate_id, subject.subject_area_id, "advanced")).session.session_id

    stats = run(service.statistics(candidate.candidate_id))
    assert stats.total == 3
    assert stats.by_state["completed"] == 2
    assert stats.by_state["started"] == 1
    assert stats.scores.average == 7.5
    assert stats.by_difficulty == {"basic": 2, "intermediate": 0, "advanced": 1}
    assert stats.by_subject_area == {subject.name: 3}
    assert stats.top_strengths[0].frequency == 2
    assert len(stats.evolution) == 2

    active = run(service.active_session(candidate.candidate_id))
    assert active.session_id == sid
