"""Conversation state machine for simulated job interviews.

Lifecycle::

    started --message--> in_progress --message--> in_progress
       |                      |
       +------finalize--------+--> completed   (terminal)
       +------abandon---------+--> abandoned   (terminal)

AI failures never stop a conversation: openings and replies fall back to canned text
and evaluations to :func:`interview_evaluation.heuristic_evaluation`. The responses
carry an ``ai_available`` flag so callers can observe degraded mode.
"""
from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from config.settings import settings
from interview_evaluation.evaluation import Evaluation, EvaluationEngine
from llm_gateway import AiClient, Completion
from observability.logger import log_event
from observability.metrics import MetricsSink, NullMetrics
from services.errors import HistoryIntegrityError
from services.scoring import (
    CandidateStatistics,
    InteractionStats,
    SessionListSummary,
    candidate_statistics,
    duration_minutes,
    interaction_stats,
    summarize_sessions,
)

from .errors import (
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
from .models import Difficulty, InterviewSession, SessionPatch, SessionState, SubjectArea, Turn, utcnow
from .prompts import conversation_messages, fallback_opening, fallback_reply, opening_messages
from .repository import Directory, SessionRepository

logger = logging.getLogger(__name__)


class StartResult(BaseModel):
    session: InterviewSession
    subject_area: SubjectArea
    opening_message: str
    ai_available: bool


class MessageResult(BaseModel):
    session: InterviewSession
    reply: str
    ai_available: bool
    turn_counts: Dict[str, int]


class FinalizeResult(BaseModel):
    session: InterviewSession
    evaluation: Evaluation
    statistics: InteractionStats
    ai_available: bool


class SessionListing(BaseModel):
    sessions: List[InterviewSession]
    summary: SessionListSummary


def coerce_difficulty(value: Union[str, Difficulty, None]) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    if value is None:
        raise InvalidDifficulty(value)
    try:
        return Difficulty(str(value).strip().lower())
    except ValueError:
        raise InvalidDifficulty(value) from None


class InterviewService:
    """Runs start, message, finalize and abandon against a session repository."""

    def __init__(
        self,
        sessions: SessionRepository,
        directory: Directory,
        ai: AiClient,
        evaluator: EvaluationEngine,
        *,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._sessions = sessions
        self._directory = directory
        self._ai = ai
        self._evaluator = evaluator
        self._metrics = metrics or NullMetrics()
        self._clock = clock
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    async def start(
        self,
        candidate_id: str,
        subject_area_id: int,
        difficulty: Union[str, Difficulty, None],
    ) -> StartResult:
        level = coerce_difficulty(difficulty)
        subject = await self._subject(subject_area_id)
        candidate = await self._directory.get_candidate(candidate_id)
        if candidate is None:
            raise CandidateNotFound(candidate_id)

        existing = await self._sessions.find_open_session(candidate_id)
        if existing is not None:
            log_event(
                "interview_start_rejected",
                existing.session_id,
                candidate_id=candidate_id,
                state=existing.state.value,
                reason="open_session",
            )
            raise OpenSessionExists(existing.session_id)

        completion = await self._ai.complete(
            opening_messages(subject, level, candidate.full_name),
            self._chat_options(),
        )
        opening = _reply_text(completion)
        ai_available = opening is not None
        if opening is None:
            opening = fallback_opening(candidate.full_name, subject)
            self._degraded("start", completion)

        now = self._clock()
        session = await self._sessions.create_session(
            candidate_id=candidate_id,
            subject_area_id=subject.subject_area_id,
            difficulty=level,
            initial_history=[Turn(role="assistant", content=opening, timestamp=now)],
            started_at=now,
        )
        self._metrics.increment("interview.started", difficulty=level.value)
        log_event(
            "interview_started",
            session.session_id,
            candidate_id=candidate_id,
            difficulty=level.value,
            ai_available=ai_available,
        )
        return StartResult(session=session, subject_area=subject, opening_message=opening, ai_available=ai_available)

    async def send_message(self, session_id: str, candidate_id: str, text: Optional[str]) -> MessageResult:
        content = (text or "").strip()
        if not content:
            raise EmptyMessage()
        session = await self._owned(session_id, candidate_id)
        if session.state.is_terminal:
            raise SessionClosed(session_id, session.state, "send messages")
        subject = await self._subject(session.subject_area_id)

        before = list(session.history)
        user_turn = Turn(role="user", content=content, timestamp=self._clock())
        completion = await self._ai.complete(
            conversation_messages(subject, session.difficulty, before, content),
            self._chat_options(),
        )
        reply = _reply_text(completion)
        ai_available = reply is not None
        if reply is None:
            reply = fallback_reply(self._rng, _last_assistant(before))
            self._degraded("message", completion, session_id)
        assistant_turn = Turn(role="assistant", content=reply, timestamp=self._clock())

        history = before + [user_turn, assistant_turn]
        _check_growth(session_id, before, history)
        updated = await self._sessions.update_session(
            session_id,
            session.version,
            SessionPatch(history=history, state=SessionState.IN_PROGRESS),
        )
        _check_growth(session_id, before, updated.history)

        counts = updated.turn_counts()
        self._metrics.increment("interview.messages")
        log_event(
            "interview_message",
            session_id,
            candidate_id=candidate_id,
            state=updated.state.value,
            turns=counts["total"],
            ai_available=ai_available,
        )
        return MessageResult(session=updated, reply=reply, ai_available=ai_available, turn_counts=counts)

    async def finalize(self, session_id: str, candidate_id: str) -> FinalizeResult:
        session = await self._owned(session_id, candidate_id)
        if session.state == SessionState.COMPLETED:
            raise SessionAlreadyCompleted(session_id, session.evaluation)
        if session.state == SessionState.ABANDONED:
            raise SessionClosed(session_id, session.state, "finalize")

        turns = session.conversation()
        user_turns = sum(1 for turn in turns if turn.role == "user")
        if user_turns == 0:
            raise InsufficientInteraction(
                "The interview has no answers from you yet. Reply to at least one question before finalizing.",
                code="no_user_turns",
                user_turns=0,
                total_turns=len(turns),
            )
        if len(turns) < settings.MIN_FINALIZE_TURNS:
            raise InsufficientInteraction(
                "The interview is too short. At least one full exchange with the interviewer is required.",
                code="insufficient_exchanges",
                user_turns=user_turns,
                total_turns=len(turns),
                required_turns=settings.MIN_FINALIZE_TURNS,
            )

        subject = await self._subject(session.subject_area_id)
        report = await self._evaluator.evaluate(turns, subject, session.difficulty)
        if not report.ai_available:
            self._metrics.increment("interview.degraded", operation="finalize")

        now = self._clock()
        evaluation = report.evaluation
        updated = await self._sessions.update_session(
            session_id,
            session.version,
            SessionPatch(
                state=SessionState.COMPLETED,
                score=evaluation.score,
                performance_level=evaluation.performance_level,
                strengths=evaluation.strengths,
                improvement_areas=evaluation.improvement_areas,
                final_comment=evaluation.final_comment,
                duration_minutes=duration_minutes(session.started_at, now),
                evaluation=evaluation.model_dump(mode="json"),
                ai_evaluated=report.ai_available,
                completed_at=now,
            ),
        )
        try:
            await self._sessions.append_audit_record(session_id, evaluation.performance_level)
        except Exception:
            self._metrics.increment("interview.audit_failed")
            logger.exception("Audit record write failed session_id=%s", session_id)

        self._metrics.increment("interview.finalized")
        self._metrics.observe("interview.score", evaluation.score)
        log_event(
            "interview_completed",
            session_id,
            candidate_id=candidate_id,
            score=evaluation.score,
            turns=len(turns),
            ai_available=report.ai_available,
            reason=report.failure_reason,
        )
        return FinalizeResult(
            session=updated,
            evaluation=evaluation,
            statistics=interaction_stats(turns),
            ai_available=report.ai_available,
        )

    async def abandon(self, session_id: str, candidate_id: str) -> InterviewSession:
        session = await self._owned(session_id, candidate_id)
        if session.state == SessionState.COMPLETED:
            raise SessionClosed(session_id, session.state, "abandon")
        if session.state == SessionState.ABANDONED:
            return session
        updated = await self._sessions.update_session(
            session_id,
            session.version,
            SessionPatch(state=SessionState.ABANDONED),
        )
        self._metrics.increment("interview.abandoned")
        log_event("interview_abandoned", session_id, candidate_id=candidate_id, state=updated.state.value)
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_session(self, session_id: str, candidate_id: str) -> InterviewSession:
        return await self._owned(session_id, candidate_id)

    async def active_session(self, candidate_id: str) -> InterviewSession:
        session = await self._sessions.find_open_session(candidate_id)
        if session is None:
            raise NoActiveSession()
        return session

    async def list_sessions(
        self,
        candidate_id: str,
        *,
        state: Optional[SessionState] = None,
        subject_area_id: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
    ) -> SessionListing:
        sessions = await self._sessions.list_sessions(
            candidate_id,
            state=state,
            subject_area_id=subject_area_id,
            difficulty=difficulty,
        )
        return SessionListing(sessions=sessions, summary=summarize_sessions(sessions))

    async def statistics(self, candidate_id: str) -> CandidateStatistics:
        sessions = await self._sessions.list_sessions(candidate_id)
        subjects = await self._directory.list_subject_areas()
        names = {subject.subject_area_id: subject.name for subject in subjects}
        return candidate_statistics(sessions, names)

    async def subject_area(self, subject_area_id: int) -> SubjectArea:
        return await self._subject(subject_area_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _owned(self, session_id: str, candidate_id: str) -> InterviewSession:
        session = await self._sessions.get_session(session_id)
        if session is None or session.candidate_id != candidate_id:
            raise SessionNotFound(session_id)
        return session

    async def _subject(self, subject_area_id: int) -> SubjectArea:
        subject = await self._directory.get_subject_area(subject_area_id)
        if subject is None:
            raise SubjectAreaNotFound(subject_area_id)
        return subject

    def _chat_options(self) -> Dict[str, Any]:
        return {
            "temperature": settings.CONVERSATION_TEMPERATURE,
            "max_tokens": settings.CONVERSATION_MAX_TOKENS,
        }

    def _degraded(self, operation: str, completion: Completion, session_id: Optional[str] = None) -> None:
        self._metrics.increment("interview.degraded", operation=operation)
        log_event(
            "ai_degraded",
            session_id,
            level=logging.WARNING,
            ai_available=False,
            reason=completion.error or "empty reply",
            operation=operation,
        )


def _reply_text(completion: Completion) -> Optional[str]:
    if not completion.success:
        return None
    text = completion.content.strip()
    return text or None


def _last_assistant(history: Sequence[Turn]) -> Optional[str]:
    for turn in reversed(history):
        if turn.role == "assistant":
            return turn.content
    return None


def _check_growth(session_id: str, before: Sequence[Turn], after: Sequence[Turn]) -> None:
    """Each exchange appends exactly two turns and leaves earlier turns untouched."""

    if len(after) != len(before) + 2 or list(after[: len(before)]) != list(before):
        logger.critical(
            "History integrity violated session=%s before=%d after=%d",
            session_id,
            len(before),
            len(after),
        )
        raise HistoryIntegrityError(
            f"Session {session_id} history expected {len(before) + 2} turns, found {len(after)}"
        )


__all__ = [
    "FinalizeResult",
    "InterviewService",
    "MessageResult",
    "SessionListing",
    "StartResult",
    "coerce_difficulty",
]
