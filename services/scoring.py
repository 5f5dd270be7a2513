"""Interaction statistics and score aggregation over interview sessions."""
from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from interview_session.models import Difficulty, InterviewSession, SessionState, Turn


def _round2(value: float) -> float:
    """Round a float to two decimal places with stable formatting."""
    return float(f"{value:.2f}")


class InteractionStats(BaseModel):
    user_turns: int
    assistant_turns: int
    total_turns: int
    exchanges: int
    average_response_chars: float


class SessionListSummary(BaseModel):
    total: int
    completed: int
    in_progress: int
    average_score: Optional[float] = None


class ScoreSummary(BaseModel):
    average: Optional[float] = None
    best: Optional[float] = None
    worst: Optional[float] = None


class StrengthFrequency(BaseModel):
    strength: str
    frequency: int


class ScorePoint(BaseModel):
    date: datetime
    score: float
    difficulty: Difficulty


class CandidateStatistics(BaseModel):
    total: int
    by_state: Dict[str, int]
    scores: ScoreSummary
    by_difficulty: Dict[str, int]
    by_subject_area: Dict[str, int]
    top_strengths: List[StrengthFrequency] = Field(default_factory=list)
    evolution: List[ScorePoint] = Field(default_factory=list)


def duration_minutes(started_at: datetime, now: datetime) -> int:
    """Whole minutes between start and now, never below one."""

    seconds = (now - started_at).total_seconds()
    return max(1, math.floor(seconds / 60 + 0.5))


def interaction_stats(history: Sequence[Turn]) -> InteractionStats:
    user = [turn for turn in history if turn.role == "user"]
    assistant = [turn for turn in history if turn.role == "assistant"]
    average = _round2(sum(len(turn.content) for turn in user) / len(user)) if user else 0.0
    return InteractionStats(
        user_turns=len(user),
        assistant_turns=len(assistant),
        total_turns=len(user) + len(assistant),
        exchanges=min(len(user), len(assistant)),
        average_response_chars=average,
    )


def _scores(sessions: Sequence[InterviewSession]) -> List[float]:
    return [
        session.score
        for session in sessions
        if session.state == SessionState.COMPLETED and session.score is not None
    ]


def summarize_sessions(sessions: Sequence[InterviewSession]) -> SessionListSummary:
    scores = _scores(sessions)
    return SessionListSummary(
        total=len(sessions),
        completed=sum(1 for session in sessions if session.state == SessionState.COMPLETED),
        in_progress=sum(1 for session in sessions if session.state.is_open),
        average_score=_round2(sum(scores) / len(scores)) if scores else None,
    )


def candidate_statistics(
    sessions: Sequence[InterviewSession],
    subject_names: Mapping[int, str],
    *,
    top_n: int = 5,
) -> CandidateStatistics:
    """Aggregate a candidate's sessions into distribution, score and strength summaries."""

    by_state = {state.value: 0 for state in SessionState}
    by_difficulty = {difficulty.value: 0 for difficulty in Difficulty}
    by_subject: Dict[str, int] = {}
    strengths: Counter[str] = Counter()

    for session in sessions:
        by_state[session.state.value] += 1
        by_difficulty[session.difficulty.value] += 1
        name = subject_names.get(session.subject_area_id, str(session.subject_area_id))
        by_subject[name] = by_subject.get(name, 0) + 1
        if session.state == SessionState.COMPLETED and session.strengths:
            strengths.update(session.strengths)

    scores = _scores(sessions)
    score_summary = ScoreSummary()
    if scores:
        score_summary = ScoreSummary(
            average=_round2(sum(scores) / len(scores)),
            best=max(scores),
            worst=min(scores),
        )

    completed = sorted(
        (s for s in sessions if s.state == SessionState.COMPLETED and s.score is not None),
        key=lambda s: s.started_at,
    )
    return CandidateStatistics(
        total=len(sessions),
        by_state=by_state,
        scores=score_summary,
        by_difficulty=by_difficulty,
        by_subject_area=by_subject,
        top_strengths=[
            StrengthFrequency(strength=name, frequency=count) for name, count in strengths.most_common(top_n)
        ],
        evolution=[
            ScorePoint(date=s.started_at, score=float(s.score), difficulty=s.difficulty) for s in completed
        ],
    )


__all__ = [
    "CandidateStatistics",
    "InteractionStats",
    "SessionListSummary",
    "candidate_statistics",
    "duration_minutes",
    "interaction_stats",
    "summarize_sessions",
]
