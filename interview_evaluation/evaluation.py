"""Final interview evaluation: AI scoring with a deterministic fallback."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from config.settings import settings
from interview_session.models import Difficulty, SubjectArea, Turn
from interview_session.prompts import evaluation_messages, history_messages
from llm_gateway import AiClient, extract_json_object
from observability.metrics import MetricsSink, NullMetrics

logger = logging.getLogger(__name__)

FALLBACK_RECOMMENDATION = "Requires additional evaluation"
FALLBACK_DIMENSIONS = (
    "communication",
    "technical_knowledge",
    "relevant_experience",
    "professional_attitude",
    "adaptability",
)


class Evaluation(BaseModel):
    """Scored evaluation of a finished interview, identical in shape for AI and fallback paths."""

    score: float = Field(ge=0.0, le=10.0)
    performance_level: str = Field(min_length=1)
    strengths: List[str] = Field(min_length=1)
    improvement_areas: List[str] = Field(default_factory=list)
    detailed_scores: Dict[str, float] = Field(default_factory=dict)
    hire_recommendation: str = Field(min_length=1)
    final_comment: str = Field(min_length=1)
    suggested_next_steps: List[str] = Field(default_factory=list)

    @field_validator("detailed_scores")
    @classmethod
    def _scores_in_range(cls, value: Dict[str, float]) -> Dict[str, float]:
        for dimension, score in value.items():
            if not 0.0 <= score <= 10.0:
                raise ValueError(f"detailed score '{dimension}' out of range: {score}")
        return value

    @field_validator("strengths", "improvement_areas", "suggested_next_steps")
    @classmethod
    def _drop_blank(cls, value: List[str], info: ValidationInfo) -> List[str]:
        kept = [item.strip() for item in value if item and item.strip()]
        if info.field_name == "strengths" and not kept:
            raise ValueError("strengths must contain at least one non-blank item")
        return kept


@dataclass(frozen=True)
class Parsed:
    evaluation: Evaluation


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Union[Parsed, ParseFailure]


class EvaluationReport(BaseModel):
    """Evaluation plus whether the AI produced it."""

    evaluation: Evaluation
    ai_available: bool
    failure_reason: Optional[str] = None


def parse_evaluation(content: str) -> ParseResult:
    try:
        data = extract_json_object(content)
    except ValueError as exc:
        return ParseFailure(f"unparseable output: {exc}")
    try:
        return Parsed(Evaluation.model_validate(data))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
        return ParseFailure(f"invalid field {location}: {first.get('msg')}")


def score_band(user_turns: int) -> tuple[float, str]:
    """Fixed step function used when the AI evaluation is unavailable."""

    if user_turns >= settings.HIGH_BAND_TURNS:
        return 8.0, "Very Good"
    if user_turns >= settings.MID_BAND_TURNS:
        return 6.5, "Good"
    return 5.0, "Fair"


def heuristic_evaluation(history: Sequence[Turn]) -> Evaluation:
    user_turns = sum(1 for message in history_messages(history) if message["role"] == "user")
    score, level = score_band(user_turns)
    return Evaluation(
        score=score,
        performance_level=level,
        strengths=[f"Active participation with {user_turns} answers during the interview"],
        improvement_areas=["Detailed evaluation pending; answers were not analysed automatically"],
        detailed_scores={dimension: score for dimension in FALLBACK_DIMENSIONS},
        hire_recommendation=FALLBACK_RECOMMENDATION,
        final_comment=(
            f"The candidate completed the interview with {user_turns} answers. "
            "A manual review of the responses is recommended."
        ),
        suggested_next_steps=["Manual review of the interview transcript", "Consider a second interview"],
    )


class EvaluationEngine:
    """Turns a finished transcript into an :class:`EvaluationReport`.

    AI failures of any kind (transport errors, timeouts, malformed or incomplete JSON)
    are absorbed here and replaced by :func:`heuristic_evaluation`.
    """

    def __init__(
        self,
        ai: AiClient,
        *,
        metrics: Optional[MetricsSink] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        self._ai = ai
        self._metrics = metrics or NullMetrics()
        self._temperature = settings.EVALUATION_TEMPERATURE if temperature is None else temperature
        self._max_tokens = settings.EVALUATION_MAX_TOKENS if max_tokens is None else max_tokens

    async def evaluate(
        self,
        history: Sequence[Turn],
        subject: SubjectArea,
        difficulty: Difficulty,
    ) -> EvaluationReport:
        messages = evaluation_messages(subject, difficulty, history)
        completion = await self._ai.complete(
            messages,
            {"temperature": self._temperature, "max_tokens": self._max_tokens},
        )
        if completion.success:
            result = parse_evaluation(completion.content)
        else:
            result = ParseFailure(f"ai unavailable: {completion.error}")

        if isinstance(result, Parsed):
            self._metrics.increment("evaluation.ai")
            return EvaluationReport(evaluation=result.evaluation, ai_available=True)

        logger.warning("Falling back to heuristic evaluation: %s", result.reason)
        self._metrics.increment("evaluation.fallback")
        return EvaluationReport(
            evaluation=heuristic_evaluation(history),
            ai_available=False,
            failure_reason=result.reason,
        )


__all__ = [
    "Evaluation",
    "EvaluationEngine",
    "EvaluationReport",
    "FALLBACK_RECOMMENDATION",
    "ParseFailure",
    "ParseResult",
    "Parsed",
    "heuristic_evaluation",
    "parse_evaluation",
    "score_band",
]
