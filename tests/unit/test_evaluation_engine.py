from __future__ import annotations

import asyncio
import json

import pytest

from interview_evaluation import (
    FALLBACK_RECOMMENDATION,
    EvaluationEngine,
    ParseFailure,
    Parsed,
    heuristic_evaluation,
    parse_evaluation,
    score_band,
)
from interview_session.models import Difficulty, SubjectArea, Turn

from conftest import EVALUATION_JSON, ScriptedAi

SUBJECT = SubjectArea(subject_area_id=1, name="Cybersecurity", area="Digital Technology")


def _history(user_turns: int):
    turns = [Turn(role="assistant", content="Welcome")]
    for i in range(user_turns):
        turns.append(Turn(role="user", content=f"answer {i}"))
        turns.append(Turn(role="assistant", content=f"question {i}"))
    return turns


def test_parse_accepts_fenced_json_with_chatter():
    content = "Here is the evaluation:\n```json\n" + EVALUATION_JSON + "\n```\nHope it helps {really}"
    result = parse_evaluation(content)
    assert isinstance(result, Parsed)
    assert result.evaluation.score == 7.5
    assert result.evaluation.detailed_scores["communication"] == 8


@pytest.mark.parametrize(
    "content",
    [
        "no json at all",
        json.dumps({"score": 7}),
        json.dumps({**json.loads(EVALUATION_JSON), "score": 11}),
        json.dumps({**json.loads(EVALUATION_JSON), "strengths": []}),
        json.dumps({**json.loads(EVALUATION_JSON), "strengths": ["", "  "]}),
        json.dumps({**json.loads(EVALUATION_JSON), "detailed_scores": {"communication": -1}}),
    ],
)
def test_parse_failures_are_values(content):
    assert isinstance(parse_evaluation(content), ParseFailure)


@pytest.mark.parametrize(
    "user_turns, expected",
    [(0, (5.0, "Fair")), (4, (5.0, "Fair")), (5, (6.5, "Good")), (9, (6.5, "Good")), (10, (8.0, "Very Good"))],
)
def test_score_band_step_function(user_turns, expected):
    assert score_band(user_turns) == expected


def test_heuristic_evaluation_shape():
    evaluation = heuristic_evaluation(_history(3) + [Turn(role="system", content="ignored")])
    assert evaluation.score == 5.0
    assert evaluation.hire_recommendation == FALLBACK_RECOMMENDATION
    assert "3" in evaluation.strengths[0]
    assert set(evaluation.detailed_scores.values()) == {5.0}


def test_engine_uses_ai_when_valid(metrics):
    ai = ScriptedAi(default=EVALUATION_JSON)
    engine = EvaluationEngine(ai, metrics=metrics)
    report = asyncio.run(engine.evaluate(_history(2), SUBJECT, Difficulty.BASIC))

    assert report.ai_available is True
    assert report.evaluation.score == 7.5
    assert ai.calls[0]["options"]["temperature"] == pytest.approx(0.3)
    assert metrics.counter("evaluation.ai") == 1


@pytest.mark.parametrize("ai", [ScriptedAi(fail=True), ScriptedAi(default="I cannot evaluate this.")])
def test_engine_falls_back(ai, metrics):
    engine = EvaluationEngine(ai, metrics=metrics)
    report = asyncio.run(engine.evaluate(_history(10), SUBJECT, Difficulty.ADVANCED))

    assert report.ai_available is False
    assert report.failure_reason
    assert report.evaluation.score == 8.0
    assert report.evaluation.performance_level == "Very Good"
    assert metrics.counter("evaluation.fallback") == 1
