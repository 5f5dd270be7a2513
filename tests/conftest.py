import asyncio
import json
import os
import random
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from candidate_management import CandidateStore
from config.catalog import load_catalog
from config.registry import CONVERSATION_AI_KEY, CV_AI_KEY, EVALUATION_AI_KEY, METRICS_KEY, bind_service, reset_registry
from config.settings import settings
from interview_evaluation import EvaluationEngine
from interview_session.machine import InterviewService
from llm_gateway import Availability, Completion
from observability.metrics import InMemoryMetrics
from storage.directory import SqliteDirectory, list_subject_areas
from storage.migrate import migrate, seed_subject_areas
from storage.sessions import SqliteSessionRepository


EVALUATION_JSON = json.dumps(
    {
        "score": 7.5,
        "performance_level": "Good",
        "strengths": ["Clear communication", "Concrete examples"],
        "improvement_areas": ["Deeper technical detail"],
        "detailed_scores": {
            "communication": 8,
            "technical_knowledge": 7,
            "relevant_experience": 7,
            "professional_attitude": 8,
            "adaptability": 7,
        },
        "hire_recommendation": "Recommended",
        "final_comment": "Solid interview with room to grow.",
        "suggested_next_steps": ["Technical follow-up"],
    }
)

CV_ANALYSIS_JSON = json.dumps(
    {
        "strengths": ["Hands-on backend experience"],
        "technical_skills": ["Python", "SQL", "python"],
        "soft_skills": ["Teamwork"],
        "improvement_areas": ["Add measurable achievements"],
        "experience_summary": "Three years as a backend developer.",
        "education_summary": "Degree in computer engineering.",
    }
)


class ScriptedAi:
    """Chat client double that replays canned replies and records every call."""

    def __init__(self, replies: Optional[List[str]] = None, *, default: str = "", fail: bool = False) -> None:
        self.replies = list(replies or [])
        self.default = default
        self.fail = fail
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, options=None) -> Completion:
        self.calls.append({"messages": [dict(m) for m in messages], "options": dict(options or {})})
        if self.fail:
            return Completion(success=False, error="connection refused")
        content = self.replies.pop(0) if self.replies else self.default
        return Completion(success=True, content=content, model="fake-model")

    async def check_availability(self) -> Availability:
        if self.fail:
            return Availability(connected=False, error="connection refused")
        return Availability(connected=True, models=["fake-model"])


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    seed_subject_areas(db_path, load_catalog(ROOT / "config" / "subject_areas.yaml"))
    reset_registry()
    try:
        yield db_path
    finally:
        reset_registry()
        td.cleanup()


@pytest.fixture
def metrics():
    sink = InMemoryMetrics()
    bind_service(METRICS_KEY, sink)
    return sink


@pytest.fixture
def fake_ai(metrics):
    clients = SimpleNamespace(
        conversation=ScriptedAi(default="Thanks. Could you describe a recent project you are proud of?"),
        evaluation=ScriptedAi(default=EVALUATION_JSON),
        cv=ScriptedAi(default=CV_ANALYSIS_JSON),
    )
    bind_service(CONVERSATION_AI_KEY, clients.conversation)
    bind_service(EVALUATION_AI_KEY, clients.evaluation)
    bind_service(CV_AI_KEY, clients.cv)
    return clients


@pytest.fixture
def failing_ai(metrics):
    clients = SimpleNamespace(
        conversation=ScriptedAi(fail=True),
        evaluation=ScriptedAi(fail=True),
        cv=ScriptedAi(fail=True),
    )
    bind_service(CONVERSATION_AI_KEY, clients.conversation)
    bind_service(EVALUATION_AI_KEY, clients.evaluation)
    bind_service(CV_AI_KEY, clients.cv)
    return clients


@pytest.fixture
def candidate():
    return CandidateStore().create_candidate(full_name="Ana Torres", email="ana@example.com")


@pytest.fixture
def subject():
    return list_subject_areas()[0]


@pytest.fixture
def make_service(metrics):
    def _make(conversation, evaluation, **kwargs) -> InterviewService:
        kwargs.setdefault("rng", random.Random(7))
        return InterviewService(
            SqliteSessionRepository(),
            SqliteDirectory(),
            conversation,
            EvaluationEngine(evaluation, metrics=metrics),
            metrics=metrics,
            **kwargs,
        )

    return _make


@pytest.fixture
def run():
    return asyncio.run
