# backend/tests/conftest.py
from typing import Dict, List, Optional

import pytest

from examprep.config import Settings
from examprep.errors import GenerationError
from examprep.models.mock_test import EXAM_TYPE_SECTION
from examprep.services.container import build_services
from examprep.services.db import init_db, make_engine, make_session_factory
from examprep.services.generator_client import Coaching
from examprep.services.repositories import AttemptRepository, MockTestRepository


def make_questions(prefix: str, n: int = 3, correct: Optional[List[int]] = None) -> List[dict]:
    correct = correct or [i % 4 for i in range(n)]
    return [
        {
            "id": f"{prefix}-{i + 1}",
            "question": f"{prefix} question {i + 1}?",
            "options": ["A", "B", "C", "D"],
            "correctIndex": correct[i],
            "explanation": f"{prefix} explanation {i + 1}",
            "difficulty": "medium",
        }
        for i in range(n)
    ]


class FakeGenerator:
    """Stands in for the remote generator: stores a temporary row per call."""

    def __init__(self, tests: MockTestRepository, per_section: int = 2, fail_times: Optional[Dict[str, int]] = None):
        self._tests = tests
        self.per_section = per_section
        self.fail_times = dict(fail_times or {})
        self.calls: List[str] = []
        self.explained: List[tuple] = []

    async def generate(self, topic, difficulty):
        self.calls.append(topic)
        if self.fail_times.get(topic, 0) > 0:
            self.fail_times[topic] -= 1
            raise GenerationError("failed to generate exam", f"{topic} unavailable")
        questions = make_questions(topic, self.per_section)
        row = self._tests.insert(
            user_id=None,
            topic=topic,
            questions=questions,
            title=f"AI Section: {topic}",
            difficulty=difficulty.value,
            exam_type=EXAM_TYPE_SECTION,
        )
        return {"id": row.id, "questions": questions}

    async def explain(self, question, user_answer):
        self.explained.append((question.id, user_answer))
        return Coaching(explanation=f"why {question.id}", trap_analysis="trap", mnemonic="mnemo")


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def tests_repo(factory):
    return MockTestRepository(factory)


@pytest.fixture
def attempts_repo(factory):
    return AttemptRepository(factory)


@pytest.fixture
def generator(tests_repo):
    return FakeGenerator(tests_repo)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def settings():
    s = Settings()
    s.DATABASE_URL = "sqlite://"
    s.GENERATION_RETRY_DELAY = 2.0
    s.GENERATION_MAX_ATTEMPTS = None
    s.MOCK_TEST_SECTIONS = ["Physics", "Chemistry", "Math", "GK"]
    return s


@pytest.fixture
def services(settings, engine, generator, sleep):
    return build_services(settings, engine=engine, generator=generator, sleep=sleep)
