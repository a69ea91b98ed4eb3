# examprep/services/engagement_gate.py
"""At most one incomplete test per (user, topic).

Known limitation: the check and the insert are two separate datastore
operations, so two concurrent requests for the same user and topic (two
tabs, say) can both pass the check and leave two incomplete tests. The
next submission completes one of them. No locking is attempted.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from examprep.errors import EngagementConflictError, ValidationError
from examprep.models.question import Difficulty, Question
from examprep.services.generation_queue import GenerationQueue, RetryPolicy, SectionUpdate
from examprep.services.merge_service import MergeAndPersist
from examprep.services.qgen_service import SectionGenerationWorker, load_stored_questions
from examprep.services.repositories import MockTestRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pending:
    test_id: str
    topic: str
    questions: Optional[List[Question]] = None

    @property
    def message(self) -> str:
        return (
            f"You have an incomplete AI-generated test for {self.topic}. "
            "You must complete it before generating a new one."
        )


@dataclass(frozen=True)
class New:
    test_id: str
    questions: List[Question] = field(default_factory=list)


GateResult = Union[Pending, New]


class EngagementGate:
    def __init__(
        self,
        tests: MockTestRepository,
        worker: SectionGenerationWorker,
        merger: MergeAndPersist,
        policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._tests = tests
        self._worker = worker
        self._merger = merger
        self._policy = policy
        self._sleep = sleep

    def find_pending(self, user_id: str, topic: str) -> Optional[Pending]:
        user_id, topic = _clean(user_id, topic)
        row = self._tests.find_incomplete(user_id, topic)
        if row is None:
            return None
        logger.info("[GATE] user=%s topic=%s blocked by pending test %s", user_id, topic, row.id)
        return Pending(test_id=row.id, topic=topic, questions=load_stored_questions(row.question_data))

    def require_clear(self, user_id: str, topic: str) -> None:
        pending = self.find_pending(user_id, topic)
        if pending is not None:
            raise EngagementConflictError(pending.test_id, pending.topic, pending.questions)

    async def check_or_generate(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty,
        sections: Optional[Sequence[str]] = None,
        on_update: Optional[Callable[[SectionUpdate], Any]] = None,
    ) -> GateResult:
        """Resume the pending test for (user, topic) or generate a new one.

        Without ``sections`` this is a single generator call whose failure
        propagates. With ``sections`` the composite path runs a retrying
        queue and merges the results.
        """
        user_id, topic = _clean(user_id, topic)
        difficulty = Difficulty(difficulty)

        pending = self.find_pending(user_id, topic)
        if pending is not None:
            return pending

        if sections:
            queue = self.new_queue(sections, difficulty)
            await queue.run_to_completion(on_update)
            return self.persist_composite(user_id, topic, difficulty, queue)

        generated = await self._worker.generate(topic, difficulty)
        record = self._merger.merge(
            user_id=user_id,
            topic=topic,
            sections={topic: generated},
            difficulty=difficulty,
            title=f"AI Test: {topic}",
        )
        logger.info("[GATE] user=%s topic=%s new test %s", user_id, topic, record.id)
        return New(test_id=record.id, questions=list(generated.questions))

    def new_queue(self, sections: Sequence[str], difficulty: Difficulty) -> GenerationQueue:
        return GenerationQueue(self._worker, sections, difficulty, policy=self._policy, sleep=self._sleep)

    def persist_composite(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty,
        queue: GenerationQueue,
        title: Optional[str] = None,
    ) -> New:
        user_id, topic = _clean(user_id, topic)
        by_topic = queue.results_by_topic()
        record = self._merger.merge(
            user_id=user_id,
            topic=topic,
            sections=by_topic,
            difficulty=difficulty,
            title=title,
        )
        questions = [q for generated in by_topic.values() for q in generated.questions]
        logger.info("[GATE] user=%s topic=%s new composite test %s", user_id, topic, record.id)
        return New(test_id=record.id, questions=questions)

    def mark_completed(self, test_id: str, user_id: Optional[str] = None) -> bool:
        """Frees the (user, topic) slot held by ``test_id``."""
        done = self._tests.mark_completed(test_id, user_id)
        if not done:
            logger.warning("[GATE] mark completed: test %s not found for user %s", test_id, user_id)
        return done


def _clean(user_id: str, topic: str):
    user_id = (user_id or "").strip()
    topic = (topic or "").strip()
    if not user_id:
        raise ValidationError("userId is required")
    if not topic:
        raise ValidationError("topic is required")
    return user_id, topic
