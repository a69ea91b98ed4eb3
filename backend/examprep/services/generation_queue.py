# examprep/services/generation_queue.py
"""Serial, retrying generation of the sections of a composite test.

Sections run strictly one at a time. A failed section is marked ``error``,
moved to the back of the queue and retried after a fixed delay. With the
default policy there is no retry ceiling: the loop only ends when every
section succeeded or the consumer stops iterating / cancels the task.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from examprep.errors import GenerationError, ValidationError
from examprep.models.question import Difficulty, Question
from examprep.services.qgen_service import GeneratedSection

logger = logging.getLogger(__name__)


class SectionStatus(str, Enum):
    idle = "idle"
    loading = "loading"
    success = "success"
    error = "error"


@dataclass(frozen=True)
class RetryPolicy:
    delay_seconds: float = 2.0
    max_attempts: Optional[int] = None  # None: retry forever

    def __post_init__(self):
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

    def allows_retry(self, attempts: int) -> bool:
        return self.max_attempts is None or attempts < self.max_attempts


@dataclass
class Section:
    topic: str
    status: SectionStatus = SectionStatus.idle
    questions: Optional[Tuple[Question, ...]] = None
    storage_id: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class SectionUpdate:
    topic: str
    status: SectionStatus
    attempt: int
    error: Optional[str] = None
    question_count: int = 0

    def to_event(self) -> Dict[str, Any]:
        event: Dict[str, Any] = {"section": self.topic, "status": self.status.value, "attempt": self.attempt}
        if self.error:
            event["error"] = self.error
        if self.status is SectionStatus.success:
            event["questionCount"] = self.question_count
        return event


class GenerationQueue:
    def __init__(
        self,
        worker,
        topics: Sequence[str],
        difficulty: Difficulty,
        policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        cleaned = [t.strip() for t in topics]
        if not cleaned or any(not t for t in cleaned):
            raise ValidationError("at least one non-empty section topic is required")
        if len(set(cleaned)) != len(cleaned):
            raise ValidationError("section topics must be unique")

        self._worker = worker
        self._difficulty = Difficulty(difficulty)
        self._policy = policy
        self._sleep = sleep
        # dicts keep insertion order: this is the request order
        self._sections: Dict[str, Section] = {t: Section(topic=t) for t in cleaned}

    @property
    def sections(self) -> List[Section]:
        return list(self._sections.values())

    @property
    def done(self) -> bool:
        return all(s.status is SectionStatus.success for s in self._sections.values())

    async def run(self) -> AsyncIterator[SectionUpdate]:
        """Drive every section to success, yielding each status change."""
        queue = deque(t for t, s in self._sections.items() if s.status is not SectionStatus.success)

        while queue:
            topic = queue.popleft()
            section = self._sections[topic]
            section.status = SectionStatus.loading
            section.attempts += 1
            yield SectionUpdate(topic, section.status, section.attempts)

            try:
                generated: GeneratedSection = await self._worker.generate(topic, self._difficulty)
            except GenerationError as e:
                section.status = SectionStatus.error
                section.last_error = str(e)
                logger.warning("[QUEUE] %s failed (attempt %d), will retry: %s", topic, section.attempts, e)
                yield SectionUpdate(topic, section.status, section.attempts, error=str(e))

                if not self._policy.allows_retry(section.attempts):
                    raise GenerationError(f"{topic}: gave up after {section.attempts} attempts", str(e)) from e
                queue.append(topic)
                await self._sleep(self._policy.delay_seconds)
                continue

            section.status = SectionStatus.success
            section.questions = generated.questions
            section.storage_id = generated.storage_id
            section.last_error = None
            yield SectionUpdate(
                topic, section.status, section.attempts, question_count=len(generated.questions)
            )

        logger.info("[QUEUE] all %d sections ready", len(self._sections))

    async def run_to_completion(
        self, on_update: Optional[Callable[[SectionUpdate], Any]] = None
    ) -> List[GeneratedSection]:
        async for update in self.run():
            if on_update is not None:
                on_update(update)
        return self.results()

    def results(self) -> List[GeneratedSection]:
        """Successful sections in request order."""
        if not self.done:
            pending = [s.topic for s in self._sections.values() if s.status is not SectionStatus.success]
            raise GenerationError("sections not ready", ", ".join(pending))
        return [GeneratedSection(storage_id=s.storage_id, questions=s.questions) for s in self._sections.values()]

    def results_by_topic(self) -> Dict[str, GeneratedSection]:
        return dict(zip(self._sections.keys(), self.results()))
