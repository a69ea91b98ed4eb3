# examprep/services/container.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.engine import Engine

from examprep.config import Settings
from examprep.services.attempt_service import AttemptService
from examprep.services.db import build_url, make_engine, make_session_factory
from examprep.services.engagement_gate import EngagementGate
from examprep.services.generation_queue import RetryPolicy
from examprep.services.generator_client import GeneratorClient
from examprep.services.merge_service import MergeAndPersist
from examprep.services.qgen_service import SectionGenerationWorker
from examprep.services.repositories import AttemptRepository, MockTestRepository
from examprep.services.review_service import ReviewAggregator
from examprep.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything created once at process start and shared by reference."""

    settings: Settings
    engine: Engine
    tests: MockTestRepository
    attempts: AttemptRepository
    generator: Any
    gate: EngagementGate
    attempt_service: AttemptService
    reviews: ReviewAggregator
    sessions: SessionRegistry

    async def aclose(self) -> None:
        close = getattr(self.generator, "aclose", None)
        if close is not None:
            await close()
        self.engine.dispose()
        logger.info("[APP] services closed")


def build_services(
    settings: Settings,
    *,
    engine: Optional[Engine] = None,
    generator: Any = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Services:
    engine = engine or make_engine(build_url(settings))
    factory = make_session_factory(engine)
    tests = MockTestRepository(factory)
    attempts = AttemptRepository(factory)

    if generator is None:
        generator = GeneratorClient(
            settings.GENERATOR_BASE_URL,
            api_key=settings.GENERATOR_API_KEY,
            timeout=settings.GENERATOR_TIMEOUT,
        )

    policy = RetryPolicy(
        delay_seconds=settings.GENERATION_RETRY_DELAY,
        max_attempts=settings.GENERATION_MAX_ATTEMPTS,
    )
    gate = EngagementGate(
        tests,
        SectionGenerationWorker(generator),
        MergeAndPersist(tests),
        policy=policy,
        sleep=sleep,
    )
    attempt_service = AttemptService(attempts, tests, gate)
    return Services(
        settings=settings,
        engine=engine,
        tests=tests,
        attempts=attempts,
        generator=generator,
        gate=gate,
        attempt_service=attempt_service,
        reviews=ReviewAggregator(attempts, tests, generator),
        sessions=SessionRegistry(tests, attempt_service, idle_ttl=settings.SESSION_IDLE_TTL),
    )
