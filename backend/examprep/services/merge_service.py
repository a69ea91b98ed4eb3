# examprep/services/merge_service.py
import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from examprep.errors import PersistenceError, ValidationError
from examprep.models.mock_test import MockTest
from examprep.models.question import Difficulty
from examprep.services.qgen_service import GeneratedSection
from examprep.services.repositories import MockTestRepository

logger = logging.getLogger(__name__)


class MergeAndPersist:
    """Fold successful sections into one owned, incomplete test record.

    Questions are concatenated in request order, never completion order.
    The insert must succeed; deleting the temporary section rows afterwards
    is best effort and only logged on failure.
    """

    def __init__(self, tests: MockTestRepository):
        self._tests = tests

    def merge(
        self,
        *,
        user_id: str,
        topic: str,
        sections: Mapping[str, GeneratedSection],
        order: Optional[Sequence[str]] = None,
        difficulty: Optional[Difficulty] = None,
        title: Optional[str] = None,
    ) -> MockTest:
        order = list(order) if order is not None else list(sections.keys())
        missing = [t for t in order if t not in sections]
        if missing:
            raise ValidationError(f"cannot merge, sections not ready: {', '.join(missing)}")

        questions = [q.to_payload() for t in order for q in sections[t].questions]
        if not questions:
            raise ValidationError("cannot merge an empty test")

        level = Difficulty(difficulty).value if difficulty is not None else None
        record = self._tests.insert(
            user_id=user_id,
            topic=topic,
            questions=questions,
            title=title or (f"Full Mock Test – {level}" if level else "Full Mock Test"),
            difficulty=level,
        )
        logger.info("[MERGE] test %s: %d questions from %d sections", record.id, len(questions), len(order))

        self._cleanup((sections[t].storage_id for t in order), keep=record.id, owner=user_id)
        return record

    def _cleanup(self, storage_ids: Iterable[Optional[str]], keep: str, owner: str) -> None:
        ids: List[str] = [i for i in storage_ids if i and i != keep]
        if not ids:
            return
        try:
            removed = self._tests.delete_many(ids, owner=owner)
        except PersistenceError as e:
            logger.warning("[MERGE] cleanup of %d temporary rows failed (non-fatal): %s", len(ids), e)
            return
        logger.info("[MERGE] removed %d/%d temporary section rows", removed, len(ids))
