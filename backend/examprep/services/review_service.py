# examprep/services/review_service.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from examprep.errors import NotFoundError, ValidationError
from examprep.models.question import Question
from examprep.services import scoring
from examprep.services.generator_client import Coaching
from examprep.services.qgen_service import require_test
from examprep.services.repositories import AttemptRepository, MockTestRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewItem:
    index: int
    question: Question
    user_selected_index: Optional[int]
    correct_index: int
    is_correct: bool

    @property
    def is_coaching_candidate(self) -> bool:
        # wrong or unanswered; correct answers are never coached
        return not self.is_correct

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "question": self.question.to_payload(),
            "userSelectedIndex": self.user_selected_index,
            "correctIndex": self.correct_index,
            "isCorrect": self.is_correct,
            "isCoachingCandidate": self.is_coaching_candidate,
        }


@dataclass(frozen=True)
class Review:
    attempt_id: str
    quiz_id: str
    items: Tuple[ReviewItem, ...]

    @property
    def score(self) -> int:
        return sum(1 for i in self.items if i.is_correct)

    @property
    def coaching_candidates(self) -> List[ReviewItem]:
        return [i for i in self.items if i.is_coaching_candidate]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attemptId": self.attempt_id,
            "quizId": self.quiz_id,
            "score": self.score,
            "totalQuestions": len(self.items),
            "items": [i.to_dict() for i in self.items],
        }


def build_review(user_answers: Optional[Sequence[Any]], questions: Sequence[Question]) -> List[ReviewItem]:
    """Per-question correctness for a stored attempt. Pure; -1 reads as None."""
    selections = scoring.decode_answers(user_answers, len(questions))
    items = []
    for i, (q, selected) in enumerate(zip(questions, selections)):
        items.append(
            ReviewItem(
                index=i,
                question=q,
                user_selected_index=selected,
                correct_index=q.correct_index,
                is_correct=selected is not None and selected == q.correct_index,
            )
        )
    return items


class ReviewAggregator:
    def __init__(self, attempts: AttemptRepository, tests: MockTestRepository, generator=None):
        self._attempts = attempts
        self._tests = tests
        self._generator = generator

    def build(self, attempt_id: str, user_id: Optional[str] = None) -> Review:
        attempt = self._attempts.get(attempt_id)
        if attempt is None or (user_id is not None and attempt.user_id != user_id):
            raise NotFoundError("attempt not found")
        _, questions = require_test(self._tests, attempt.quiz_id)
        items = build_review(attempt.user_answers, questions)
        return Review(attempt_id=attempt.id, quiz_id=attempt.quiz_id, items=tuple(items))

    async def explain(self, attempt_id: str, index: int, user_id: Optional[str] = None) -> Coaching:
        """On-demand coaching for one wrong or unanswered question."""
        review = self.build(attempt_id, user_id)
        if not 0 <= index < len(review.items):
            raise NotFoundError(f"no question at index {index}")
        item = review.items[index]
        if not item.is_coaching_candidate:
            raise ValidationError("correct answers do not need coaching")
        if self._generator is None:
            raise ValidationError("coaching is not configured")
        logger.info("[REVIEW] coaching attempt=%s index=%d", attempt_id, index)
        return await self._generator.explain(item.question, item.user_selected_index)
