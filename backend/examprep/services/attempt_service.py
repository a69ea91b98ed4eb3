# examprep/services/attempt_service.py
import logging
from typing import Callable, List, Optional

from examprep.errors import ValidationError
from examprep.models.attempt import UNANSWERED, QuizAttempt
from examprep.models.question import OPTION_COUNT
from examprep.services import scoring
from examprep.services.engagement_gate import EngagementGate
from examprep.services.qgen_service import require_test
from examprep.services.quiz_session import QuizResult
from examprep.services.repositories import AttemptRepository, MockTestRepository

logger = logging.getLogger(__name__)


class AttemptService:
    """Stores finished attempts and releases the test's engagement slot."""

    def __init__(self, attempts: AttemptRepository, tests: MockTestRepository, gate: EngagementGate):
        self._attempts = attempts
        self._tests = tests
        self._gate = gate

    def finalizer(self, quiz_id: str, user_id: str) -> Callable[[QuizResult], QuizAttempt]:
        """Finalizer for a QuizSession.

        Safe to call again after a PersistenceError: the attempt row is
        inserted at most once, only the remaining steps are repeated.
        """
        stored: List[QuizAttempt] = []

        def _finalize(result: QuizResult) -> QuizAttempt:
            if not stored:
                stored.append(
                    self._attempts.insert(
                        quiz_id=quiz_id,
                        user_id=user_id,
                        score=result.score,
                        total_questions=result.total_questions,
                        user_answers=result.user_answers,
                        time_taken_seconds=result.elapsed_seconds,
                    )
                )
            self._gate.mark_completed(quiz_id, user_id)
            logger.info("[ATTEMPT] %s stored for test %s (%s/%s)",
                        stored[0].id, quiz_id, result.score, result.total_questions)
            return stored[0]

        return _finalize

    def submit(
        self,
        quiz_id: str,
        user_id: str,
        user_answers: List[Optional[int]],
        time_taken_seconds: Optional[int] = None,
    ) -> QuizAttempt:
        """Score and store an attempt sent in one piece by the client."""
        _, questions = require_test(self._tests, quiz_id, user_id)
        if len(user_answers) != len(questions):
            raise ValidationError(f"expected {len(questions)} answers, got {len(user_answers)}")
        for a in user_answers:
            if a is not None and a != UNANSWERED and not 0 <= a < OPTION_COUNT:
                raise ValidationError(f"answer out of range: {a}")

        decoded = scoring.decode_answers(user_answers, len(questions))
        correct = scoring.score(questions, decoded)
        result = QuizResult(
            score=correct,
            total_questions=len(questions),
            user_answers=scoring.encode_answers(decoded),
            percentage=scoring.percentage(correct, len(questions)),
            elapsed_seconds=time_taken_seconds or 0,
        )
        return self.finalizer(quiz_id, user_id)(result)
