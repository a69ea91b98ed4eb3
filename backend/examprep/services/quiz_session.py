# examprep/services/quiz_session.py
"""In-memory state for one quiz attempt.

States: ANSWERING (current question has no answer yet), ANSWERED (it has
one; options are locked) and the terminal COMPLETED. There is no backward
navigation; a finished attempt is reviewed through the review service.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from examprep.errors import SessionStateError, ValidationError
from examprep.models.question import OPTION_COUNT, Question
from examprep.services import scoring

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    answering = "answering"
    answered = "answered"
    completed = "completed"


@dataclass(frozen=True)
class QuizResult:
    score: int
    total_questions: int
    user_answers: List[int]  # encoded, -1 for unanswered
    percentage: int
    elapsed_seconds: int


Finalizer = Callable[[QuizResult], Any]


def format_time(seconds: int) -> str:
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


class QuizSession:
    def __init__(
        self,
        questions: Sequence[Question],
        finalizer: Optional[Finalizer] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # frozen at start; later changes to the caller's list are invisible here
        self._questions: Tuple[Question, ...] = tuple(questions)
        if not self._questions:
            raise SessionStateError("a quiz session needs at least one question")

        self._finalizer = finalizer
        self._clock = clock
        self._answers: List[Optional[int]] = [None] * len(self._questions)
        self._index = 0
        self._started_at = clock()
        self._finished_at: Optional[float] = None
        self._result: Optional[QuizResult] = None
        self._submitted = False
        self._receipt: Any = None
        self._disposed = False

    # --- read side ---

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def answers(self) -> List[Optional[int]]:
        return list(self._answers)

    @property
    def state(self) -> SessionState:
        if self._result is not None:
            return SessionState.completed
        if self._answers[self._index] is None:
            return SessionState.answering
        return SessionState.answered

    @property
    def is_last_question(self) -> bool:
        return self._index == len(self._questions) - 1

    @property
    def progress(self) -> float:
        return (self._index + 1) / len(self._questions) * 100

    @property
    def elapsed_seconds(self) -> int:
        end = self._finished_at if self._finished_at is not None else self._clock()
        return max(0, int(end - self._started_at))

    @property
    def result(self) -> Optional[QuizResult]:
        return self._result

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def receipt(self) -> Any:
        """Whatever the finalizer returned (the stored attempt, usually)."""
        return self._receipt

    @property
    def disposed(self) -> bool:
        return self._disposed

    def option_state(self, option_index: int) -> str:
        selected = self._answers[self._index]
        if selected is None:
            return "default"
        correct = self.current_question.correct_index
        if option_index == correct:
            return "correct"
        if option_index == selected:
            return "incorrect"
        return "default"

    # --- transitions ---

    def select_option(self, question_index: int, option_index: int) -> bool:
        """Record an answer for the current question.

        Returns False, leaving the session untouched, when the session is
        not in ANSWERING for ``question_index``; the option index is only
        validated for a call that would record it.
        """
        if self._disposed or question_index != self._index or self.state is not SessionState.answering:
            logger.debug("[SESSION] ignored select(%s, %s) in %s@%s",
                         question_index, option_index, self.state.value, self._index)
            return False
        if isinstance(option_index, bool) or not isinstance(option_index, int) \
                or not 0 <= option_index < OPTION_COUNT:
            raise ValidationError(f"option index must be 0..{OPTION_COUNT - 1}, got {option_index!r}")
        self._answers[self._index] = option_index
        return True

    def advance(self) -> Optional[QuizResult]:
        """Move past an answered question.

        On the last question this completes the session, computes the score
        and runs the finalizer; the result is returned. Every other call
        (including any call after completion) returns None.
        """
        if self._disposed or self.state is not SessionState.answered:
            return None
        if not self.is_last_question:
            self._index += 1
            return None

        self._finished_at = self._clock()
        correct = scoring.score(self._questions, self._answers)
        total = len(self._questions)
        self._result = QuizResult(
            score=correct,
            total_questions=total,
            user_answers=scoring.encode_answers(self._answers),
            percentage=scoring.percentage(correct, total),
            elapsed_seconds=self.elapsed_seconds,
        )
        logger.info("[SESSION] completed: %s/%s", correct, total)
        self._finalize()
        return self._result

    def retry_submit(self) -> Any:
        """Re-run finalization with the same answers after a failed submit."""
        if self._result is None:
            raise SessionStateError("session is not completed yet")
        if not self._submitted:
            self._finalize()
        return self._receipt

    def dispose(self) -> None:
        # late callbacks must not write into an abandoned session
        self._disposed = True

    def _finalize(self) -> None:
        if self._finalizer is not None:
            self._receipt = self._finalizer(self._result)
        self._submitted = True
