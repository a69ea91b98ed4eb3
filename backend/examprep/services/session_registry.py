# examprep/services/session_registry.py
"""Live quiz sessions for HTTP clients, kept in process memory only."""
import logging
import time
import uuid
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

from examprep.errors import NotFoundError
from examprep.models.attempt import QuizAttempt
from examprep.services.attempt_service import AttemptService
from examprep.services.qgen_service import require_test
from examprep.services.quiz_session import QuizSession, SessionState, format_time
from examprep.services.repositories import MockTestRepository

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: QuizSession
    test_id: str
    user_id: str
    lock: Lock
    touched_at: float = 0.0


class SessionRegistry:
    def __init__(
        self,
        tests: MockTestRepository,
        attempts: AttemptService,
        clock: Callable[[], float] = time.monotonic,
        idle_ttl: Optional[float] = 1800.0,
    ):
        self._tests = tests
        self._attempts = attempts
        self._clock = clock
        self._idle_ttl = idle_ttl  # None: never evict
        self._entries: Dict[str, _Entry] = {}
        self._lock = Lock()

    def start(self, test_id: str, user_id: str) -> str:
        _, questions = require_test(self._tests, test_id, user_id)
        session = QuizSession(questions, finalizer=self._attempts.finalizer(test_id, user_id), clock=self._clock)
        session_id = str(uuid.uuid4())
        self.evict_idle()
        with self._lock:
            self._entries[session_id] = _Entry(session, test_id, user_id, Lock(), self._clock())
        logger.info("[SESSION] %s started on test %s (%d questions)", session_id, test_id, len(questions))
        return session_id

    def select(self, session_id: str, question_index: int, option_index: int) -> Dict[str, Any]:
        entry = self._entry(session_id)
        with entry.lock:
            entry.session.select_option(question_index, option_index)
            return self._view(session_id, entry)

    def advance(self, session_id: str) -> Dict[str, Any]:
        entry = self._entry(session_id)
        with entry.lock:
            entry.session.advance()
            view = self._view(session_id, entry)
        self._drop_if_submitted(session_id, entry)
        return view

    def submit(self, session_id: str) -> Dict[str, Any]:
        entry = self._entry(session_id)
        with entry.lock:
            entry.session.retry_submit()
            view = self._view(session_id, entry)
        self._drop_if_submitted(session_id, entry)
        return view

    def view(self, session_id: str) -> Dict[str, Any]:
        entry = self._entry(session_id)
        with entry.lock:
            return self._view(session_id, entry)

    def discard(self, session_id: str) -> None:
        with self._lock:
            entry = self._entries.pop(session_id, None)
        if entry is None:
            raise NotFoundError("session not found")
        entry.session.dispose()
        logger.info("[SESSION] %s abandoned", session_id)

    def evict_idle(self) -> int:
        """Drop sessions nobody has touched for longer than the idle TTL."""
        if self._idle_ttl is None:
            return 0
        cutoff = self._clock() - self._idle_ttl
        with self._lock:
            stale = [sid for sid, e in self._entries.items() if e.touched_at < cutoff]
            evicted = [self._entries.pop(sid) for sid in stale]
        for entry in evicted:
            entry.session.dispose()
        if evicted:
            logger.info("[SESSION] evicted %d idle sessions", len(evicted))
        return len(evicted)

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, session_id: str) -> _Entry:
        with self._lock:
            entry = self._entries.get(session_id)
        if entry is None:
            raise NotFoundError("session not found")
        entry.touched_at = self._clock()
        return entry

    def _drop_if_submitted(self, session_id: str, entry: _Entry) -> None:
        if entry.session.submitted:
            with self._lock:
                self._entries.pop(session_id, None)
            entry.session.dispose()

    @staticmethod
    def _view(session_id: str, entry: _Entry) -> Dict[str, Any]:
        s = entry.session
        q = s.current_question
        state = s.state
        question: Dict[str, Any] = {
            "id": q.id,
            "question": q.text,
            "options": list(q.options),
            "difficulty": q.difficulty.value,
        }
        if state is not SessionState.answering:
            # options are locked now, so the answer can be revealed
            question["correctIndex"] = q.correct_index
            question["explanation"] = q.explanation
            question["optionStates"] = [s.option_state(i) for i in range(len(q.options))]

        out: Dict[str, Any] = {
            "sessionId": session_id,
            "testId": entry.test_id,
            "state": state.value,
            "currentIndex": s.current_index,
            "totalQuestions": len(s.questions),
            "isLastQuestion": s.is_last_question,
            "progress": round(s.progress, 2),
            "answers": s.answers,
            "elapsedSeconds": s.elapsed_seconds,
            "elapsed": format_time(s.elapsed_seconds),
            "question": question,
            "submitted": s.submitted,
        }
        if s.result is not None:
            out["result"] = {
                "score": s.result.score,
                "totalQuestions": s.result.total_questions,
                "userAnswers": s.result.user_answers,
                "percentage": s.result.percentage,
            }
        receipt: Optional[QuizAttempt] = s.receipt
        if receipt is not None:
            out["attemptId"] = receipt.id
        return out
