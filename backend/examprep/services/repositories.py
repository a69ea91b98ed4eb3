# examprep/services/repositories.py
"""Row-oriented access to mock tests and attempts.

Each public method is one short transaction. Multi-step sequences built on
top of these (check-then-insert in the engagement gate, insert-then-delete
in the merge) are NOT atomic as a whole.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import delete, desc, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from examprep.errors import PersistenceError
from examprep.models.attempt import QuizAttempt
from examprep.models.mock_test import EXAM_TYPE_TOPIC, MockTest
from examprep.services.db import session_scope

logger = logging.getLogger(__name__)


@contextmanager
def _tx(factory: sessionmaker, what: str) -> Iterator[Session]:
    with session_scope(factory) as s:
        try:
            yield s
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            logger.error("[DB] %s failed: %s", what, e)
            raise PersistenceError(f"{what} failed") from e


class MockTestRepository:
    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    def find_incomplete(self, user_id: str, topic: str) -> Optional[MockTest]:
        with _tx(self._factory, "find incomplete test") as s:
            stmt = (
                select(MockTest)
                .where(
                    MockTest.user_id == user_id,
                    MockTest.topic == topic.strip(),
                    MockTest.is_completed.is_(False),
                )
                .order_by(MockTest.created_at)
                .limit(1)
            )
            return s.execute(stmt).scalars().first()

    def get(self, test_id: str) -> Optional[MockTest]:
        with _tx(self._factory, "load test") as s:
            return s.get(MockTest, test_id)

    def insert(
        self,
        *,
        user_id: Optional[str],
        topic: str,
        questions: List[Dict[str, Any]],
        title: str = "",
        difficulty: Optional[str] = None,
        exam_type: str = EXAM_TYPE_TOPIC,
    ) -> MockTest:
        row = MockTest(
            user_id=user_id,
            topic=topic.strip(),
            title=title,
            difficulty=difficulty,
            exam_type=exam_type,
            question_data={"questions": questions},
            is_completed=False,
        )
        with _tx(self._factory, "insert test") as s:
            s.add(row)
            s.flush()
            s.refresh(row)
        return row

    def mark_completed(self, test_id: str, user_id: Optional[str] = None) -> bool:
        stmt = update(MockTest).where(MockTest.id == test_id).values(is_completed=True)
        if user_id is not None:
            stmt = stmt.where(MockTest.user_id == user_id)
        with _tx(self._factory, "mark test completed") as s:
            res = s.execute(stmt)
        return res.rowcount > 0

    def delete_many(self, test_ids: Iterable[str], owner: Optional[str] = None) -> int:
        """Delete unfinished rows that are unowned or owned by ``owner``.

        Ids come from the generator, so anything completed or belonging to
        another user is left alone.
        """
        ids = [i for i in test_ids if i]
        if not ids:
            return 0
        stmt = delete(MockTest).where(
            MockTest.id.in_(ids),
            MockTest.is_completed.is_(False),
            or_(MockTest.user_id.is_(None), MockTest.user_id == owner),
        )
        with _tx(self._factory, "delete tests") as s:
            res = s.execute(stmt)
        return res.rowcount


class AttemptRepository:
    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    def insert(
        self,
        *,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
        user_answers: List[int],
        time_taken_seconds: Optional[int] = None,
    ) -> QuizAttempt:
        row = QuizAttempt(
            quiz_id=quiz_id,
            user_id=user_id,
            score=score,
            total_questions=total_questions,
            user_answers=list(user_answers),
            time_taken_seconds=time_taken_seconds,
        )
        with _tx(self._factory, "insert attempt") as s:
            s.add(row)
            s.flush()
            s.refresh(row)
        return row

    def get(self, attempt_id: str) -> Optional[QuizAttempt]:
        with _tx(self._factory, "load attempt") as s:
            return s.get(QuizAttempt, attempt_id)

    def list_for_user(self, user_id: str, limit: int = 20) -> List[QuizAttempt]:
        with _tx(self._factory, "list attempts") as s:
            stmt = (
                select(QuizAttempt)
                .where(QuizAttempt.user_id == user_id)
                .order_by(desc(QuizAttempt.completed_at))
                .limit(limit)
            )
            return list(s.execute(stmt).scalars().all())
