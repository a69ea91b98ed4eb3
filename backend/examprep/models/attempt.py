# examprep/models/attempt.py
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, func

from examprep.services.db import Base

UNANSWERED = -1


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quiz_id = Column(String(36), ForeignKey("mock_tests.id"), nullable=False)
    user_id = Column(String(64), nullable=False)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    user_answers = Column(JSON, nullable=False)  # option index per question, UNANSWERED if skipped
    time_taken_seconds = Column(Integer, nullable=True)
    completed_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_quiz_attempts_user_id_quiz_id", "user_id", "quiz_id"),
    )
