# examprep/errors.py
from typing import Any, List, Optional


class ExamPrepError(Exception):
    """Base class for every error raised by the exam core."""


class ValidationError(ExamPrepError):
    """Malformed question or generator payload; never shown as a question."""


class GenerationError(ExamPrepError):
    """The remote generator call failed or returned an unusable payload."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.details = details

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}: {self.details}" if self.details else base


class PersistenceError(ExamPrepError):
    """A datastore read or write failed. Callers may retry."""


class NotFoundError(ExamPrepError):
    pass


class SessionStateError(ExamPrepError):
    """A quiz session could not be built from its inputs."""


class EngagementConflictError(ExamPrepError):
    """The user still has an unfinished test for this topic."""

    def __init__(self, test_id: str, topic: str, questions: Optional[List[Any]] = None):
        super().__init__(
            f"You have an incomplete AI-generated test for {topic}. "
            "You must complete it before generating a new one."
        )
        self.test_id = test_id
        self.topic = topic
        self.questions = questions
