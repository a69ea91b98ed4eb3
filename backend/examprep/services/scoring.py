# examprep/services/scoring.py
from typing import Any, List, Optional, Sequence

from examprep.models.attempt import UNANSWERED
from examprep.models.question import OPTION_COUNT, Question


def as_selection(value: Any) -> Optional[int]:
    """A usable option index, or None for unanswered/sentinel/garbage."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value == UNANSWERED or not 0 <= value < OPTION_COUNT:
        return None
    return value


def score(questions: Sequence[Question], answers: Optional[Sequence[Any]]) -> int:
    """Count answers matching each question's correct index.

    Total and side-effect free: short, long, or malformed ``answers`` are
    read defensively, and out-of-range selections simply count as wrong.
    """
    if not answers:
        return 0
    total = 0
    for question, raw in zip(questions, answers):
        selected = as_selection(raw)
        if selected is not None and selected == question.correct_index:
            total += 1
    return total


def encode_answers(answers: Sequence[Optional[int]]) -> List[int]:
    return [UNANSWERED if a is None else a for a in answers]


def decode_answers(raw: Optional[Sequence[Any]], length: int) -> List[Optional[int]]:
    raw = list(raw or [])
    decoded = [as_selection(v) for v in raw[:length]]
    decoded.extend([None] * (length - len(decoded)))
    return decoded


def percentage(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(correct / total * 100)
