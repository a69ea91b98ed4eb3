# examprep/services/qgen_service.py
import base64
import binascii
import gzip
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from examprep.errors import GenerationError, NotFoundError, ValidationError
from examprep.models.question import Difficulty, Question

logger = logging.getLogger(__name__)

# minified row: [question, A, B, C, D, correctIndex, explanation]
_ROW_LEN = 7


@dataclass(frozen=True)
class GeneratedSection:
    storage_id: str
    questions: Tuple[Question, ...]


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    # common model wrappers: ```json ... ``` or ``` ...
    if t.startswith("```"):
        t = t.strip("`")
        # after stripping, model may leave 'json\n[...]'
        if t.lower().startswith("json"):
            t = t[4:].lstrip()
    return t


def _decompress(data: Any) -> Any:
    if not isinstance(data, str):
        raise ValidationError('compressed payload missing "data" string')
    try:
        return json.loads(gzip.decompress(base64.b64decode(data)).decode("utf-8"))
    except (binascii.Error, OSError, UnicodeDecodeError, ValueError) as e:
        raise ValidationError(f"cannot decode compressed payload: {e}") from e


def unpack_payload(payload: Any) -> Tuple[Optional[str], Any]:
    """Split a generator response into (storage id, raw question list)."""
    if not isinstance(payload, dict):
        raise ValidationError("generator payload is not an object")

    storage_id = payload.get("id") or payload.get("quizId")
    if payload.get("encoding") == "gzip_base64":
        inner = _decompress(payload.get("data"))
        if isinstance(inner, dict):
            storage_id = storage_id or inner.get("id") or inner.get("quizId")
            raw = inner.get("questions")
        else:
            raw = inner
    else:
        raw = payload.get("questions")

    if isinstance(raw, str):
        try:
            raw = json.loads(_strip_code_fences(raw))
        except ValueError as e:
            raise ValidationError(f"questions field is not valid JSON: {e}") from e

    return (str(storage_id) if storage_id else None), raw


def _row_to_item(row: List[Any]) -> Dict[str, Any]:
    q, a, b, c, d, idx, exp = row[:_ROW_LEN]
    return {"question": q, "options": [a, b, c, d], "correctIndex": idx, "explanation": exp}


def _normalize(item: Any, index: int, difficulty: Difficulty) -> Any:
    """Fill the defaults the generator may omit; never repairs invalid values."""
    if isinstance(item, list) and len(item) >= _ROW_LEN:
        item = _row_to_item(item)
    if not isinstance(item, dict):
        return item
    item = dict(item)
    if item.get("id") in (None, ""):
        item["id"] = f"q-{index + 1}"
    for key in ("question", "text"):
        if isinstance(item.get(key), str):
            item[key] = item[key].strip()
    if item.get("difficulty") in (None, ""):
        item["difficulty"] = difficulty.value
    if item.get("explanation") is None:
        item["explanation"] = ""
    return item


def parse_questions(raw: Any, difficulty: Difficulty) -> List[Question]:
    """Validate a raw question list; any malformed entry rejects the whole list."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("expected a non-empty list of questions")
    difficulty = Difficulty(difficulty)
    out: List[Question] = []
    for i, item in enumerate(raw):
        try:
            out.append(Question.model_validate(_normalize(item, i, difficulty)))
        except PydanticValidationError as e:
            raise ValidationError(f"invalid question at index {i}: {e.errors()[0]['msg']}") from e
    return out


def load_stored_questions(question_data: Any) -> Optional[List[Question]]:
    """Questions from a stored ``{"questions": [...]}`` blob, None if unusable."""
    if not isinstance(question_data, dict) or not isinstance(question_data.get("questions"), list):
        return None
    try:
        return parse_questions(question_data["questions"], Difficulty.medium)
    except ValidationError as e:
        logger.warning("[QGEN] stored question data rejected: %s", e)
        return None


def require_test(tests, test_id: str, user_id: Optional[str] = None):
    """(row, questions) for a stored test the user may see, else NotFoundError."""
    row = tests.get(test_id)
    if row is None or (user_id is not None and row.user_id not in (None, user_id)):
        raise NotFoundError("test not found or not owned by user")
    questions = load_stored_questions(row.question_data)
    if not questions:
        raise NotFoundError("test has no usable questions")
    return row, questions


class SectionGenerationWorker:
    """Performs exactly one generator call for one topic/difficulty.

    Success yields the section's validated questions plus the temporary
    storage id the generator reported. Transport errors, ``{error}`` bodies
    and malformed payloads all surface as GenerationError.
    """

    def __init__(self, generator):
        self._generator = generator

    async def generate(self, topic: str, difficulty: Difficulty) -> GeneratedSection:
        difficulty = Difficulty(difficulty)
        payload = await self._generator.generate(topic, difficulty)
        try:
            storage_id, raw = unpack_payload(payload)
            questions = parse_questions(raw, difficulty)
        except ValidationError as e:
            logger.warning("[QGEN] %s: rejected payload: %s", topic, e)
            raise GenerationError("invalid response from generator", str(e)) from e
        if not storage_id:
            raise GenerationError("invalid response from generator", "missing id")
        logger.info("[QGEN] %s: %d questions (storage id %s)", topic, len(questions), storage_id)
        return GeneratedSection(storage_id=storage_id, questions=tuple(questions))
