# examprep/services/generator_client.py
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from examprep.errors import GenerationError
from examprep.models.question import Difficulty, Question

logger = logging.getLogger(__name__)

GENERATE_PATH = "/generate-exam"
EXPLAIN_PATH = "/explain-question"


class Coaching(BaseModel):
    explanation: str
    trap_analysis: Optional[str] = None
    mnemonic: str = ""


def _option_text(question: Question, index: Optional[int]) -> Optional[str]:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(question.options):
        return None
    return question.options[index]


class GeneratorClient:
    """Thin async client for the remote question generator.

    One call per method, no retries; retry policy belongs to the caller.
    Timeouts are left to the transport.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
            headers["apikey"] = api_key
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def generate(self, topic: str, difficulty: Difficulty) -> Dict[str, Any]:
        """Raw ``{id, questions}`` payload for one topic; validated by the worker."""
        body = {"topic": topic.strip(), "difficulty": Difficulty(difficulty).value}
        return await self._post(GENERATE_PATH, body)

    async def explain(self, question: Question, user_answer: Optional[int]) -> Coaching:
        body = {
            "question": question.text,
            "options": list(question.options),
            "correctAnswer": question.options[question.correct_index],
            "userAnswer": _option_text(question, user_answer),
        }
        data = await self._post(EXPLAIN_PATH, body)
        try:
            return Coaching.model_validate(data)
        except PydanticValidationError as e:
            raise GenerationError("invalid explanation payload", str(e)) from e

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = await self._http.post(path, json=body)
        except httpx.HTTPError as e:
            logger.warning("[GEN] %s transport error: %s", path, e)
            raise GenerationError("failed to connect to generator", str(e)) from e

        try:
            data = res.json()
        except ValueError:
            data = None

        if res.is_error:
            details = None
            if isinstance(data, dict):
                details = data.get("details") or data.get("error")
            raise GenerationError(f"generator returned HTTP {res.status_code}", details or res.text[:300])
        if not isinstance(data, dict):
            raise GenerationError("no data returned from generator")
        if data.get("error"):
            raise GenerationError(str(data["error"]), data.get("details"))
        return data
