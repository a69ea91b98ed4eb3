import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from examprep.api.deps import get_services
from examprep.errors import EngagementConflictError, GenerationError, PersistenceError
from examprep.models.question import Difficulty
from examprep.services.blueprints import blueprint_title, resolve_sections
from examprep.services.container import Services
from examprep.services.engagement_gate import New, Pending
from examprep.services.qgen_service import require_test

logger = logging.getLogger(__name__)

router = APIRouter()


class CheckOrGenerateReq(BaseModel):
    userId: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.medium


class MockTestReq(CheckOrGenerateReq):
    examType: Optional[str] = None
    sections: Optional[List[str]] = None  # when present → overrides examType


def _pending_body(p: Pending) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "pending", "testId": p.test_id, "message": p.message}
    if p.questions is not None:
        body["questionData"] = {"questions": [q.to_payload() for q in p.questions]}
    return body


def _new_body(n: New) -> Dict[str, Any]:
    return {"status": "new", "testId": n.test_id, "data": {"questions": [q.to_payload() for q in n.questions]}}


def _event(payload: Dict[str, Any]) -> str:
    return json.dumps(payload) + "\n"


@router.post("/check_or_generate")
async def check_or_generate(body: CheckOrGenerateReq, strict: bool = False,
                            services: Services = Depends(get_services)):
    """Resume the user's unfinished test for this topic, or generate one."""
    gate = services.gate
    if strict:
        gate.require_clear(body.userId, body.topic)
    result = await gate.check_or_generate(body.userId, body.topic, body.difficulty)
    if isinstance(result, Pending):
        return _pending_body(result)
    return _new_body(result)


@router.post("/mock")
async def mock_test(body: MockTestReq, strict: bool = False,
                    services: Services = Depends(get_services)):
    """Composite test: NDJSON stream of section updates, then the merged test id."""
    gate = services.gate
    sections = resolve_sections(body.examType, body.sections, services.settings.MOCK_TEST_SECTIONS)

    pending = gate.find_pending(body.userId, body.topic)
    if pending is not None:
        if strict:
            raise EngagementConflictError(pending.test_id, pending.topic, pending.questions)
        return _pending_body(pending)

    queue = gate.new_queue(sections, body.difficulty)
    title = blueprint_title(body.examType, body.difficulty) if not body.sections else None

    async def events():
        try:
            async for update in queue.run():
                yield _event(update.to_event())
            new = gate.persist_composite(body.userId, body.topic, body.difficulty, queue, title=title)
        except (GenerationError, PersistenceError) as e:
            logger.error("[QGEN] mock test for %s failed: %s", body.topic, e)
            yield _event({"status": "failed", "error": str(e)})
            return
        yield _event({"status": "merged", "testId": new.test_id, "totalQuestions": len(new.questions)})

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.get("/pending")
def pending_test(userId: str, topic: str, services: Services = Depends(get_services)):
    pending = services.gate.find_pending(userId, topic)
    return {"pending": _pending_body(pending) if pending else None}


@router.get("/{test_id}")
def get_test(test_id: str, userId: Optional[str] = None, services: Services = Depends(get_services)):
    row, questions = require_test(services.tests, test_id, userId)
    return {
        "id": row.id,
        "userId": row.user_id,
        "topic": row.topic,
        "title": row.title,
        "difficulty": row.difficulty,
        "isCompleted": row.is_completed,
        "createdAt": row.created_at,
        "questionData": {"questions": [q.to_payload() for q in questions]},
    }
