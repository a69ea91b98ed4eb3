# examprep/api/routes_sessions.py
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, StrictInt

from examprep.api.deps import get_services
from examprep.services.container import Services

router = APIRouter()


class StartSessionReq(BaseModel):
    testId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)


class SelectReq(BaseModel):
    optionIndex: StrictInt
    questionIndex: Optional[StrictInt] = None  # defaults to the current question


@router.post("")
def start_session(body: StartSessionReq, services: Services = Depends(get_services)):
    registry = services.sessions
    session_id = registry.start(body.testId, body.userId)
    return registry.view(session_id)


@router.get("/{session_id}")
def get_session(session_id: str, services: Services = Depends(get_services)):
    return services.sessions.view(session_id)


@router.post("/{session_id}/select")
def select_option(session_id: str, body: SelectReq, services: Services = Depends(get_services)):
    registry = services.sessions
    question_index = body.questionIndex
    if question_index is None:
        question_index = registry.view(session_id)["currentIndex"]
    return registry.select(session_id, question_index, body.optionIndex)


@router.post("/{session_id}/advance")
def advance(session_id: str, services: Services = Depends(get_services)):
    return services.sessions.advance(session_id)


@router.post("/{session_id}/submit")
def submit(session_id: str, services: Services = Depends(get_services)):
    """Retry finalization of a completed session whose attempt was not stored."""
    return services.sessions.submit(session_id)


@router.delete("/{session_id}")
def abandon(session_id: str, services: Services = Depends(get_services)):
    services.sessions.discard(session_id)
    return {"ok": True}
