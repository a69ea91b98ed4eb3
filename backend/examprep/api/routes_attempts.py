# examprep/api/routes_attempts.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, StrictInt

from examprep.api.deps import get_services
from examprep.models.attempt import QuizAttempt
from examprep.services.container import Services

router = APIRouter()


class SubmitAttemptReq(BaseModel):
    quizId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)
    userAnswers: List[Optional[StrictInt]]
    timeTakenSeconds: Optional[int] = Field(None, ge=0)


def _row_to_dict(a: QuizAttempt) -> Dict[str, Any]:
    return {
        "id": a.id,
        "quizId": a.quiz_id,
        "userId": a.user_id,
        "score": a.score,
        "totalQuestions": a.total_questions,
        "userAnswers": a.user_answers,
        "timeTakenSeconds": a.time_taken_seconds,
        "completedAt": a.completed_at,
    }


@router.post("")
def submit_attempt(body: SubmitAttemptReq, services: Services = Depends(get_services)):
    attempt = services.attempt_service.submit(
        body.quizId, body.userId, body.userAnswers, body.timeTakenSeconds
    )
    return _row_to_dict(attempt)


@router.get("")
def list_attempts(userId: str, limit: int = 20, services: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    rows = services.attempts.list_for_user(userId, limit=limit)
    return [_row_to_dict(a) for a in rows]


@router.get("/{attempt_id}")
def get_attempt(attempt_id: str, services: Services = Depends(get_services)):
    row = services.attempts.get(attempt_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return _row_to_dict(row)


@router.get("/{attempt_id}/review")
def review(attempt_id: str, userId: Optional[str] = None, services: Services = Depends(get_services)):
    return services.reviews.build(attempt_id, userId).to_dict()


@router.post("/{attempt_id}/review/{index}/explain")
async def explain(attempt_id: str, index: int, userId: Optional[str] = None,
                  services: Services = Depends(get_services)):
    built = services.reviews.build(attempt_id, userId)
    if 0 <= index < len(built.items) and not built.items[index].is_coaching_candidate:
        raise HTTPException(status_code=409, detail="Question was answered correctly")
    coaching = await services.reviews.explain(attempt_id, index, userId)
    return {
        "index": index,
        "explanation": coaching.explanation,
        "trapAnalysis": coaching.trap_analysis,
        "mnemonic": coaching.mnemonic,
    }
