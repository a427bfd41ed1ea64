"""SRS API

Due-word queue and the direct review path (independent of exercises).
"""
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.security import get_current_user_id
from core.errors import raise_result
from engines.learning import LearningEngine
from api.deps import get_learning_engine
from api.schemas import WordResponse

router = APIRouter()


class ReviewRequest(BaseModel):
    quality: int  # 0-5 recall rating


@router.get("/due", response_model=list[WordResponse])
async def get_due_words(
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    """Words due for review, most overdue first."""
    result = await engine.get_due_words(user_id)
    raise_result(result)
    return result.unwrap()


@router.post("/words/{word_id}/review", response_model=WordResponse)
async def review_word(
    word_id: UUID,
    review: ReviewRequest,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.update_srs_data(word_id, user_id, review.quality)
    raise_result(result)
    return result.unwrap()
