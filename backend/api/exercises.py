"""Exercises API

Generation and submission. Correct answers are never sent to the client
before an exercise is completed.
"""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from core.config import settings
from core.security import get_current_user_id
from core.errors import raise_result
from engines.learning import LearningEngine
from api.deps import get_learning_engine
from api.schemas import ExerciseResponse, ProgressResponse, WordResponse

router = APIRouter()


class GenerateRequest(BaseModel):
    limit: int | None = None


class SubmitRequest(BaseModel):
    answer: Any = None  # rating, text, or id -> definition mapping


class SubmitResponse(BaseModel):
    exercise: ExerciseResponse
    word: WordResponse | None
    progress: ProgressResponse
    is_correct: bool
    score: int
    srs_quality: int
    feedback: str
    xp_earned: int
    new_level: int
    leveled_up: bool
    reward_earned: int | None


@router.post("/generate", response_model=list[ExerciseResponse])
async def generate_exercises(
    request: GenerateRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    limit = request.limit if request and request.limit is not None else settings.EXERCISE_DEFAULT_LIMIT
    result = await engine.generate_exercises(user_id, min(limit, settings.EXERCISE_MAX_LIMIT))
    raise_result(result)
    return result.unwrap()


@router.get("", response_model=list[ExerciseResponse])
async def list_exercises(
    completed: bool | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.list_exercises(user_id, completed=completed, limit=limit, offset=offset)
    raise_result(result)
    return result.unwrap()


@router.get("/{exercise_id}", response_model=ExerciseResponse)
async def get_exercise(
    exercise_id: UUID,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.get_exercise(exercise_id, user_id)
    raise_result(result)
    return result.unwrap()


@router.post("/{exercise_id}/submit", response_model=SubmitResponse)
async def submit_answer(
    exercise_id: UUID,
    submission: SubmitRequest,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.submit_exercise_answer(exercise_id, user_id, submission.answer)
    raise_result(result)
    outcome = result.unwrap()
    return SubmitResponse(
        exercise=ExerciseResponse.model_validate(outcome.exercise),
        word=WordResponse.model_validate(outcome.word) if outcome.word is not None else None,
        progress=ProgressResponse.from_state(outcome.progress),
        is_correct=outcome.score.is_correct,
        score=outcome.score.score,
        srs_quality=outcome.score.srs_quality,
        feedback=outcome.score.feedback,
        xp_earned=outcome.xp_earned,
        new_level=outcome.new_level,
        leveled_up=outcome.leveled_up,
        reward_earned=outcome.reward_earned,
    )
