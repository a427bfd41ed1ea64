"""Vocabulary API

Words are supplied already enriched by the caller; lookups are scoped to the
current learner.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from core.security import get_current_user_id
from core.errors import raise_result
from engines.learning import LearningEngine
from api.deps import get_learning_engine
from api.schemas import WordResponse

router = APIRouter()


class WordCreate(BaseModel):
    word: str = Field(min_length=1, max_length=255)
    translation: str | None = None
    definition: str | None = None
    translated_definition: str | None = None
    phonetic: str | None = None
    audio_url: str | None = None
    example: str | None = None
    word_type: str | None = None
    difficulty: str | None = None
    notes: str | None = None


@router.post("", response_model=WordResponse, status_code=status.HTTP_201_CREATED)
async def add_word(
    data: WordCreate,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.add_word(user_id, data.model_dump())
    raise_result(result)
    return result.unwrap()


@router.get("", response_model=list[WordResponse])
async def list_words(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.list_words(user_id, limit=limit, offset=offset)
    raise_result(result)
    return result.unwrap()


@router.get("/{word_id}", response_model=WordResponse)
async def get_word(
    word_id: UUID,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.get_word(word_id, user_id)
    raise_result(result)
    return result.unwrap()


@router.delete("/{word_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_word(
    word_id: UUID,
    user_id: str = Depends(get_current_user_id),
    engine: LearningEngine = Depends(get_learning_engine),
):
    result = await engine.delete_word(word_id, user_id)
    raise_result(result)
