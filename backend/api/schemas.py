"""Response models shared by the routers."""
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from engines.gamification import ProgressState


class WordResponse(BaseModel):
    id: UUID
    word: str
    translation: str | None
    definition: str | None
    translated_definition: str | None
    phonetic: str | None
    audio_url: str | None
    example: str | None
    word_type: str | None
    difficulty: str | None
    notes: str | None
    repetitions: int
    ease_factor: float
    last_reviewed_at: datetime | None
    next_review_at: datetime
    added_at: datetime

    class Config:
        from_attributes = True


class ExerciseResponse(BaseModel):
    id: UUID
    word_ids: list[str]
    exercise_type: str
    question: Any
    options: Any | None
    is_completed: bool
    result: dict | None
    generated_at: datetime
    completed_at: datetime | None

    class Config:
        from_attributes = True


class ProgressResponse(BaseModel):
    xp: int
    level: int
    streak: int
    beta_rewards: int
    last_activity_date: date | None
    last_check_in_date: date | None

    @classmethod
    def from_state(cls, state: ProgressState) -> "ProgressResponse":
        return cls(
            xp=state.xp,
            level=state.level,
            streak=state.streak,
            beta_rewards=state.beta_rewards,
            last_activity_date=state.last_activity_date,
            last_check_in_date=state.last_check_in_date,
        )
