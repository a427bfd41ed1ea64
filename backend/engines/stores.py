"""Persistence collaborators for the learning engine.

Thin Result-returning wrappers over async SQLAlchemy. Every lookup filters by
owner, so a foreign record looks exactly like a missing one.
"""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import (
    fetch_all,
    fetch_one_by,
    create_entity,
    update_entity,
    delete_entity,
)
from core.errors import (
    AppError,
    Ok,
    Err,
    ErrorCode,
    Result,
    duplicate_key,
    required_field,
)
from core.logging import db_logger
from engines.gamification import ProgressState
from models import VocabularyWord, Exercise, UserProgress, ActivityLog

log = db_logger()

WORD_FIELDS = (
    "translation", "definition", "translated_definition", "phonetic",
    "audio_url", "example", "word_type", "difficulty", "notes",
)


def as_uuid(value: str | UUID) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class WordStore:
    """Vocabulary words keyed by (user, word)."""

    __slots__ = ("_db",)

    def __init__(self, db: AsyncSession):
        self._db = db

    async def add(self, user_id: str, data: dict, now: datetime) -> Result[VocabularyWord, AppError]:
        text = (data.get("word") or "").strip().lower()
        if not text:
            return required_field("word", origin="word_store.add")

        match await fetch_one_by(self._db, VocabularyWord, user_id=as_uuid(user_id), word=text):
            case Ok(_):
                return duplicate_key("VocabularyWord", "word", text, origin="word_store.add")
            case Err(error) if error.code is not ErrorCode.E4010_NOT_FOUND:
                return Err(error)

        word = VocabularyWord(
            user_id=as_uuid(user_id),
            word=text,
            added_at=now,
            next_review_at=now,
            **{f: data.get(f) for f in WORD_FIELDS},
        )
        return await create_entity(self._db, word)

    async def get(self, word_id: str | UUID, user_id: str) -> Result[VocabularyWord, AppError]:
        return await fetch_one_by(
            self._db, VocabularyWord, "VocabularyWord", id=as_uuid(word_id), user_id=as_uuid(user_id)
        )

    async def all_for(self, user_id: str, limit: int = 50, offset: int = 0) -> Result[list[VocabularyWord], AppError]:
        query = (
            select(VocabularyWord)
            .where(VocabularyWord.user_id == as_uuid(user_id))
            .order_by(VocabularyWord.added_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return await fetch_all(self._db, query)

    async def due(self, user_id: str, now: datetime) -> Result[list[VocabularyWord], AppError]:
        """Words whose review time has come, most overdue first."""
        query = (
            select(VocabularyWord)
            .where(
                VocabularyWord.user_id == as_uuid(user_id),
                VocabularyWord.next_review_at <= now,
            )
            .order_by(VocabularyWord.next_review_at.asc())
        )
        return await fetch_all(self._db, query)

    async def recent(
        self, user_id: str, exclude_ids: list[UUID], limit: int
    ) -> Result[list[VocabularyWord], AppError]:
        query = select(VocabularyWord).where(VocabularyWord.user_id == as_uuid(user_id))
        if exclude_ids:
            query = query.where(VocabularyWord.id.not_in(exclude_ids))
        query = query.order_by(VocabularyWord.added_at.desc()).limit(limit)
        return await fetch_all(self._db, query)

    async def save(self, word: VocabularyWord) -> Result[VocabularyWord, AppError]:
        return await update_entity(self._db, word)

    async def delete(self, word: VocabularyWord) -> Result[None, AppError]:
        return await delete_entity(self._db, word)


class ExerciseStore:
    """Exercises keyed by id, filtered by owner."""

    __slots__ = ("_db",)

    def __init__(self, db: AsyncSession):
        self._db = db

    async def create(self, user_id: str, record: dict, now: datetime) -> Result[Exercise, AppError]:
        exercise = Exercise(user_id=as_uuid(user_id), generated_at=now, is_completed=False, **record)
        return await create_entity(self._db, exercise)

    async def get(self, exercise_id: str | UUID, user_id: str) -> Result[Exercise, AppError]:
        return await fetch_one_by(
            self._db, Exercise, "Exercise", id=as_uuid(exercise_id), user_id=as_uuid(user_id)
        )

    async def all_for(
        self,
        user_id: str,
        completed: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Result[list[Exercise], AppError]:
        query = select(Exercise).where(Exercise.user_id == as_uuid(user_id))
        if completed is not None:
            query = query.where(Exercise.is_completed == completed)
        query = query.order_by(Exercise.generated_at.desc()).offset(offset).limit(limit)
        return await fetch_all(self._db, query)

    async def save(self, exercise: Exercise) -> Result[Exercise, AppError]:
        return await update_entity(self._db, exercise)


class ProgressStore:
    """One progress row per learner, created zeroed on first access."""

    __slots__ = ("_db",)

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_or_create(self, user_id: str) -> Result[UserProgress, AppError]:
        match await fetch_one_by(self._db, UserProgress, "UserProgress", user_id=as_uuid(user_id)):
            case Ok(progress):
                return Ok(progress)
            case Err(error) if error.code is not ErrorCode.E4010_NOT_FOUND:
                return Err(error)
        log.info("progress_created", user_id=str(user_id))
        return await create_entity(
            self._db, UserProgress(user_id=as_uuid(user_id), xp=0, streak=0, beta_rewards=0)
        )

    @staticmethod
    def to_state(progress: UserProgress) -> ProgressState:
        return ProgressState(
            xp=progress.xp or 0,
            streak=progress.streak or 0,
            last_activity_date=progress.last_activity_date,
            last_check_in_date=progress.last_check_in_date,
            beta_rewards=progress.beta_rewards or 0,
        )

    async def write_state(self, progress: UserProgress, state: ProgressState) -> Result[UserProgress, AppError]:
        progress.xp = state.xp
        progress.streak = state.streak
        progress.last_activity_date = state.last_activity_date
        progress.last_check_in_date = state.last_check_in_date
        progress.beta_rewards = state.beta_rewards
        return await update_entity(self._db, progress)


class ActivityStore:
    """Append-only activity feed. Recording never fails the caller."""

    __slots__ = ("_db",)

    def __init__(self, db: AsyncSession):
        self._db = db

    async def record(
        self,
        user_id: str,
        activity_type: str,
        description: str,
        now: datetime,
        target_id: str | UUID | None = None,
        details: dict | None = None,
    ) -> None:
        entry = ActivityLog(
            user_id=as_uuid(user_id),
            activity_type=activity_type,
            description=description,
            target_id=str(target_id) if target_id else None,
            details=details or {},
            created_at=now,
        )
        match await create_entity(self._db, entry):
            case Ok(_):
                log.debug("activity_recorded", activity_type=activity_type, user_id=str(user_id))
            case Err(error):
                log.error(
                    "activity_record_failed",
                    activity_type=activity_type,
                    user_id=str(user_id),
                    error_code=error.code.name,
                    error=error.message,
                )

    async def recent(self, user_id: str, limit: int = 10, offset: int = 0) -> Result[list[ActivityLog], AppError]:
        query = (
            select(ActivityLog)
            .where(ActivityLog.user_id == as_uuid(user_id))
            .order_by(ActivityLog.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return await fetch_all(self._db, query)
