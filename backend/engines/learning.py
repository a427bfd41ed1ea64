"""Learning Engine

Orchestrates the scheduler, generator, evaluator and gamification rules over
the stores. This is the boundary the HTTP layer talks to; every operation
returns a Result.
"""
import random
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, today, utcnow
from core.config import settings
from core.errors import (
    AppError,
    Ok,
    Err,
    ErrorCode,
    Result,
    already_completed,
    out_of_range,
    required_field,
)
from core.logging import engine_logger
from engines.exercises import ExerciseGenerator, ExerciseKind, WordCard, select_candidates
from engines.gamification import (
    CHECK_IN_KIND,
    CheckInOutcome,
    CompletionOutcome,
    ProgressState,
    apply_check_in,
    apply_completion,
    checked_in_on,
    upcoming_milestones,
)
from engines.oracle import ContentOracle, get_content_oracle
from engines.scoring import ExerciseEvaluator, ScoreCard
from engines.srs import SRSEngine, validate_quality
from engines.stores import ActivityStore, ExerciseStore, ProgressStore, WordStore
from models import ActivityLog, Exercise, VocabularyWord

log = engine_logger()


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """Everything one completed exercise changed."""
    exercise: Exercise
    word: VocabularyWord | None
    score: ScoreCard
    progress: ProgressState
    xp_earned: int
    new_level: int
    leveled_up: bool
    reward_earned: int | None


@dataclass(frozen=True, slots=True)
class CheckInStatus:
    checked_in_today: bool
    day: date
    last_check_in_date: date | None


class LearningEngine:
    """Per-request facade over the learning components."""

    __slots__ = (
        '_words', '_exercises', '_progress', '_activity',
        '_generator', '_evaluator', '_srs', '_clock',
    )

    def __init__(
        self,
        db: AsyncSession,
        oracle: ContentOracle | None = None,
        rng: random.Random | None = None,
        clock: Clock = utcnow,
    ):
        oracle = oracle or get_content_oracle()
        self._words = WordStore(db)
        self._exercises = ExerciseStore(db)
        self._progress = ProgressStore(db)
        self._activity = ActivityStore(db)
        self._generator = ExerciseGenerator(oracle, rng)
        self._evaluator = ExerciseEvaluator(oracle)
        self._srs = SRSEngine()
        self._clock = clock

    def _today(self) -> date:
        return today(self._clock)

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    async def add_word(self, user_id: str, data: dict) -> Result[VocabularyWord, AppError]:
        now = self._clock()
        result = await self._words.add(user_id, data, now)
        match result:
            case Ok(word):
                log.info("word_added", user_id=user_id, word=word.word)
                await self._activity.record(
                    user_id, "add_word", f'Added word "{word.word}"', now, target_id=word.id
                )
        return result

    async def list_words(self, user_id: str, limit: int = 50, offset: int = 0) -> Result[list[VocabularyWord], AppError]:
        return await self._words.all_for(user_id, limit=limit, offset=offset)

    async def get_word(self, word_id, user_id: str) -> Result[VocabularyWord, AppError]:
        return await self._words.get(word_id, user_id)

    async def delete_word(self, word_id, user_id: str) -> Result[None, AppError]:
        match await self._words.get(word_id, user_id):
            case Err(_) as err:
                return err
            case Ok(word):
                text = word.word
                result = await self._words.delete(word)
        if result.is_ok():
            log.info("word_deleted", user_id=user_id, word=text)
            await self._activity.record(
                user_id, "delete_word", f'Deleted word "{text}"', self._clock(), target_id=word_id
            )
        return result

    # ------------------------------------------------------------------
    # Spaced repetition
    # ------------------------------------------------------------------

    async def get_due_words(self, user_id: str) -> Result[list[VocabularyWord], AppError]:
        return await self._words.due(user_id, self._clock())

    async def update_srs_data(self, word_id, user_id: str, quality: int) -> Result[VocabularyWord, AppError]:
        """Direct review path, independent of exercises."""
        match validate_quality(quality):
            case Err(_) as err:
                return err

        match await self._words.get(word_id, user_id):
            case Err(_) as err:
                return err
            case Ok(word):
                pass

        now = self._clock()
        match self._srs.review(word, quality, now):
            case Err(_) as err:
                return err

        result = await self._words.save(word)
        if result.is_ok():
            await self._activity.record(
                user_id,
                "review_word",
                f'Reviewed "{word.word}" with quality {quality}',
                now,
                target_id=word.id,
                details={"quality": quality, "next_review_at": word.next_review_at.isoformat()},
            )
        return result

    # ------------------------------------------------------------------
    # Exercises
    # ------------------------------------------------------------------

    async def generate_exercises(self, user_id: str, limit: int | None = None) -> Result[list[Exercise], AppError]:
        limit = settings.EXERCISE_DEFAULT_LIMIT if limit is None else limit
        if limit < 1:
            return out_of_range("limit", limit, 1, None, origin="learning.generate_exercises")

        now = self._clock()
        match await self._words.due(user_id, now):
            case Err(_) as err:
                return err
            case Ok(due):
                due = due[:limit]

        recent: list[VocabularyWord] = []
        if len(due) < limit:
            match await self._words.recent(user_id, [w.id for w in due], limit - len(due)):
                case Err(_) as err:
                    return err
                case Ok(recent):
                    pass

        candidates = select_candidates(due, recent, limit)
        if not candidates:
            log.info("no_words_for_exercises", user_id=user_id)
            return Ok([])

        created: list[Exercise] = []
        async for draft in self._generator.drafts([WordCard.from_model(w) for w in candidates]):
            match await self._exercises.create(user_id, draft.to_record(), now):
                case Err(error):
                    log.error(
                        "exercise_persist_failed",
                        user_id=user_id,
                        kind=draft.kind.value,
                        word=draft.word,
                        error_code=error.code.name,
                        error=error.message,
                    )
                    continue
                case Ok(exercise):
                    created.append(exercise)
            await self._activity.record(
                user_id,
                "generate_exercise",
                f'Generated {draft.kind.value} exercise for "{draft.word}"',
                now,
                target_id=exercise.id,
            )

        log.info(
            "exercises_generated",
            user_id=user_id,
            requested=limit,
            candidates=len(candidates),
            created=len(created),
        )
        return Ok(created)

    async def list_exercises(
        self,
        user_id: str,
        completed: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Result[list[Exercise], AppError]:
        return await self._exercises.all_for(user_id, completed=completed, limit=limit, offset=offset)

    async def get_exercise(self, exercise_id, user_id: str) -> Result[Exercise, AppError]:
        return await self._exercises.get(exercise_id, user_id)

    async def submit_exercise_answer(self, exercise_id, user_id: str, answer) -> Result[SubmissionOutcome, AppError]:
        """Score an answer, then update the word's schedule and the learner's progress.

        Steps run in order without a cross-record rollback: result on the
        exercise, SRS update on the primary word, progress update.
        """
        if answer is None:
            return required_field("answer", origin="learning.submit")

        match await self._exercises.get(exercise_id, user_id):
            case Err(_) as err:
                return err
            case Ok(exercise):
                pass
        if exercise.is_completed:
            return already_completed(exercise.id, origin="learning.submit")

        kind = ExerciseKind(exercise.exercise_type)
        word: VocabularyWord | None = None
        if exercise.primary_word_id:
            match await self._words.get(exercise.primary_word_id, user_id):
                case Ok(found):
                    word = found
                case Err(error) if error.code is not ErrorCode.E4010_NOT_FOUND:
                    return Err(error)

        card = WordCard.from_model(word) if word is not None else None
        verdict = await self._evaluator.evaluate(kind, exercise.correct_answer, card, answer)

        # (a) immutable result
        now = self._clock()
        exercise.is_completed = True
        exercise.completed_at = now
        exercise.result = {
            "user_answer": answer,
            "is_correct": verdict.is_correct,
            "feedback": verdict.feedback,
            "score": verdict.score,
            "srs_quality": verdict.srs_quality,
        }
        match await self._exercises.save(exercise):
            case Err(_) as err:
                return err

        # (b) schedule the primary word
        if word is None:
            log.warning("exercise_word_missing", exercise_id=str(exercise.id), word_id=exercise.primary_word_id)
        else:
            match self._srs.review(word, verdict.srs_quality, now):
                case Err(_) as err:
                    return err
            match await self._words.save(word):
                case Err(_) as err:
                    return err

        # (c) progress
        match await self.record_completion(user_id, kind.value, verdict.score, verdict.srs_quality):
            case Err(_) as err:
                return err
            case Ok(completion):
                pass

        # (d) activity
        await self._activity.record(
            user_id,
            "complete_exercise",
            f'Completed {kind.value} exercise for "{card.word if card else "N/A"}" (score: {verdict.score})',
            now,
            target_id=exercise.id,
            details={"score": verdict.score, "is_correct": verdict.is_correct, "xp_earned": completion.xp_earned},
        )

        log.info(
            "exercise_completed",
            exercise_id=str(exercise.id),
            kind=kind.value,
            score=verdict.score,
            degraded=verdict.degraded,
            xp=completion.state.xp,
            level=completion.new_level,
            streak=completion.state.streak,
        )
        return Ok(SubmissionOutcome(
            exercise=exercise,
            word=word,
            score=verdict,
            progress=completion.state,
            xp_earned=completion.xp_earned,
            new_level=completion.new_level,
            leveled_up=completion.leveled_up,
            reward_earned=completion.reward_earned,
        ))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def get_progress(self, user_id: str) -> Result[ProgressState, AppError]:
        return (await self._progress.get_or_create(user_id)).map(ProgressStore.to_state)

    async def record_completion(
        self,
        user_id: str,
        activity_kind: str,
        score: int | None,
        srs_quality: int | None,
    ) -> Result[CompletionOutcome, AppError]:
        match await self._progress.get_or_create(user_id):
            case Err(_) as err:
                return err
            case Ok(progress):
                pass

        outcome = apply_completion(
            ProgressStore.to_state(progress), activity_kind, score, srs_quality, self._today()
        )
        return (await self._progress.write_state(progress, outcome.state)).map(lambda _: outcome)

    async def daily_check_in(self, user_id: str) -> Result[CheckInOutcome, AppError]:
        match await self._progress.get_or_create(user_id):
            case Err(_) as err:
                return err
            case Ok(progress):
                pass

        match apply_check_in(ProgressStore.to_state(progress), self._today(), user_id=user_id):
            case Err(_) as err:
                log.info("check_in_rejected", user_id=user_id)
                return err
            case Ok(outcome):
                pass

        match await self._progress.write_state(progress, outcome.state):
            case Err(_) as err:
                return err

        await self._activity.record(
            user_id,
            CHECK_IN_KIND,
            f"Daily check-in: +{outcome.reward_earned} reward, +{outcome.xp_earned} XP",
            self._clock(),
            details={"xp_gained": outcome.xp_earned, "reward_gained": outcome.reward_earned},
        )
        return Ok(outcome)

    async def check_in_status(self, user_id: str) -> Result[CheckInStatus, AppError]:
        day = self._today()
        return (await self.get_progress(user_id)).map(
            lambda state: CheckInStatus(
                checked_in_today=checked_in_on(state, day),
                day=day,
                last_check_in_date=state.last_check_in_date,
            )
        )

    async def milestones(self, user_id: str) -> Result[list[dict], AppError]:
        return (await self.get_progress(user_id)).map(lambda state: upcoming_milestones(state.streak))

    async def recent_activity(self, user_id: str, limit: int = 10, offset: int = 0) -> Result[list[ActivityLog], AppError]:
        return await self._activity.recent(user_id, limit=limit, offset=offset)
