"""Exercise Evaluator

Scores a submitted answer for each exercise kind. Scorers return Results;
``ExerciseEvaluator.evaluate`` turns any scoring failure (malformed answer,
oracle down after retries, a scorer that raises) into a zero-score card so the exercise still
completes.
"""
import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from core.logging import exercise_logger
from core.errors import (
    AppError,
    Ok,
    Err,
    Result,
    invalid_format,
    out_of_range,
    validation_error,
    internal_error,
)
from engines.exercises import ExerciseKind, WordCard
from engines.oracle import ContentOracle
from engines.srs import round_half_up

log = exercise_logger()

PASSING_FREE_TEXT_SCORE = 60
MIN_SENTENCE_LENGTH = 5

LEADING_INT = re.compile(r"\s*([+-]?\d+)")

GENERIC_FAILURE_FEEDBACK = (
    "Something went wrong while scoring this answer, so it was recorded with a score of 0. "
    "Please try another exercise."
)


@dataclass(frozen=True, slots=True)
class ScoreCard:
    """Verdict on one submission."""
    is_correct: bool
    score: int  # 0-100
    srs_quality: int  # 0-5
    feedback: str
    degraded: bool = False

    @classmethod
    def failed(cls) -> "ScoreCard":
        return cls(is_correct=False, score=0, srs_quality=0, feedback=GENERIC_FAILURE_FEEDBACK, degraded=True)


def _normalize(text: str) -> str:
    return text.strip().casefold()


class ExerciseEvaluator:
    """Per-kind scorer table with the degrade-not-fail policy."""

    __slots__ = ('_oracle', '_scorers')

    def __init__(self, oracle: ContentOracle):
        self._oracle = oracle
        self._scorers = {
            ExerciseKind.FLASHCARD: self._score_flashcard,
            ExerciseKind.MULTIPLE_CHOICE: self._score_exact,
            ExerciseKind.FILL_IN_BLANK: self._score_exact,
            ExerciseKind.LISTEN_CHOOSE_IMAGE: self._score_exact,
            ExerciseKind.SENTENCE_CONSTRUCTION: self._score_sentence,
            ExerciseKind.PRONUNCIATION_PRACTICE: self._score_pronunciation,
            ExerciseKind.MATCHING: self._score_matching,
        }

    async def evaluate(
        self,
        kind: ExerciseKind,
        correct_answer: Any,
        card: WordCard | None,
        answer: Any,
    ) -> ScoreCard:
        try:
            result = await self._scorers[kind](correct_answer, card, answer)
        except Exception as exc:
            log.exception(
                "scoring_crashed",
                kind=kind.value,
                word=card.word if card else None,
                error_type=type(exc).__name__,
            )
            return ScoreCard.failed()

        match result:
            case Ok(score_card):
                log.debug(
                    "answer_scored",
                    kind=kind.value,
                    score=score_card.score,
                    srs_quality=score_card.srs_quality,
                    is_correct=score_card.is_correct,
                )
                return score_card
            case Err(error):
                log.warning(
                    "scoring_degraded",
                    kind=kind.value,
                    word=card.word if card else None,
                    error_code=error.code.name,
                    error=error.message,
                )
                return ScoreCard.failed()

    async def _score_flashcard(self, correct_answer, card, answer) -> Result[ScoreCard, AppError]:
        match self._parse_rating(answer):
            case Err(_) as err:
                return err
            case Ok(rating):
                return Ok(ScoreCard(
                    is_correct=rating >= 3,
                    score=rating * 20,
                    srs_quality=rating,
                    feedback=f"You rated your recall {rating}/5.",
                ))

    @staticmethod
    def _parse_rating(answer) -> Result[int, AppError]:
        """Leading integer of the rating, so "4", " 4.0" and 4.7 all read as 4."""
        if isinstance(answer, bool):
            return invalid_format("answer", "self-rating 0-5", got=repr(answer), origin="scoring.flashcard")
        if isinstance(answer, str):
            leading = LEADING_INT.match(answer)
            if leading is None:
                return invalid_format("answer", "self-rating 0-5", got=answer, origin="scoring.flashcard")
            answer = int(leading.group(1))
        elif isinstance(answer, float) and math.isfinite(answer):
            answer = math.trunc(answer)
        if not isinstance(answer, int):
            return invalid_format("answer", "self-rating 0-5", got=repr(answer), origin="scoring.flashcard")
        if not 0 <= answer <= 5:
            return out_of_range("answer", answer, 0, 5, origin="scoring.flashcard")
        return Ok(answer)

    async def _score_exact(self, correct_answer, card, answer) -> Result[ScoreCard, AppError]:
        if not isinstance(answer, str):
            return invalid_format("answer", "string", got=repr(answer), origin="scoring.exact")
        if not isinstance(correct_answer, str):
            return internal_error("Exercise has no stored correct answer", origin="scoring.exact")

        if _normalize(answer) == _normalize(correct_answer):
            return Ok(ScoreCard(is_correct=True, score=100, srs_quality=5, feedback="Correct!"))
        return Ok(ScoreCard(
            is_correct=False,
            score=0,
            srs_quality=0,
            feedback=f'Not quite. The correct answer is "{correct_answer}".',
        ))

    async def _score_sentence(self, correct_answer, card, answer) -> Result[ScoreCard, AppError]:
        if not isinstance(answer, str) or len(answer.strip()) < MIN_SENTENCE_LENGTH:
            return validation_error("Please write a complete sentence.", field="answer", origin="scoring.sentence")
        if card is None:
            return internal_error("Target word no longer exists", origin="scoring.sentence")
        return await self._score_free_text(answer, card.word, card.definition, 'sentence')

    async def _score_pronunciation(self, correct_answer, card, answer) -> Result[ScoreCard, AppError]:
        if not isinstance(answer, str) or not answer.strip():
            return validation_error(
                "Please provide the transcript of your recording.", field="answer", origin="scoring.pronunciation"
            )
        if card is None:
            return internal_error("Target word no longer exists", origin="scoring.pronunciation")
        return await self._score_free_text(answer, card.word, card.phonetic, 'pronunciation')

    async def _score_free_text(self, text: str, word: str, context: str | None, mode) -> Result[ScoreCard, AppError]:
        return (await self._oracle.score_free_text(text.strip(), word, context, mode=mode)).map(
            lambda verdict: ScoreCard(
                is_correct=verdict.score >= PASSING_FREE_TEXT_SCORE,
                score=verdict.score,
                srs_quality=round_half_up(verdict.score / 20),
                feedback=verdict.feedback,
            )
        )

    async def _score_matching(self, correct_answer, card, answer) -> Result[ScoreCard, AppError]:
        if not isinstance(correct_answer, Mapping) or not correct_answer:
            return internal_error("Matching exercise has no stored pairs", origin="scoring.matching")

        if isinstance(answer, str):
            try:
                answer = json.loads(answer)
            except json.JSONDecodeError:
                return invalid_format("answer", "JSON object of id -> definition", origin="scoring.matching")
        if not isinstance(answer, Mapping):
            return invalid_format("answer", "object of id -> definition", got=type(answer).__name__, origin="scoring.matching")

        total = len(correct_answer)
        correct_count = sum(
            1
            for pair_id, expected in correct_answer.items()
            if isinstance(answer.get(pair_id), str) and _normalize(answer[pair_id]) == _normalize(expected)
        )
        fraction = correct_count / total
        is_correct = correct_count == total
        feedback = (
            f"Great! You matched {correct_count}/{total} pairs."
            if is_correct
            else f"You matched {correct_count}/{total} pairs. Review the ones you missed."
        )
        return Ok(ScoreCard(
            is_correct=is_correct,
            score=round_half_up(100 * fraction),
            srs_quality=round_half_up(5 * fraction),
            feedback=feedback,
        ))
