"""Spaced Repetition System Engine with Result Types

SM-2 variant used for vocabulary review. ``schedule`` is pure; ``SRSEngine``
applies its output to a word.
"""
import math
from datetime import datetime, timedelta
from dataclasses import dataclass

from core.logging import srs_logger
from core.errors import (
    AppError,
    Ok,
    Err,
    Result,
    out_of_range,
    invalid_format,
)

log = srs_logger()

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3

# Ease adjustment per successful quality
EASE_DELTAS = {3: -0.15, 4: 0.0, 5: 0.10}
FAILED_EASE_DELTA = -0.20


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3, not 2)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True, slots=True)
class SRSSchedule:
    """Output of one scheduling step."""
    next_review_at: datetime
    repetitions: int
    ease_factor: float
    interval_days: int


def validate_quality(quality) -> Result[int, AppError]:
    if isinstance(quality, bool) or not isinstance(quality, int):
        return invalid_format("quality", "integer 0-5", got=repr(quality), origin="srs_engine")
    if not 0 <= quality <= 5:
        return out_of_range("quality", quality, 0, 5, origin="srs_engine")
    return Ok(quality)


def schedule(
    quality: int,
    repetitions: int,
    ease_factor: float,
    anchor: datetime,
) -> Result[SRSSchedule, AppError]:
    """Compute the next review for a word.

    Args:
        quality: Recall rating 0-5 (below 3 is a failed recall)
        repetitions: Successful reviews in a row before this one
        ease_factor: Current ease factor
        anchor: Last review time, or the time the word was added

    Returns:
        Ok(SRSSchedule), or Err for a quality that is not an int in [0, 5]
    """
    match validate_quality(quality):
        case Err(_) as err:
            log.warning("srs_quality_rejected", quality=repr(quality))
            return err

    if quality >= PASSING_QUALITY:
        new_ease = max(MIN_EASE_FACTOR, ease_factor + EASE_DELTAS[quality])
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            interval = 1
        elif new_repetitions == 2:
            interval = 6
        else:
            # Pre-increment count times the new ease
            interval = round_half_up(repetitions * new_ease)
    else:
        new_ease = max(MIN_EASE_FACTOR, ease_factor + FAILED_EASE_DELTA)
        new_repetitions = 0
        interval = 1

    result = SRSSchedule(
        next_review_at=anchor + timedelta(days=interval),
        repetitions=new_repetitions,
        ease_factor=new_ease,
        interval_days=interval,
    )
    log.debug(
        "srs_scheduled",
        quality=quality,
        repetitions=new_repetitions,
        ease_factor=new_ease,
        interval_days=interval,
    )
    return Ok(result)


class SRSEngine:
    """Applies schedules to vocabulary words."""

    __slots__ = ()

    def review(self, word, quality: int, reviewed_at: datetime) -> Result[SRSSchedule, AppError]:
        """Schedule ``word`` and write the result onto it (not persisted here)."""
        result = schedule(quality, word.repetitions or 0, word.ease_factor or DEFAULT_EASE_FACTOR, word.review_anchor)
        match result:
            case Ok(plan):
                word.repetitions = plan.repetitions
                word.ease_factor = plan.ease_factor
                word.next_review_at = plan.next_review_at
                word.last_reviewed_at = reviewed_at
                log.info(
                    "word_reviewed",
                    word_id=str(word.id),
                    quality=quality,
                    next_review_at=plan.next_review_at.isoformat(),
                    repetitions=plan.repetitions,
                    ease_factor=plan.ease_factor,
                )
        return result

