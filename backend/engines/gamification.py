"""Gamification Engine

Pure progress transitions: ``(ProgressState, event, today) -> outcome``.
Nothing here touches storage; the learning engine loads and saves the state.
"""
import math
from dataclasses import dataclass, replace
from datetime import date, timedelta

from core.config import settings
from core.errors import AppError, Ok, Result, already_checked_in
from core.logging import gamification_logger

log = gamification_logger()

# Level i + 1 starts at LEVEL_THRESHOLDS[i]
LEVEL_THRESHOLDS = [0, 100, 300, 600, 1000, 1500, 2500, 4000, 6000, 9000]

# Streak length -> one-time reward units
STREAK_REWARDS = {10: 5, 18: 10, 24: 15, 33: 20}

BASE_XP = 10
FREE_TEXT_BONUS_XP = 5
FREE_TEXT_BONUS_SCORE = 80
PERFECT_RECALL_BONUS_XP = 3

FREE_TEXT_KINDS = frozenset({"sentence_construction", "pronunciation_practice"})
CHECK_IN_KIND = "daily_check_in"


@dataclass(frozen=True, slots=True)
class ProgressState:
    """Snapshot of a learner's counters."""
    xp: int = 0
    streak: int = 0
    last_activity_date: date | None = None
    last_check_in_date: date | None = None
    beta_rewards: int = 0

    @property
    def level(self) -> int:
        return calculate_level(self.xp)


@dataclass(frozen=True, slots=True)
class CompletionOutcome:
    state: ProgressState
    xp_earned: int
    new_level: int
    leveled_up: bool
    reward_earned: int | None = None


@dataclass(frozen=True, slots=True)
class CheckInOutcome:
    state: ProgressState
    xp_earned: int
    reward_earned: int


def calculate_level(xp: int) -> int:
    """Highest level whose threshold ``xp`` has reached."""
    for i in range(len(LEVEL_THRESHOLDS) - 1, -1, -1):
        if xp >= LEVEL_THRESHOLDS[i]:
            return i + 1
    return 1


def calculate_xp_earned(activity_kind: str, score: int | None, srs_quality: int | None) -> int:
    if activity_kind == CHECK_IN_KIND:
        return settings.CHECK_IN_XP

    xp = BASE_XP
    if score is not None:
        xp += math.floor(score / 10)
    elif srs_quality is not None:
        xp += srs_quality * 2

    if activity_kind in FREE_TEXT_KINDS and score is not None and score >= FREE_TEXT_BONUS_SCORE:
        xp += FREE_TEXT_BONUS_XP
    if srs_quality == 5:
        xp += PERFECT_RECALL_BONUS_XP

    return max(1, xp)


def next_streak(streak: int, last_activity_date: date | None, today: date) -> int:
    """Consecutive-day counter after an activity on ``today``."""
    if last_activity_date == today:
        return streak
    if last_activity_date == today - timedelta(days=1):
        return streak + 1
    return 1


def apply_completion(
    state: ProgressState,
    activity_kind: str,
    score: int | None,
    srs_quality: int | None,
    today: date,
) -> CompletionOutcome:
    """Award XP, advance the streak and pay any milestone it matches.

    The milestone table is checked against the resulting streak on every
    event, so repeated activity on a milestone day pays again.
    """
    xp_earned = calculate_xp_earned(activity_kind, score, srs_quality)
    old_level = state.level

    streak = next_streak(state.streak, state.last_activity_date, today)
    reward = STREAK_REWARDS.get(streak)

    new_state = replace(
        state,
        xp=state.xp + xp_earned,
        streak=streak,
        last_activity_date=today,
        beta_rewards=state.beta_rewards + (reward or 0),
    )
    new_level = new_state.level

    if new_level > old_level:
        log.info("level_up", old_level=old_level, new_level=new_level, xp=new_state.xp)
    if reward:
        log.info("streak_milestone_reached", streak=streak, reward=reward)
    log.debug(
        "completion_applied",
        activity_kind=activity_kind,
        xp_earned=xp_earned,
        streak=streak,
    )

    return CompletionOutcome(
        state=new_state,
        xp_earned=xp_earned,
        new_level=new_level,
        leveled_up=new_level > old_level,
        reward_earned=reward,
    )


def apply_check_in(
    state: ProgressState,
    today: date,
    user_id: str | None = None,
) -> Result[CheckInOutcome, AppError]:
    """Once-per-day grant; leaves the streak and activity date untouched."""
    if state.last_check_in_date == today:
        return already_checked_in(today.isoformat(), user_id=user_id, origin="gamification.check_in")

    xp_earned = settings.CHECK_IN_XP
    reward = settings.CHECK_IN_REWARD
    new_state = replace(
        state,
        xp=state.xp + xp_earned,
        beta_rewards=state.beta_rewards + reward,
        last_check_in_date=today,
    )
    log.info("checked_in", xp_earned=xp_earned, reward=reward, level=new_state.level)
    return Ok(CheckInOutcome(state=new_state, xp_earned=xp_earned, reward_earned=reward))


def upcoming_milestones(streak: int) -> list[dict]:
    """Milestones the current streak has not reached yet, nearest first."""
    return [
        {"days": days, "reward": reward, "days_remaining": days - streak}
        for days, reward in sorted(STREAK_REWARDS.items())
        if days > streak
    ]


def checked_in_on(state: ProgressState, today: date) -> bool:
    return state.last_check_in_date == today
