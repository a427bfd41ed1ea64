from datetime import date, timedelta

import pytest

from core.errors import ErrorCode
from engines.gamification import (
    LEVEL_THRESHOLDS,
    STREAK_REWARDS,
    ProgressState,
    apply_check_in,
    apply_completion,
    calculate_level,
    calculate_xp_earned,
    next_streak,
    upcoming_milestones,
)

TODAY = date(2024, 3, 14)
YESTERDAY = TODAY - timedelta(days=1)


@pytest.mark.parametrize("xp,level", [(0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (8999, 9), (9000, 10), (50000, 10)])
def test_level_thresholds(xp, level):
    assert calculate_level(xp) == level


def test_level_is_non_decreasing_in_xp():
    levels = [calculate_level(xp) for xp in range(0, LEVEL_THRESHOLDS[-1] + 500, 7)]
    assert levels == sorted(levels)


@pytest.mark.parametrize(
    "kind,score,quality,expected",
    [
        ("multiple_choice", 100, 5, 23),        # 10 + 10 + 3
        ("multiple_choice", 0, 0, 10),
        ("flashcard", 80, 4, 18),               # 10 + 8
        ("sentence_construction", 85, 4, 23),   # 10 + 8 + 5
        ("pronunciation_practice", 79, 4, 17),  # below the bonus line
        ("matching", 67, 3, 16),                # floor(6.7) = 6
        ("review", None, 4, 18),                # 10 + 2 * 4
        ("review", None, 5, 23),                # 10 + 10 + 3
        ("daily_check_in", None, None, 10),
    ],
)
def test_xp_award(kind, score, quality, expected):
    assert calculate_xp_earned(kind, score, quality) == expected


@pytest.mark.parametrize(
    "last,expected",
    [(None, 1), (TODAY - timedelta(days=2), 1), (YESTERDAY, 5), (TODAY, 4)],
)
def test_next_streak(last, expected):
    assert next_streak(4, last, TODAY) == expected


def test_consecutive_days_extend_streak():
    state = ProgressState()
    day = TODAY
    for expected in range(1, 4):
        state = apply_completion(state, "flashcard", 80, 4, day).state
        assert state.streak == expected
        day += timedelta(days=1)


def test_gap_resets_streak():
    state = apply_completion(ProgressState(), "flashcard", 80, 4, TODAY).state
    state = apply_completion(state, "flashcard", 80, 4, TODAY + timedelta(days=2)).state

    assert state.streak == 1


def test_same_day_does_not_inflate_streak():
    state = apply_completion(ProgressState(streak=3, last_activity_date=YESTERDAY), "flashcard", 80, 4, TODAY).state
    again = apply_completion(state, "multiple_choice", 100, 5, TODAY)

    assert state.streak == 4
    assert again.state.streak == 4
    assert again.state.last_activity_date == TODAY


def test_completion_accumulates_xp_and_reports_level_up():
    state = ProgressState(xp=95, streak=1, last_activity_date=TODAY)

    outcome = apply_completion(state, "multiple_choice", 100, 5, TODAY)

    assert outcome.xp_earned == 23
    assert outcome.state.xp == 118
    assert outcome.new_level == 2
    assert outcome.leveled_up is True


def test_milestone_paid_when_streak_lands_on_it():
    state = ProgressState(xp=500, streak=9, last_activity_date=YESTERDAY, beta_rewards=3)

    outcome = apply_completion(state, "flashcard", 60, 3, TODAY)

    assert outcome.state.streak == 10
    assert outcome.reward_earned == STREAK_REWARDS[10]
    assert outcome.state.beta_rewards == 3 + STREAK_REWARDS[10]


def test_milestone_paid_on_every_activity_while_streak_matches():
    state = ProgressState(xp=500, streak=9, last_activity_date=YESTERDAY)
    first = apply_completion(state, "flashcard", 60, 3, TODAY)

    second = apply_completion(first.state, "flashcard", 60, 3, TODAY)

    assert second.state.streak == 10
    assert second.reward_earned == STREAK_REWARDS[10]
    assert second.state.beta_rewards == 2 * STREAK_REWARDS[10]


def test_non_milestone_streak_earns_nothing():
    outcome = apply_completion(ProgressState(streak=4, last_activity_date=YESTERDAY), "flashcard", 60, 3, TODAY)

    assert outcome.reward_earned is None
    assert outcome.state.beta_rewards == 0


def test_check_in_grants_xp_and_reward_without_touching_streak():
    state = ProgressState(xp=40, streak=6, last_activity_date=YESTERDAY, beta_rewards=2)

    outcome = apply_check_in(state, TODAY).unwrap()

    assert outcome.xp_earned == 10
    assert outcome.reward_earned == 1
    assert outcome.state.xp == 50
    assert outcome.state.beta_rewards == 3
    assert outcome.state.last_check_in_date == TODAY
    assert outcome.state.streak == 6
    assert outcome.state.last_activity_date == YESTERDAY


def test_second_check_in_same_day_is_rejected():
    state = apply_check_in(ProgressState(), TODAY).unwrap().state

    result = apply_check_in(state, TODAY, user_id="u-1")

    assert result.unwrap_err().code is ErrorCode.E5031_ALREADY_CHECKED_IN
    assert result.unwrap_err().metadata["day"] == TODAY.isoformat()


def test_check_in_allowed_next_day():
    state = apply_check_in(ProgressState(), YESTERDAY).unwrap().state

    assert apply_check_in(state, TODAY).is_ok()


def test_upcoming_milestones():
    assert [m["days"] for m in upcoming_milestones(0)] == [10, 18, 24, 33]
    assert upcoming_milestones(12) == [
        {"days": 18, "reward": 10, "days_remaining": 6},
        {"days": 24, "reward": 15, "days_remaining": 12},
        {"days": 33, "reward": 20, "days_remaining": 21},
    ]
    assert upcoming_milestones(33) == []
