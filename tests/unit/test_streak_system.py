"""Unit tests for Streak System (progression_engine/gamification/streak_system.py)"""
import pytest
from datetime import date, timedelta

from progression_engine.gamification.constants import STREAK_BONUS_AMOUNT, STREAK_BONUS_EVERY_DAYS
from progression_engine.gamification.streak_system import (
    StreakState,
    check_daily_streak,
    format_streak_display,
    streak_bonus_for,
)


TODAY = date(2024, 3, 15)


# ============================================================================
# Streak Update Tests
# ============================================================================

def test_first_activity_starts_streak(profile):
    """Test first activity creates streak of 1"""
    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.STARTED
    assert profile.streak_days == 1
    assert profile.last_active_date == TODAY


def test_same_day_is_idempotent(profile):
    """Test activity on same day doesn't increment streak again"""
    check_daily_streak(profile, TODAY)

    for _ in range(3):
        result = check_daily_streak(profile, TODAY)
        assert result.state == StreakState.ALREADY_COUNTED
        assert result.changed is False

    assert profile.streak_days == 1


def test_consecutive_day_increments(profile):
    """Test consecutive day activity increments streak"""
    profile.streak_days = 5
    profile.last_active_date = TODAY - timedelta(days=1)

    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.CONSECUTIVE
    assert result.is_consecutive is True
    assert (result.old_streak, result.new_streak) == (5, 6)
    assert profile.last_active_date == TODAY


def test_gap_resets_streak(profile):
    """Test missing days resets streak to 1"""
    profile.streak_days = 12
    profile.last_active_date = TODAY - timedelta(days=4)

    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.RESET
    assert profile.streak_days == 1
    assert result.days_missed == 3
    assert result.event_payload()["days_missed"] == 3
    assert result.trigger_metadata()["wasReset"] is True


def test_clock_moved_backwards_resets(profile):
    """Test a last active date in the future resets the streak"""
    profile.streak_days = 4
    profile.last_active_date = TODAY + timedelta(days=2)

    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.RESET
    assert result.days_missed == 0
    assert profile.last_active_date == TODAY


def test_unparseable_stored_date_resets(profile):
    """Test a garbage stored date is treated as a broken streak"""
    profile.streak_days = 9
    profile.last_active_date = "not a date"

    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.RESET
    assert profile.streak_days == 1
    assert profile.last_active_date == TODAY


def test_legacy_string_date_is_understood(profile):
    """Test the "Thu Mar 14 2024" stored form counts as yesterday"""
    profile.streak_days = 2
    profile.last_active_date = "Thu Mar 14 2024"

    result = check_daily_streak(profile, TODAY)

    assert result.state == StreakState.CONSECUTIVE
    assert profile.streak_days == 3


def test_days_across_month_boundary(profile):
    """Test calendar arithmetic across months"""
    profile.streak_days = 1
    profile.last_active_date = date(2024, 2, 29)

    result = check_daily_streak(profile, date(2024, 3, 1))

    assert result.state == StreakState.CONSECUTIVE


# ============================================================================
# Bonus Tests
# ============================================================================

def test_bonus_every_interval():
    """Test bonus XP is earned on multiples of the interval"""
    assert streak_bonus_for(STREAK_BONUS_EVERY_DAYS) == STREAK_BONUS_AMOUNT
    assert streak_bonus_for(STREAK_BONUS_EVERY_DAYS * 2) == STREAK_BONUS_AMOUNT
    assert streak_bonus_for(STREAK_BONUS_EVERY_DAYS + 1) == 0
    assert streak_bonus_for(0) == 0


def test_consecutive_day_reports_bonus(profile):
    """Test the 7th consecutive day reports the bonus without applying it"""
    profile.streak_days = STREAK_BONUS_EVERY_DAYS - 1
    profile.last_active_date = TODAY - timedelta(days=1)

    result = check_daily_streak(profile, TODAY)

    assert result.bonus_xp == STREAK_BONUS_AMOUNT
    assert profile.xp == 0


def test_event_payload_shape(profile):
    """Test streakUpdated payload"""
    profile.streak_days = 1
    profile.last_active_date = TODAY - timedelta(days=1)

    payload = check_daily_streak(profile, TODAY).event_payload()

    assert payload == {"old_streak": 1, "new_streak": 2, "has_activity": True, "is_consecutive": True}


# ============================================================================
# Display Tests
# ============================================================================

@pytest.mark.parametrize("days,expected", [
    (0, "No streak yet"),
    (1, "1 day streak"),
    (5, "5 days streak"),
])
def test_format_streak_display(profile, days, expected):
    """Test display text"""
    profile.streak_days = days
    assert expected in format_streak_display(profile)
