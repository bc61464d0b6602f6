"""
Daily Streak Tracking System

Tracks consecutive calendar days on which the app was used.

Logic (one check per app start / foreground):
- No history: streak starts at 1
- Same day: already counted, no change
- Next calendar day: streak + 1, bonus XP every STREAK_BONUS_EVERY_DAYS days
- Any other gap (or an unreadable stored date): streak resets to 1

Days are compared midnight-to-midnight in the progression timezone, never by
elapsed hours, so the time of day cannot break or extend a streak.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from datetime import date
import logging

from progression_engine.gamification.constants import STREAK_BONUS_AMOUNT, STREAK_BONUS_EVERY_DAYS
from progression_engine.models.gamification import GamificationProfile
from progression_engine.observability.metrics import record_streak
from progression_engine.utils.datetime_helpers import days_between, parse_calendar_date

logger = logging.getLogger(__name__)


class StreakState(str, Enum):
    """Which branch of the streak check ran"""
    STARTED = "started"
    ALREADY_COUNTED = "already_counted"
    CONSECUTIVE = "consecutive"
    RESET = "reset"


@dataclass
class StreakResult:
    """Outcome of a daily streak check"""
    state: StreakState
    old_streak: int
    new_streak: int
    bonus_xp: int = 0
    days_missed: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.state != StreakState.ALREADY_COUNTED

    @property
    def is_consecutive(self) -> bool:
        return self.state == StreakState.CONSECUTIVE

    def event_payload(self) -> Dict[str, Any]:
        """Payload published on the streakUpdated channel"""
        payload: Dict[str, Any] = {
            "old_streak": self.old_streak,
            "new_streak": self.new_streak,
            "has_activity": True,
            "is_consecutive": self.is_consecutive,
        }
        if self.state == StreakState.RESET:
            payload["days_missed"] = self.days_missed
        return payload

    def trigger_metadata(self) -> Dict[str, Any]:
        """Metadata for the streak_updated trigger check"""
        metadata: Dict[str, Any] = {
            "oldStreak": self.old_streak,
            "newStreak": self.new_streak,
            "isConsecutive": self.is_consecutive,
        }
        if self.state == StreakState.RESET:
            metadata["wasReset"] = True
        return metadata


def streak_bonus_for(streak: int) -> int:
    """Bonus XP earned on reaching this streak length"""
    if streak > 0 and streak % STREAK_BONUS_EVERY_DAYS == 0:
        return STREAK_BONUS_AMOUNT
    return 0


def check_daily_streak(profile: GamificationProfile, today: date) -> StreakResult:
    """
    Update the profile's streak for today's app activity

    Idempotent for the same calendar day. Bonus XP is reported in the result,
    not applied: the engine owns the XP operation.

    Args:
        profile: Profile to mutate
        today: Today's calendar date in the progression timezone

    Returns:
        StreakResult
    """
    old_streak = profile.streak_days
    raw_last = profile.last_active_date

    # First activity
    if raw_last is None:
        profile.streak_days = 1
        profile.last_active_date = today
        logger.info("First activity recorded! Streak: 1 day")
        record_streak(1)
        return StreakResult(StreakState.STARTED, old_streak, 1)

    last_date = parse_calendar_date(raw_last)

    # Already counted today
    if last_date == today:
        logger.debug(f"Already active today. Streak: {profile.streak_days} days")
        return StreakResult(StreakState.ALREADY_COUNTED, old_streak, old_streak)

    gap_days = days_between(last_date, today) if last_date is not None else None

    # Next calendar day
    if gap_days == 1:
        profile.streak_days = old_streak + 1
        profile.last_active_date = today
        bonus = streak_bonus_for(profile.streak_days)

        logger.info(f"Consecutive day! Streak: {old_streak} → {profile.streak_days} days")
        if bonus:
            logger.info(f"Streak bonus for {profile.streak_days} days! +{bonus} XP")

        record_streak(profile.streak_days)
        return StreakResult(StreakState.CONSECUTIVE, old_streak, profile.streak_days, bonus_xp=bonus)

    # Gap, clock moved backwards, or unreadable stored date
    if gap_days is None:
        logger.warning(f"Invalid last active date {raw_last!r}, resetting streak")
        days_missed = 0
    else:
        days_missed = max(gap_days - 1, 0)
        if old_streak > 0:
            logger.info(f"Streak broken after {gap_days} days gap. {old_streak} → 1 day")
        else:
            logger.info("Starting new streak: 1 day")

    profile.streak_days = 1
    profile.last_active_date = today
    record_streak(1)
    return StreakResult(StreakState.RESET, old_streak, 1, days_missed=days_missed)


def format_streak_display(profile: GamificationProfile) -> str:
    """
    Format the streak for display

    Returns:
        Human-readable streak line
    """
    days = profile.streak_days
    if days <= 0:
        return "No streak yet. Open the app daily to build one! 💪"

    until_bonus = STREAK_BONUS_EVERY_DAYS - (days % STREAK_BONUS_EVERY_DAYS)
    unit = "day" if days == 1 else "days"
    return f"🔥 {days} {unit} streak ({until_bonus} to next +{STREAK_BONUS_AMOUNT} XP bonus)"
