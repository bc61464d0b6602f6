"""
Prometheus metrics definitions for the progression engine.

This module defines the metrics collected by the engine, organized by category:
- XP metrics: XP awarded, level-ups, current level
- Progress metrics: achievements and missions completed, missions expired
- Reward metrics: rewards unlocked
- Streak metrics: current streak length
- Persistence metrics: profile saves and failures

The host may expose the default registry however it likes; recording is a
no-op when ENABLE_METRICS is false.
"""

import logging
from prometheus_client import Counter, Gauge

from progression_engine.config import ENABLE_METRICS

logger = logging.getLogger(__name__)

# =============================================================================
# XP Metrics
# =============================================================================

xp_awarded_total = Counter(
    "progression_xp_awarded_total",
    "Total XP awarded",
)

level_ups_total = Counter(
    "progression_level_ups_total",
    "Total level-up events",
)

current_level = Gauge(
    "progression_current_level",
    "Current profile level",
)

# =============================================================================
# Achievement & Mission Metrics
# =============================================================================

achievements_completed_total = Counter(
    "progression_achievements_completed_total",
    "Total achievements completed",
    ["achievement_type"],
)

missions_completed_total = Counter(
    "progression_missions_completed_total",
    "Total missions completed",
    ["mission_type"],
)

missions_expired_total = Counter(
    "progression_missions_expired_total",
    "Total missions dropped after expiry",
    ["mission_type"],
)

# =============================================================================
# Reward & Streak Metrics
# =============================================================================

rewards_unlocked_total = Counter(
    "progression_rewards_unlocked_total",
    "Total rewards unlocked",
    ["reward_type"],
)

streak_days = Gauge(
    "progression_streak_days",
    "Current daily activity streak",
)

# =============================================================================
# Persistence Metrics
# =============================================================================

profile_saves_total = Counter(
    "progression_profile_saves_total",
    "Profile save attempts",
    ["status"],  # status: success/error
)


def record_xp_awarded(amount: int) -> None:
    if ENABLE_METRICS:
        xp_awarded_total.inc(amount)


def record_level_up(level: int) -> None:
    if ENABLE_METRICS:
        level_ups_total.inc()
        current_level.set(level)


def record_achievement_completed(achievement_type: str) -> None:
    if ENABLE_METRICS:
        achievements_completed_total.labels(achievement_type=achievement_type).inc()


def record_mission_completed(mission_type: str) -> None:
    if ENABLE_METRICS:
        missions_completed_total.labels(mission_type=mission_type).inc()


def record_mission_expired(mission_type: str) -> None:
    if ENABLE_METRICS:
        missions_expired_total.labels(mission_type=mission_type).inc()


def record_reward_unlocked(reward_type: str) -> None:
    if ENABLE_METRICS:
        rewards_unlocked_total.labels(reward_type=reward_type).inc()


def record_streak(days: int) -> None:
    if ENABLE_METRICS:
        streak_days.set(days)


def record_profile_save(success: bool) -> None:
    if ENABLE_METRICS:
        profile_saves_total.labels(status="success" if success else "error").inc()
