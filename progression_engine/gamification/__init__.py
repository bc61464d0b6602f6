"""
Progression rules for the personal-finance app

This package implements the motivation layer:
- XP and leveling system
- Daily streak tracking
- Achievements and missions driven by declarative triggers
- Level-gated rewards
"""

from progression_engine.gamification.xp_system import apply_xp, calculate_level_from_xp, level_from_xp
from progression_engine.gamification.streak_system import check_daily_streak, format_streak_display
from progression_engine.gamification.reward_system import get_available_rewards, unlock_reward

__all__ = [
    "apply_xp",
    "calculate_level_from_xp",
    "level_from_xp",
    "check_daily_streak",
    "format_streak_display",
    "get_available_rewards",
    "unlock_reward",
]
