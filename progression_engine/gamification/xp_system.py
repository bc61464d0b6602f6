"""
XP and Leveling System

Manages XP awards and level calculations.

Leveling Curve (LEVEL_THRESHOLDS, cumulative XP):
- Level 1: 0 XP
- Level 2: 100 XP
- Level 3: 250 XP
- Level 4: 500 XP
- Level 5: 1000 XP
- ...
- Level 10 (max): 7500 XP

Level is never stored independently: it is always recomputed from total XP.
Leveling up unlocks every reward whose level gate is now met.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime
import logging
import math

from progression_engine.gamification.constants import LEVEL_THRESHOLDS
from progression_engine.gamification.reward_system import get_available_rewards, unlock_reward
from progression_engine.models.gamification import GamificationProfile, Reward
from progression_engine.observability.metrics import record_level_up, record_xp_awarded

logger = logging.getLogger(__name__)


@dataclass
class XPResult:
    """Outcome of an XP award"""
    xp: int
    level: int
    leveled_up: bool
    new_rewards: List[Reward] = field(default_factory=list)
    amount: int = 0


def _coerce_xp(xp: Any) -> float:
    """Treat non-numeric, negative, NaN and infinite input as 0"""
    if isinstance(xp, bool) or not isinstance(xp, (int, float)):
        return 0
    if math.isnan(xp) or math.isinf(xp) or xp < 0:
        return 0
    return xp


def is_valid_xp_amount(amount: Any) -> bool:
    """Non-negative finite number (bools rejected)"""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return math.isfinite(amount) and amount >= 0


def level_from_xp(xp: Any, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """
    Highest level L (1-indexed) such that thresholds[L-1] <= xp

    Returns 1 below the first threshold or on malformed input.
    """
    value = _coerce_xp(xp)
    for index in range(len(thresholds) - 1, -1, -1):
        if value >= thresholds[index]:
            return index + 1
    return 1


def level_progress_percent(xp: Any, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """
    Progress towards the next level, 0-100

    Returns 100 at the max level.
    """
    if not thresholds:
        return 0

    value = _coerce_xp(xp)
    level = level_from_xp(value, thresholds)
    if level >= len(thresholds):
        return 100

    current_threshold = thresholds[level - 1]
    next_threshold = thresholds[level]
    span = next_threshold - current_threshold
    if span <= 0:
        return 100

    percent = round(100 * (value - current_threshold) / span)
    return max(0, min(100, percent))


def calculate_level_from_xp(total_xp: Any, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> Dict[str, Any]:
    """
    Calculate level details from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int (0 at max level),
            'next_level_threshold': int or None,
            'progress_percent': int,
            'is_max_level': bool
        }
    """
    value = int(_coerce_xp(total_xp))
    level = level_from_xp(value, thresholds)
    is_max_level = level >= len(thresholds)
    current_threshold = thresholds[level - 1] if thresholds else 0
    next_threshold = None if is_max_level else thresholds[level]

    return {
        "current_level": level,
        "xp_in_current_level": value - current_threshold,
        "xp_to_next_level": 0 if next_threshold is None else next_threshold - value,
        "next_level_threshold": next_threshold,
        "progress_percent": level_progress_percent(value, thresholds),
        "is_max_level": is_max_level,
    }


def apply_xp(
    profile: GamificationProfile,
    amount: Any,
    now: datetime,
    thresholds: Sequence[int] = LEVEL_THRESHOLDS
) -> Optional[XPResult]:
    """
    Add XP to the profile and unlock rewards on level up

    Args:
        profile: Profile to mutate
        amount: XP to add, must be a non-negative finite number
        now: Timestamp for reward unlocks
        thresholds: Level table

    Returns:
        XPResult, or None if the amount was rejected (profile unchanged)
    """
    if not is_valid_xp_amount(amount):
        logger.warning(f"Invalid XP amount: {amount!r}")
        return None

    amount = int(amount)
    old_level = profile.level
    old_xp = profile.xp

    profile.xp += amount
    profile.level = level_from_xp(profile.xp, thresholds)
    record_xp_awarded(amount)

    logger.info(f"Added {amount} XP ({old_xp} → {profile.xp})")

    new_rewards: List[Reward] = []
    leveled_up = profile.level > old_level
    if leveled_up:
        logger.info(f"Level up! {old_level} → {profile.level}")
        record_level_up(profile.level)

        for reward in get_available_rewards(profile):
            try:
                unlocked = unlock_reward(profile, reward.id, now)
                if unlocked:
                    new_rewards.append(unlocked)
            except Exception as e:
                logger.error(f"Error unlocking reward {reward.id}: {e}", exc_info=True)

    return XPResult(
        xp=profile.xp,
        level=profile.level,
        leveled_up=leveled_up,
        new_rewards=new_rewards,
        amount=amount,
    )
