"""
Reward Unlock System

Rewards are unlocked by leveling up. Each reward id maps to the minimum level
that unlocks it (REWARD_LEVEL_GATES); rewards without a gate stay locked until
unlocked explicitly.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from progression_engine.gamification.constants import REWARD_LEVEL_GATES
from progression_engine.models.gamification import GamificationProfile, Reward
from progression_engine.observability.metrics import record_reward_unlocked

logger = logging.getLogger(__name__)


def required_level_for(reward_id: str, gates: Optional[Dict[str, int]] = None) -> Optional[int]:
    """Level gate for a reward, or None if leveling never unlocks it"""
    return (gates if gates is not None else REWARD_LEVEL_GATES).get(reward_id)


def get_available_rewards(
    profile: GamificationProfile,
    gates: Optional[Dict[str, int]] = None
) -> List[Reward]:
    """
    Get locked rewards the profile's current level qualifies for

    Args:
        profile: Profile to inspect
        gates: Level gate table (defaults to REWARD_LEVEL_GATES)

    Returns:
        Rewards in catalog order
    """
    available = []
    for reward in profile.rewards:
        if reward.is_unlocked:
            continue
        required = required_level_for(reward.id, gates)
        if required is not None and required <= profile.level:
            available.append(reward)
    return available


def unlock_reward(
    profile: GamificationProfile,
    reward_id: str,
    now: datetime
) -> Optional[Reward]:
    """
    Unlock a reward

    Idempotent: unknown or already-unlocked ids return None without error.

    Returns:
        The newly unlocked reward, or None
    """
    reward = profile.get_reward(reward_id)

    if reward is None or reward.is_unlocked:
        return None

    reward.is_unlocked = True
    reward.date_unlocked = now

    record_reward_unlocked(reward.type.value)
    logger.info(f"Reward unlocked: {reward.name} ({reward.id})")
    return reward


def get_reward_summary(profile: GamificationProfile) -> Dict[str, Any]:
    """
    Reward counts plus the next gated reward the user can work towards

    Returns:
        {
            'total': int,
            'unlocked': int,
            'next_reward': {'id', 'name', 'required_level'} or None
        }
    """
    locked_gated = [
        (REWARD_LEVEL_GATES[r.id], r)
        for r in profile.rewards
        if not r.is_unlocked and r.id in REWARD_LEVEL_GATES
    ]
    next_reward = None
    if locked_gated:
        required, reward = min(locked_gated, key=lambda pair: pair[0])
        next_reward = {"id": reward.id, "name": reward.name, "required_level": required}

    return {
        "total": len(profile.rewards),
        "unlocked": sum(1 for r in profile.rewards if r.is_unlocked),
        "next_reward": next_reward,
    }
