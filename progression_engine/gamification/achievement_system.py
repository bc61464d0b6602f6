"""
Achievement System

Tracks progress on the fixed achievement catalog:
- Progress is clamped to max_progress
- Completion happens exactly once and is irreversible
- completed_achievements always mirrors the number of completed entries

XP for completions is awarded by the engine, which owns the XP operation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from progression_engine.models.gamification import Achievement, GamificationProfile
from progression_engine.observability.metrics import record_achievement_completed
from progression_engine.validators import is_valid_entity_id, is_valid_progress

logger = logging.getLogger(__name__)


@dataclass
class AchievementUpdate:
    """Result of an achievement progress update"""
    achievement: Achievement
    old_progress: int
    just_completed: bool = False


def update_achievement_progress(
    profile: GamificationProfile,
    achievement_id: Any,
    progress: Any,
    now: datetime
) -> Optional[AchievementUpdate]:
    """
    Set an achievement's progress and complete it when max_progress is reached

    Args:
        profile: Profile to mutate
        achievement_id: Achievement id
        progress: Absolute progress value (non-negative number)
        now: Completion timestamp

    Returns:
        AchievementUpdate, or None if the input was invalid or the id unknown
    """
    if not is_valid_entity_id(achievement_id):
        logger.warning(f"Invalid achievement ID: {achievement_id!r}")
        return None

    if not is_valid_progress(progress):
        logger.warning(f"Invalid progress value: {progress!r}")
        return None

    achievement = profile.get_achievement(achievement_id)
    if achievement is None:
        logger.warning(f"Achievement {achievement_id} not found")
        return None

    # Completed achievements are frozen
    if achievement.is_completed:
        return AchievementUpdate(achievement=achievement, old_progress=achievement.progress)

    old_progress = achievement.progress
    achievement.progress = min(int(progress), achievement.max_progress)

    logger.info(
        f"Achievement \"{achievement.name}\" progress: "
        f"{old_progress} → {achievement.progress}/{achievement.max_progress}"
    )

    just_completed = False
    if achievement.progress >= achievement.max_progress:
        achievement.is_completed = True
        achievement.date_completed = now
        just_completed = True
        record_achievement_completed(achievement.type.value)
        logger.info(f"Achievement completed: {achievement.name} (+{achievement.xp_reward} XP)")

    sync_achievement_counts(profile)

    return AchievementUpdate(
        achievement=achievement,
        old_progress=old_progress,
        just_completed=just_completed,
    )


def sync_achievement_counts(profile: GamificationProfile) -> None:
    """Recompute completed/total achievement counters from the catalog"""
    profile.completed_achievements = profile.count_completed_achievements()
    profile.total_achievements = len(profile.achievements)


def get_achievement_summary(profile: GamificationProfile) -> Dict[str, Any]:
    """
    Summarize achievement progress

    Returns:
        {
            'total': int,
            'completed': int,
            'in_progress': int,
            'total_xp_from_achievements': int
        }
    """
    completed = [a for a in profile.achievements if a.is_completed]
    return {
        "total": len(profile.achievements),
        "completed": len(completed),
        "in_progress": sum(1 for a in profile.achievements if not a.is_completed and a.progress > 0),
        "total_xp_from_achievements": sum(a.xp_reward for a in completed),
    }


def get_achievement_recommendations(profile: GamificationProfile, limit: int = 3) -> List[Achievement]:
    """
    Uncompleted achievements closest to completion

    Only achievements at 50% or more are recommended.
    """
    candidates = [
        a for a in profile.achievements
        if not a.is_completed and a.percent_complete >= 50
    ]
    candidates.sort(key=lambda a: a.percent_complete, reverse=True)
    return candidates[:limit]
