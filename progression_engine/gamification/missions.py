"""
Mission Lifecycle

Missions are time-boxed tasks living in exactly one of two collections:
- active: can still accrue progress
- completed: reached max_progress (terminal)

Expired missions are dropped from active without being recorded anywhere:
expiry is not completion and awards nothing. The expiry sweep runs before
every mission trigger check, so a lapsed mission never accrues progress from
a later event.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from progression_engine.models.gamification import GamificationProfile, Mission
from progression_engine.observability.metrics import record_mission_completed, record_mission_expired
from progression_engine.utils.datetime_helpers import ensure_aware
from progression_engine.validators import is_valid_entity_id, is_valid_progress

logger = logging.getLogger(__name__)


@dataclass
class MissionUpdate:
    """Result of a mission progress update"""
    mission: Mission
    old_progress: int
    just_completed: bool = False


def start_mission(
    profile: GamificationProfile,
    mission_id: Any,
    now: datetime
) -> Optional[Mission]:
    """
    Mark an active mission as started now

    Returns:
        The mission, or None if it is not active (no mutation)
    """
    mission = profile.get_active_mission(mission_id) if is_valid_entity_id(mission_id) else None

    if mission is None:
        logger.warning(f"Mission {mission_id} not found")
        return None

    mission.started_at = now
    logger.info(f"Mission started: {mission.name}")
    return mission


def expire_missions(profile: GamificationProfile, now: datetime) -> List[Mission]:
    """
    Drop active missions whose expires_at is in the past

    A mission expiring exactly at `now` is still valid. Expired missions are
    not added to completed and keep is_completed=False.

    Returns:
        The expired missions
    """
    still_valid: List[Mission] = []
    expired: List[Mission] = []
    for mission in profile.missions.active:
        (expired if mission.is_expired(now) else still_valid).append(mission)

    if expired:
        logger.info(f"Cleaning up {len(expired)} expired missions")
        profile.missions.active = still_valid
        for mission in expired:
            mission.is_completed = False
            record_mission_expired(mission.type.value)
            logger.info(f"Mission \"{mission.name}\" expired")

    return expired


def update_mission_progress(
    profile: GamificationProfile,
    mission_id: Any,
    progress: Any,
    now: datetime
) -> Optional[MissionUpdate]:
    """
    Set an active mission's progress and complete it at max_progress

    Completion is decided here, before any expiry check: a mission that
    reaches max_progress completes even if it lapsed a moment ago.

    Args:
        profile: Profile to mutate
        mission_id: Id of an active mission
        progress: Absolute progress value (non-negative number)
        now: Completion timestamp

    Returns:
        MissionUpdate, or None if the input was invalid or the mission is not active
    """
    if not is_valid_progress(progress):
        logger.warning(f"Invalid progress value: {progress!r}")
        return None

    mission = profile.get_active_mission(mission_id) if is_valid_entity_id(mission_id) else None
    if mission is None:
        logger.warning(f"Mission {mission_id} not found")
        return None

    old_progress = mission.progress
    mission.progress = min(int(progress), mission.max_progress)

    logger.info(
        f"Mission \"{mission.name}\" progress: "
        f"{old_progress} → {mission.progress}/{mission.max_progress}"
    )

    just_completed = False
    if mission.progress >= mission.max_progress:
        mission.is_completed = True
        mission.completed_at = now

        profile.missions.active = [m for m in profile.missions.active if m.id != mission.id]
        profile.missions.completed.append(mission)
        just_completed = True

        record_mission_completed(mission.type.value)
        logger.info(f"Mission completed: {mission.name} (+{mission.xp_reward} XP)")

    return MissionUpdate(mission=mission, old_progress=old_progress, just_completed=just_completed)



def get_mission_summary(profile: GamificationProfile, now: datetime) -> Dict[str, Any]:
    """
    Summarize missions

    Returns:
        {
            'active': int,
            'completed': int,
            'expiring_soon': int (active missions expiring within 24 hours),
            'by_type': {mission_type: active count}
        }
    """
    by_type: Dict[str, int] = {}
    expiring_soon = 0
    for mission in profile.missions.active:
        by_type[mission.type.value] = by_type.get(mission.type.value, 0) + 1
        remaining = (mission.expires_at - ensure_aware(now)).total_seconds()
        if 0 <= remaining <= 24 * 3600:
            expiring_soon += 1

    return {
        "active": len(profile.missions.active),
        "completed": len(profile.missions.completed),
        "expiring_soon": expiring_soon,
        "by_type": by_type,
    }
