"""
Input and Stored-State Validation

Two layers:
1. Caller input checks (ids, progress values) - invalid input is rejected
   locally and never raises
2. Profile validation for stored and imported profiles - a structural
   pre-check followed by full pydantic validation; failures raise
   ProfileValidationError so the engine can fall back to defaults
"""

import logging
import math
from typing import Any, Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError

from progression_engine.exceptions import ProfileValidationError, wrap_persistence_exception
from progression_engine.gamification.constants import LEVEL_THRESHOLDS
from progression_engine.gamification.xp_system import level_from_xp
from progression_engine.models.gamification import GamificationProfile

logger = logging.getLogger(__name__)


# ============================================================================
# CALLER INPUT VALIDATION
# ============================================================================

def is_valid_entity_id(entity_id: Any) -> bool:
    """Non-empty string id"""
    return isinstance(entity_id, str) and bool(entity_id.strip())


def is_number(value: Any) -> bool:
    """Int or float (bools rejected)"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_progress(progress: Any) -> bool:
    """Non-negative finite number (bools rejected)"""
    if isinstance(progress, bool) or not isinstance(progress, (int, float)):
        return False
    return math.isfinite(progress) and progress >= 0


# ============================================================================
# PROFILE VALIDATION
# ============================================================================

def check_profile_shape(payload: Any) -> list[str]:
    """
    Structural pre-check of a stored profile

    Requires numeric xp/level, list achievements/rewards and a missions
    object with active/completed lists.

    Returns:
        List of problems (empty when the shape is valid)
    """
    if not isinstance(payload, Mapping):
        return [f"profile must be an object, got {type(payload).__name__}"]

    problems = []
    if not is_number(payload.get("xp")):
        problems.append("xp must be a number")
    if not is_number(payload.get("level")):
        problems.append("level must be a number")
    if not isinstance(payload.get("achievements"), list):
        problems.append("achievements must be a list")
    if not isinstance(payload.get("rewards"), list):
        problems.append("rewards must be a list")

    missions = payload.get("missions")
    if not isinstance(missions, Mapping):
        problems.append("missions must be an object")
    else:
        if not isinstance(missions.get("active"), list):
            problems.append("missions.active must be a list")
        if not isinstance(missions.get("completed"), list):
            problems.append("missions.completed must be a list")

    return problems


def normalize_profile(
    profile: GamificationProfile,
    thresholds: Sequence[int] = LEVEL_THRESHOLDS
) -> GamificationProfile:
    """
    Restore derived fields and collection invariants

    - level is recomputed from xp
    - completed/total achievement counters are recounted
    - a mission present in both collections is kept only in completed
    """
    profile.level = level_from_xp(profile.xp, thresholds)
    profile.completed_achievements = profile.count_completed_achievements()
    profile.total_achievements = len(profile.achievements)

    completed_ids = {m.id for m in profile.missions.completed}
    duplicates = [m.id for m in profile.missions.active if m.id in completed_ids]
    if duplicates:
        logger.warning(f"Missions listed as both active and completed: {duplicates}")
        profile.missions.active = [m for m in profile.missions.active if m.id not in completed_ids]

    return profile


def parse_profile(payload: Any, operation: str = "load_profile") -> GamificationProfile:
    """
    Validate a stored or imported profile

    Args:
        payload: Decoded JSON object (camelCase or snake_case keys) or a
            GamificationProfile instance
        operation: Name used in error context

    Returns:
        Normalized GamificationProfile (a new instance)

    Raises:
        ProfileValidationError: If the payload does not have a usable shape
    """
    if isinstance(payload, GamificationProfile):
        payload = payload.to_storage()

    problems = check_profile_shape(payload)
    if problems:
        raise ProfileValidationError(
            message=f"Profile failed structural validation during {operation}",
            errors=problems,
            operation=operation,
        )

    try:
        profile = GamificationProfile.model_validate(payload)
    except PydanticValidationError as e:
        raise wrap_persistence_exception(e, operation=operation)

    return normalize_profile(profile)
