"""
Declarative Trigger Evaluation

Achievements and missions carry a trigger describing which domain action
advances them:
- action: name of the domain event it reacts to
- progress_update(current_progress, metadata) -> absolute new progress
- condition(metadata, current_progress, profile) -> bool (optional guard)

Triggers are small pure closures registered per entry kind and entry id, so
the stored profile stays plain data and triggers are re-bound after every load.
The evaluator is generic: it never knows what any particular action means.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar
import logging
import math

from progression_engine.models.gamification import Achievement, GamificationProfile, Mission

logger = logging.getLogger(__name__)

ProgressUpdate = Callable[[int, Mapping[str, Any]], Any]
Condition = Callable[[Mapping[str, Any], int, GamificationProfile], Any]

ACHIEVEMENT = "achievement"
MISSION = "mission"

Entry = TypeVar("Entry", Achievement, Mission)


@dataclass(frozen=True)
class GamificationEventTrigger:
    """Declarative progress rule attached to an achievement or mission"""
    action: str
    progress_update: ProgressUpdate
    condition: Optional[Condition] = None

    def matches(self, action: str) -> bool:
        return self.action == action


class TriggerRegistry:
    """Triggers keyed by (entry kind, entry id)"""

    def __init__(self):
        self._triggers: Dict[Tuple[str, str], GamificationEventTrigger] = {}

    def register(self, kind: str, entry_id: str, trigger: GamificationEventTrigger) -> None:
        self._triggers[(kind, entry_id)] = trigger

    def achievement(self, entry_id: str, action: str, progress_update: ProgressUpdate,
                    condition: Optional[Condition] = None) -> None:
        self.register(ACHIEVEMENT, entry_id, GamificationEventTrigger(action, progress_update, condition))

    def mission(self, entry_id: str, action: str, progress_update: ProgressUpdate,
                condition: Optional[Condition] = None) -> None:
        self.register(MISSION, entry_id, GamificationEventTrigger(action, progress_update, condition))

    def get(self, kind: str, entry_id: str) -> Optional[GamificationEventTrigger]:
        return self._triggers.get((kind, entry_id))

    def bind(self, profile: GamificationProfile) -> GamificationProfile:
        """Attach registered triggers to every entry of the profile"""
        for achievement in profile.achievements:
            achievement.trigger = self.get(ACHIEVEMENT, achievement.id)
        for mission in [*profile.missions.active, *profile.missions.completed]:
            mission.trigger = self.get(MISSION, mission.id)
        return profile


def _as_progress(value: Any) -> Optional[int]:
    """Numeric trigger output as int, None if unusable"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def check_for_action(
    collection: Iterable[Entry],
    action: str,
    metadata: Optional[Mapping[str, Any]],
    profile: GamificationProfile,
    apply_progress: Callable[[str, int], Any]
) -> List[Entry]:
    """
    Advance every entry whose trigger matches the action

    For each uncompleted entry with a matching trigger:
    1. Skip if the condition exists and does not hold
    2. new_progress = progress_update(progress, metadata)
    3. Apply only if new_progress > progress (progress never decreases)

    Clamping, completion and XP are handled by apply_progress(entry_id,
    new_progress).

    Args:
        collection: Achievements or active missions
        action: Domain action name
        metadata: Event metadata passed to the trigger callables
        profile: Profile passed to conditions
        apply_progress: Applier for the entry kind

    Returns:
        Entries whose progress was advanced
    """
    metadata = metadata or {}
    updated: List[Entry] = []

    # Snapshot: completed missions leave the active list while we iterate
    for entry in list(collection):
        trigger = entry.trigger
        if trigger is None or not trigger.matches(action) or entry.is_completed:
            continue

        try:
            if trigger.condition is not None and not trigger.condition(metadata, entry.progress, profile):
                continue
            new_progress = _as_progress(trigger.progress_update(entry.progress, metadata))
        except Exception as e:
            logger.error(f"Trigger for '{entry.id}' failed on action '{action}': {e}", exc_info=True)
            continue

        if new_progress is None:
            logger.warning(f"Trigger for '{entry.id}' returned non-numeric progress on '{action}'")
            continue

        if new_progress > entry.progress:
            apply_progress(entry.id, new_progress)
            updated.append(entry)

    return updated
