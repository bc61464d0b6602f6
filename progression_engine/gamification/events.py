"""
Progression Event Channels

One typed channel per event the engine publishes to the host:

| Name                 | Payload                          |
|----------------------|----------------------------------|
| initialized          | GamificationProfile              |
| profileUpdated       | GamificationProfile              |
| achievementCompleted | Achievement                      |
| missionCompleted     | Mission                          |
| xpAdded              | XPAddedEvent                     |
| streakUpdated        | dict (StreakResult.event_payload)|
| rewardUnlocked       | Reward                           |
| profileReset         | GamificationProfile              |

A failing subscriber is logged and skipped; it never affects the engine or
the other subscribers.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, TypeVar
import logging

from progression_engine.models.gamification import Achievement, GamificationProfile, Mission, Reward

logger = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[T], Any]


@dataclass
class XPAddedEvent:
    """Payload of the xpAdded channel"""
    amount: int
    result: Any  # XPResult


class EventChannel(Generic[T]):
    """Single named channel with typed payloads"""

    def __init__(self, name: str):
        self.name = name
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback

        Returns:
            A function that unsubscribes the callback
        """
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def publish(self, payload: T) -> None:
        # Copy: callbacks may unsubscribe themselves
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Subscriber of '{self.name}' failed: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)


class ProgressionEvents:
    """All channels published by the progression engine"""

    def __init__(self):
        self.initialized: EventChannel[GamificationProfile] = EventChannel("initialized")
        self.profile_updated: EventChannel[GamificationProfile] = EventChannel("profileUpdated")
        self.achievement_completed: EventChannel[Achievement] = EventChannel("achievementCompleted")
        self.mission_completed: EventChannel[Mission] = EventChannel("missionCompleted")
        self.xp_added: EventChannel[XPAddedEvent] = EventChannel("xpAdded")
        self.streak_updated: EventChannel[Dict[str, Any]] = EventChannel("streakUpdated")
        self.reward_unlocked: EventChannel[Reward] = EventChannel("rewardUnlocked")
        self.profile_reset: EventChannel[GamificationProfile] = EventChannel("profileReset")

        self._by_name: Dict[str, EventChannel] = {
            channel.name: channel
            for channel in (
                self.initialized,
                self.profile_updated,
                self.achievement_completed,
                self.mission_completed,
                self.xp_added,
                self.streak_updated,
                self.reward_unlocked,
                self.profile_reset,
            )
        }

    def channel(self, name: str) -> EventChannel:
        """
        Look up a channel by its event name

        Raises:
            KeyError: If no channel has that name
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown progression event '{name}'. Known: {', '.join(sorted(self._by_name))}")

    def names(self) -> List[str]:
        return list(self._by_name)
