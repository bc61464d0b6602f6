"""Progression models: achievements, missions, rewards and the profile"""
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from progression_engine.utils.datetime_helpers import ensure_aware, parse_calendar_date


class AchievementType(str, Enum):
    """Achievement categories"""
    TRACKING = "tracking"
    BUDGETING = "budgeting"
    SAVING = "saving"
    LEARNING = "learning"
    CONSISTENCY = "consistency"
    GOALS = "goals"


class AchievementRarity(str, Enum):
    """Rarity, used only for display weighting"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class MissionType(str, Enum):
    """Expected mission lifetime (not enforced by the engine)"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"


class RewardType(str, Enum):
    """Reward kinds"""
    THEME = "theme"
    FEATURE = "feature"
    BADGE = "badge"
    INSIGHT = "insight"


class ProgressionModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


def _truncate_float(v: Any) -> Any:
    """Whole-number fields accept finite floats, truncated like XP awards"""
    if isinstance(v, float) and math.isfinite(v):
        return int(v)
    return v


class _Trackable(ProgressionModel):
    """Shared progress fields of achievements and missions"""
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    icon: str = ""
    xp_reward: int = Field(default=0, ge=0)
    progress: int = Field(default=0, ge=0)
    max_progress: int = Field(default=1, ge=1)
    is_completed: bool = False
    # Bound from the trigger registry, never persisted
    trigger: Optional[Any] = Field(default=None, exclude=True, repr=False)

    @field_validator("xp_reward", "progress", "max_progress", mode="before")
    @classmethod
    def truncate_numbers(cls, v):
        return _truncate_float(v)

    @model_validator(mode="after")
    def clamp_progress(self):
        """Keep 0 <= progress <= max_progress"""
        if self.progress > self.max_progress:
            self.progress = self.max_progress
        return self

    @property
    def percent_complete(self) -> int:
        return min(100, int(self.progress / self.max_progress * 100))


class Achievement(_Trackable):
    """Achievement with its current progress"""
    type: AchievementType
    rarity: AchievementRarity = AchievementRarity.COMMON
    date_completed: Optional[datetime] = None

    @field_validator("date_completed")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None


class Mission(_Trackable):
    """Time-boxed mission"""
    type: MissionType
    expires_at: datetime
    started_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("expires_at", "started_at", "completed_at")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after expires_at"""
        return ensure_aware(now) > self.expires_at


class Reward(ProgressionModel):
    """Unlockable reward"""
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    icon: str = ""
    type: RewardType
    is_unlocked: bool = False
    date_unlocked: Optional[datetime] = None

    @field_validator("date_unlocked")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None


class ProfileMissions(ProgressionModel):
    """Active and completed missions (disjoint)"""
    active: list[Mission] = Field(default_factory=list)
    completed: list[Mission] = Field(default_factory=list)


class GamificationProfile(ProgressionModel):
    """The single progression profile of this installation"""
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    streak_days: int = Field(default=0, ge=0)
    # A stored value that cannot be parsed is kept as a string so the
    # streak tracker can treat it as a broken streak
    last_active_date: Optional[Union[date, str]] = None
    achievements: list[Achievement] = Field(default_factory=list)
    completed_achievements: int = Field(default=0, ge=0)
    total_achievements: int = Field(default=0, ge=0)
    missions: ProfileMissions = Field(default_factory=ProfileMissions)
    rewards: list[Reward] = Field(default_factory=list)

    @field_validator(
        "xp", "level", "streak_days", "completed_achievements", "total_achievements", mode="before"
    )
    @classmethod
    def truncate_numbers(cls, v):
        return _truncate_float(v)

    @field_validator("last_active_date", mode="before")
    @classmethod
    def parse_last_active(cls, v):
        if v is None or v == "":
            return None
        parsed = parse_calendar_date(v)
        return parsed if parsed is not None else str(v)

    def get_achievement(self, achievement_id: str) -> Optional[Achievement]:
        return next((a for a in self.achievements if a.id == achievement_id), None)

    def get_active_mission(self, mission_id: str) -> Optional[Mission]:
        return next((m for m in self.missions.active if m.id == mission_id), None)

    def get_reward(self, reward_id: str) -> Optional[Reward]:
        return next((r for r in self.rewards if r.id == reward_id), None)

    def count_completed_achievements(self) -> int:
        return sum(1 for a in self.achievements if a.is_completed)

    def to_storage(self) -> dict:
        """JSON-compatible dict in the stored (camelCase) shape"""
        return self.model_dump(mode="json", by_alias=True)
