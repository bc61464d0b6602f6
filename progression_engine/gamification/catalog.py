"""
Default Progression Catalog

The achievements, missions and rewards every new profile starts with, plus
the trigger registry that makes them react to domain actions.

Mission lifetimes are relative to the moment the profile is built:
- daily: until the end of the current day
- weekly/monthly/special: a fixed number of days
- seasonal: the next occurrence of their closing date
"""

from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Mapping
import logging

from progression_engine.gamification.constants import (
    ACTION_ADD_TRANSACTION,
    ACTION_BUDGET_COMPLIANCE_CHECK,
    ACTION_DAILY_ACTIVITY_COMPLETED,
    ACTION_EXPENSE_OPTIMIZATION,
    ACTION_FINANCIAL_HEALTH_UPDATED,
    ACTION_GOAL_ACHIEVED,
    ACTION_NO_ENTERTAINMENT_DAY,
    ACTION_SAVINGS_CHECK,
    ACTION_STREAK_UPDATED,
    ACTION_VIEW_REPORT,
    ACTION_WEEKLY_ANALYSIS,
)
from progression_engine.gamification.triggers import TriggerRegistry
from progression_engine.models.gamification import (
    Achievement,
    AchievementRarity as Rarity,
    AchievementType,
    GamificationProfile,
    Mission,
    MissionType,
    ProfileMissions,
    Reward,
    RewardType,
)
from progression_engine.utils.datetime_helpers import ensure_aware

logger = logging.getLogger(__name__)


# ============================================
# Progress rules
# ============================================

def _increment(progress: int, metadata: Mapping[str, Any]) -> int:
    return progress + 1


def _metadata_value(key: str):
    """progress_update that takes an absolute value from the event metadata"""
    def update(progress: int, metadata: Mapping[str, Any]) -> Any:
        return metadata.get(key, 0)
    return update


def _has_emotion(metadata: Mapping[str, Any], progress: int, profile: GamificationProfile) -> bool:
    emotion = metadata.get("emotionalState")
    return bool(emotion) and emotion != "neutral"


def build_trigger_registry() -> TriggerRegistry:
    """Triggers for the default catalog"""
    registry = TriggerRegistry()

    # Achievements
    registry.achievement(
        "1", ACTION_ADD_TRANSACTION, _increment,
        condition=lambda metadata, progress, profile: progress < 1,
    )
    registry.achievement(
        "2", ACTION_BUDGET_COMPLIANCE_CHECK, _metadata_value("daysInBudget"),
        condition=lambda metadata, progress, profile: bool(metadata.get("isWithinBudget")),
    )
    registry.achievement(
        "3", ACTION_SAVINGS_CHECK, _metadata_value("consecutiveMonths"),
        condition=lambda metadata, progress, profile: metadata.get("savingsRate", 0) >= 0.10,
    )
    registry.achievement("4", ACTION_VIEW_REPORT, _increment)
    registry.achievement("5", ACTION_STREAK_UPDATED, _metadata_value("newStreak"))
    registry.achievement("6", ACTION_GOAL_ACHIEVED, _increment)
    registry.achievement("7", ACTION_ADD_TRANSACTION, _increment, condition=_has_emotion)
    registry.achievement(
        "8", ACTION_FINANCIAL_HEALTH_UPDATED, _metadata_value("healthScore"),
        condition=lambda metadata, progress, profile: metadata.get("healthScore", 0) >= 95,
    )
    registry.achievement(
        "9", ACTION_ADD_TRANSACTION, _increment,
        condition=lambda metadata, progress, profile: bool(metadata.get("isScanned")),
    )
    registry.achievement(
        "10", ACTION_EXPENSE_OPTIMIZATION, _metadata_value("reductionPercentage"),
        condition=lambda metadata, progress, profile: metadata.get("reductionPercentage", 0) >= 20,
    )

    # Missions
    registry.mission("1", ACTION_DAILY_ACTIVITY_COMPLETED, _increment)
    registry.mission(
        "2", ACTION_BUDGET_COMPLIANCE_CHECK, _increment,
        condition=lambda metadata, progress, profile: (
            bool(metadata.get("isWithinBudget")) and metadata.get("category") in (None, "food")
        ),
    )
    registry.mission("3", ACTION_VIEW_REPORT, _increment)
    registry.mission("4", ACTION_NO_ENTERTAINMENT_DAY, _increment)
    registry.mission(
        "5", ACTION_WEEKLY_ANALYSIS,
        lambda progress, metadata: progress + max(int(metadata.get("optimizationsFound", 0)), 0),
    )
    registry.mission("7", ACTION_ADD_TRANSACTION, _increment, condition=_has_emotion)
    registry.mission("19", ACTION_DAILY_ACTIVITY_COMPLETED, _increment)
    registry.mission("20", ACTION_GOAL_ACHIEVED, _increment)

    return registry


DEFAULT_TRIGGERS = build_trigger_registry()


# ============================================
# Achievements
# ============================================

def default_achievements() -> List[Achievement]:
    """Fresh achievement catalog (no progress)"""
    definitions: List[Dict[str, Any]] = [
        dict(id="1", name="First Steps", description="Add your first transaction",
             icon="🏆", type=AchievementType.TRACKING, rarity=Rarity.COMMON, xp_reward=10, max_progress=1),
        dict(id="2", name="Budget Master", description="Stay within every budget category for a whole month",
             icon="💰", type=AchievementType.BUDGETING, rarity=Rarity.UNCOMMON, xp_reward=50, max_progress=30),
        dict(id="3", name="Saver", description="Save 10% of your monthly income for 3 consecutive months",
             icon="🐖", type=AchievementType.SAVING, rarity=Rarity.RARE, xp_reward=100, max_progress=3),
        dict(id="4", name="Financial Analyst", description="View every type of report in the app",
             icon="📊", type=AchievementType.LEARNING, rarity=Rarity.COMMON, xp_reward=25, max_progress=5),
        dict(id="5", name="Consistent", description="Use the app 30 days in a row",
             icon="📆", type=AchievementType.CONSISTENCY, rarity=Rarity.RARE, xp_reward=75, max_progress=30),
        dict(id="6", name="Goal Getter", description="Achieve 5 financial goals",
             icon="🎯", type=AchievementType.GOALS, rarity=Rarity.EPIC, xp_reward=150, max_progress=5),
        dict(id="7", name="Emotionally Aware", description="Record your emotional state for 50 transactions",
             icon="😊", type=AchievementType.TRACKING, rarity=Rarity.UNCOMMON, xp_reward=50, max_progress=50),
        dict(id="8", name="Financial Guru", description="Reach a financial health score above 90",
             icon="🧘", type=AchievementType.GOALS, rarity=Rarity.LEGENDARY, xp_reward=300, max_progress=90),
        dict(id="9", name="QR Scanner", description="Scan 20 receipts with a QR code",
             icon="📷", type=AchievementType.TRACKING, rarity=Rarity.COMMON, xp_reward=30, max_progress=20),
        dict(id="10", name="Expense Optimizer", description="Cut spending in a category by 20%",
             icon="✂️", type=AchievementType.BUDGETING, rarity=Rarity.UNCOMMON, xp_reward=75, max_progress=20),
    ]
    return [Achievement(**entry) for entry in definitions]


# ============================================
# Missions
# ============================================

def _end_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time(23, 59, 59, 999999), tzinfo=now.tzinfo)


def _next_occurrence(now: datetime, month: int, day: int) -> datetime:
    """End of the given calendar day this year, or next year if already past"""
    candidate = datetime(now.year, month, day, 23, 59, 59, tzinfo=now.tzinfo)
    if candidate < now:
        candidate = candidate.replace(year=now.year + 1)
    return candidate


def default_missions(now: datetime) -> List[Mission]:
    """Fresh mission set, all active and started now"""
    now = ensure_aware(now)
    end_of_day = _end_of_day(now)

    def days(n: int) -> datetime:
        return now + timedelta(days=n)

    definitions: List[Dict[str, Any]] = [
        # Core
        dict(id="1", name="Track Today's Spending", description="Add at least one transaction today",
             icon="📝", type=MissionType.DAILY, xp_reward=10, max_progress=1, expires_at=end_of_day),
        dict(id="2", name="Optimize Food Spending", description="Stay within your daily food budget for 3 days",
             icon="🍲", type=MissionType.WEEKLY, xp_reward=15, max_progress=3, expires_at=days(3)),
        dict(id="3", name="Report Explorer", description="Review every section of the monthly report",
             icon="📊", type=MissionType.MONTHLY, xp_reward=20, max_progress=5, expires_at=days(30)),
        dict(id="4", name="Limit Unnecessary Spending", description="Have 5 days without entertainment spending this week",
             icon="🚫", type=MissionType.WEEKLY, xp_reward=30, max_progress=5, expires_at=days(7)),
        dict(id="5", name="Weekly Financial Review", description="Analyze your weekly spending and find 3 ways to optimize",
             icon="🔍", type=MissionType.WEEKLY, xp_reward=25, max_progress=3, expires_at=days(7)),

        # Special
        dict(id="6", name="Financial Detective", description="Find and categorize 5 forgotten expenses from last month",
             icon="🕵️", type=MissionType.SPECIAL, xp_reward=30, max_progress=5, expires_at=days(7)),
        dict(id="7", name="Emotion Master", description="Record your emotion on 10 transactions in a row",
             icon="🎭", type=MissionType.SPECIAL, xp_reward=25, max_progress=10, expires_at=days(14)),
        dict(id="8", name="Financial Champion", description="Save 100, stay within budget and add 15 transactions",
             icon="🏆", type=MissionType.SPECIAL, xp_reward=50, max_progress=3, expires_at=days(30)),

        # Daily
        dict(id="9", name="Coffee Challenge", description="Don't spend on coffee or drinks outside today",
             icon="☕", type=MissionType.DAILY, xp_reward=8, max_progress=1, expires_at=end_of_day),
        dict(id="10", name="Eco Day", description="Use only public transport or walk today",
             icon="🌱", type=MissionType.DAILY, xp_reward=10, max_progress=1, expires_at=end_of_day),
        dict(id="11", name="Saving Day", description="Spend less than 20 for the whole day",
             icon="💰", type=MissionType.DAILY, xp_reward=12, max_progress=1, expires_at=end_of_day),
        dict(id="12", name="Digital Minimalism", description="Make no online purchases today",
             icon="📱", type=MissionType.DAILY, xp_reward=15, max_progress=1, expires_at=end_of_day),

        # Weekly
        dict(id="13", name="Category Focus", description="Cut one category by 30% compared to last week",
             icon="🎯", type=MissionType.WEEKLY, xp_reward=35, max_progress=1, expires_at=days(7)),
        dict(id="14", name="Financial Audit", description="Review and correct 10 old transactions",
             icon="🔍", type=MissionType.WEEKLY, xp_reward=25, max_progress=10, expires_at=days(7)),
        dict(id="15", name="Smart Shopping", description="Compare prices for 5 products before buying",
             icon="💡", type=MissionType.WEEKLY, xp_reward=30, max_progress=5, expires_at=days(7)),
        dict(id="16", name="Creative Saving", description="Find 3 free alternatives to paid activities",
             icon="🎨", type=MissionType.WEEKLY, xp_reward=20, max_progress=3, expires_at=days(7)),

        # Monthly
        dict(id="17", name="Financial Growth", description="Grow your savings by 15% over last month",
             icon="📈", type=MissionType.MONTHLY, xp_reward=75, max_progress=1, expires_at=days(30)),
        dict(id="18", name="Balance Master", description="Keep every spending category under 40% of the total",
             icon="⚖️", type=MissionType.MONTHLY, xp_reward=60, max_progress=1, expires_at=days(30)),
        dict(id="19", name="Persistence", description="Add at least one transaction every day this month",
             icon="🏅", type=MissionType.MONTHLY, xp_reward=80, max_progress=30, expires_at=days(30)),
        dict(id="20", name="Goal Oriented", description="Create and achieve 3 financial goals this month",
             icon="🎯", type=MissionType.MONTHLY, xp_reward=100, max_progress=3, expires_at=days(30)),

        # Seasonal
        dict(id="21", name="Holiday Saver", description="Save for holiday gifts without exceeding your budget",
             icon="🎄", type=MissionType.SPECIAL, xp_reward=40, max_progress=1,
             expires_at=_next_occurrence(now, 12, 31)),
        dict(id="22", name="Spring Cleaning", description="Sell 5 unused items and record the income",
             icon="🌸", type=MissionType.SPECIAL, xp_reward=35, max_progress=5,
             expires_at=_next_occurrence(now, 5, 31)),
        dict(id="23", name="Summer Vacation", description="Save for a summer holiday for 3 months",
             icon="🏖️", type=MissionType.SPECIAL, xp_reward=90, max_progress=3,
             expires_at=_next_occurrence(now, 8, 31)),

        # Interactive
        dict(id="24", name="Financial Roulette", description="Avoid spending in today's random category",
             icon="🎲", type=MissionType.DAILY, xp_reward=15, max_progress=1, expires_at=end_of_day),
        dict(id="25", name="Sprint Saving", description="Save a set amount within 48 hours",
             icon="🏃", type=MissionType.SPECIAL, xp_reward=25, max_progress=1, expires_at=days(2)),
        dict(id="26", name="Financial Puzzle", description="Work out why your spending went up and find a fix",
             icon="🧩", type=MissionType.WEEKLY, xp_reward=30, max_progress=1, expires_at=days(7)),
    ]
    return [Mission(started_at=now, **entry) for entry in definitions]


# ============================================
# Rewards
# ============================================

def default_rewards() -> List[Reward]:
    """Fresh reward catalog (all locked)"""
    definitions: List[Dict[str, Any]] = [
        dict(id="1", name="Dark Theme", description="Unlocks the dark app theme", icon="🌙", type=RewardType.THEME),
        dict(id="2", name="Advanced Analytics", description="Unlocks extra analysis views and charts",
             icon="📈", type=RewardType.FEATURE),
        dict(id="3", name="\"Financial Expert\" Badge", description="A special badge showing your progress",
             icon="🏅", type=RewardType.BADGE),
        dict(id="4", name="PRO Saving Tips", description="Personalized weekly saving tips",
             icon="💡", type=RewardType.INSIGHT),
        dict(id="5", name="Gold Theme", description="Exclusive gold color scheme", icon="✨", type=RewardType.THEME),
        dict(id="6", name="Detective Badge", description="Badge for uncovering hidden expenses",
             icon="🕵️", type=RewardType.BADGE),
        dict(id="7", name="Emotional Analytics", description="Unlocks emotional spending reports",
             icon="🎭", type=RewardType.FEATURE),
        dict(id="8", name="Eco Theme", description="Green eco theme", icon="🌱", type=RewardType.THEME),
        dict(id="9", name="Saver Badge", description="Gold badge for reaching savings goals",
             icon="💰", type=RewardType.BADGE),
        dict(id="10", name="Smart Tips", description="Generated personalized saving advice",
             icon="🧠", type=RewardType.INSIGHT),
        dict(id="11", name="Champion Crown", description="Exclusive crown for financial champions",
             icon="👑", type=RewardType.BADGE),
        dict(id="12", name="Holiday Theme", description="Special theme for holidays and seasons",
             icon="🎄", type=RewardType.THEME),
        dict(id="13", name="Analyst Badge", description="Badge for advanced financial analysis",
             icon="📊", type=RewardType.BADGE),
        dict(id="14", name="Creative Badge", description="Badge for creative saving ideas",
             icon="🎨", type=RewardType.BADGE),
        dict(id="15", name="Summer Theme", description="Fresh summer color scheme", icon="🏖️", type=RewardType.THEME),
    ]
    return [Reward(**entry) for entry in definitions]


# ============================================
# Profile
# ============================================

def build_default_profile(now: datetime, registry: TriggerRegistry = DEFAULT_TRIGGERS) -> GamificationProfile:
    """
    Zero-progress profile for a new installation

    Args:
        now: Creation time (mission start and expiry base)
        registry: Triggers to bind

    Returns:
        New GamificationProfile with triggers bound
    """
    achievements = default_achievements()
    profile = GamificationProfile(
        xp=0,
        level=1,
        streak_days=0,
        last_active_date=None,
        achievements=achievements,
        completed_achievements=0,
        total_achievements=len(achievements),
        missions=ProfileMissions(active=default_missions(now), completed=[]),
        rewards=default_rewards(),
    )
    return registry.bind(profile)


def merge_catalog(
    profile: GamificationProfile,
    now: datetime,
    registry: TriggerRegistry = DEFAULT_TRIGGERS
) -> Dict[str, int]:
    """
    Add catalog entries the profile does not know yet, keeping all progress

    Missions already active or completed are not re-added.

    Returns:
        Counts of added achievements, missions and rewards
    """
    known_achievements = {a.id for a in profile.achievements}
    known_missions = {m.id for m in [*profile.missions.active, *profile.missions.completed]}
    known_rewards = {r.id for r in profile.rewards}

    new_achievements = [a for a in default_achievements() if a.id not in known_achievements]
    new_missions = [m for m in default_missions(now) if m.id not in known_missions]
    new_rewards = [r for r in default_rewards() if r.id not in known_rewards]

    profile.achievements.extend(new_achievements)
    profile.missions.active.extend(new_missions)
    profile.rewards.extend(new_rewards)
    profile.total_achievements = len(profile.achievements)
    registry.bind(profile)

    added = {
        "achievements": len(new_achievements),
        "missions": len(new_missions),
        "rewards": len(new_rewards),
    }
    logger.info(f"Catalog refreshed: {added}")
    return added
