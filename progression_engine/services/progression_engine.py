"""
ProgressionEngine - Progression Business Logic

Owns the single live GamificationProfile and orchestrates XP, achievements,
missions, streaks and rewards. Every mutation is synchronous; persistence is
fire-and-forget and change notifications are published on typed channels.
"""

import asyncio
import logging
import warnings
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from progression_engine.exceptions import ProgressionError, ProfileValidationError
from progression_engine.gamification import achievement_system, missions, reward_system, streak_system
from progression_engine.gamification.catalog import DEFAULT_TRIGGERS, build_default_profile, merge_catalog
from progression_engine.gamification.constants import (
    ACTION_ADD_TRANSACTION,
    ACTION_BUDGET_CHECK,
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
    ENTERTAINMENT_CATEGORIES,
    LEVEL_THRESHOLDS,
)
from progression_engine.gamification.events import ProgressionEvents, XPAddedEvent
from progression_engine.gamification.triggers import TriggerRegistry, check_for_action
from progression_engine.gamification.xp_system import XPResult, apply_xp, calculate_level_from_xp
from progression_engine.models.gamification import Achievement, GamificationProfile, Mission, Reward
from progression_engine.observability.metrics import record_profile_save
from progression_engine.storage.profile_store import JsonFileProfileStore, ProfileStore
from progression_engine.utils.datetime_helpers import Clock, ensure_aware, local_date, now_local, parse_calendar_date
from progression_engine.validators import is_number, parse_profile

logger = logging.getLogger(__name__)


def _is_expense(amount: Any) -> bool:
    """Negative amounts are expenses; anything non-numeric is ignored"""
    return is_number(amount) and amount < 0


class ProgressionEngine:
    """
    Service for the progression profile.

    Responsibilities:
    - Loading, validating and persisting the profile
    - XP and leveling (with reward unlocks)
    - Declarative achievement and mission triggers
    - Mission expiry and the daily streak
    - Publishing change notifications to the host

    Usage:
        engine = ProgressionEngine(store=JsonFileProfileStore())
        await engine.initialize()
        engine.on_transaction_added({"amount": -25.5, "isScanned": True})
        await engine.flush()

    Not thread-safe: call from a single thread (the host's event loop thread).
    """

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        clock: Optional[Clock] = None,
        registry: TriggerRegistry = DEFAULT_TRIGGERS,
        thresholds: Sequence[int] = LEVEL_THRESHOLDS,
        refresh_catalog_on_load: bool = True,
    ):
        """
        Initialize ProgressionEngine.

        Args:
            store: Profile persistence (defaults to a JSON file under DATA_PATH)
            clock: Returns the current datetime (defaults to now in PROGRESSION_TIMEZONE)
            registry: Trigger registry for the catalog
            thresholds: Level thresholds
            refresh_catalog_on_load: Add catalog entries missing from a loaded profile
        """
        self.store = store if store is not None else JsonFileProfileStore()
        self.registry = registry
        self.thresholds = list(thresholds)
        self.refresh_catalog_on_load = refresh_catalog_on_load
        self.events = ProgressionEvents()

        self._clock = clock or now_local
        # Defaults until initialize() finishes loading
        self._profile = build_default_profile(self._now(), self.registry)
        self._is_initialized = False
        self._init_task: Optional[asyncio.Task] = None

        self._depth = 0
        self._touched = False
        self._generation = 0
        self._dirty = False
        self._save_lock = asyncio.Lock()
        self._pending_saves: set = set()
        self._transactions: List[Mapping[str, Any]] = []

        logger.debug("ProgressionEngine created")

    # ============================================
    # Initialization
    # ============================================

    def start(self) -> "asyncio.Task":
        """
        Schedule initialization on the running loop without waiting for it

        Returns:
            The initialization task (also awaited by get_profile_async())
        """
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self._initialize_profile())
        return self._init_task

    async def initialize(self) -> GamificationProfile:
        """Load the profile (once) and wait until the engine is ready"""
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self._initialize_profile())
        await self._init_task
        return self._profile

    async def _initialize_profile(self) -> None:
        try:
            self._profile = await self._load_profile()
            self._is_initialized = True

            # Streak is checked on every app start
            self.check_daily_streak()

            self.events.initialized.publish(self._profile)
            self.events.profile_updated.publish(self._profile)
            await self.flush()

        except Exception as e:
            logger.error(f"Error initializing progression profile: {e}", exc_info=True)
            self._is_initialized = True
            self.events.initialized.publish(self._profile)

    async def _load_profile(self) -> GamificationProfile:
        """Stored profile if valid, defaults otherwise"""
        try:
            saved = await self.store.load()
        except ProgressionError:
            logger.warning("Stored profile could not be read, using defaults")
            saved = None

        if saved is None:
            logger.info("No saved profile found, creating new one")
            self._dirty = True
            return build_default_profile(self._now(), self.registry)

        try:
            profile = parse_profile(saved, operation="load_profile")
        except ProfileValidationError:
            logger.warning("Invalid saved profile, using defaults")
            self._dirty = True
            return build_default_profile(self._now(), self.registry)

        self.registry.bind(profile)
        if self.refresh_catalog_on_load:
            added = merge_catalog(profile, self._now(), self.registry)
            if any(added.values()):
                self._dirty = True

        logger.info(
            f"Progression profile loaded: {profile.xp} XP, level {profile.level}, "
            f"{profile.streak_days} day streak"
        )
        return profile

    # ============================================
    # Query surface
    # ============================================

    @property
    def is_ready(self) -> bool:
        return self._is_initialized

    def get_profile(self) -> GamificationProfile:
        """Current profile (defaults until initialization finishes)"""
        return self._profile

    async def get_profile_async(self) -> GamificationProfile:
        """Current profile once initialization has finished"""
        if not self._is_initialized:
            await self.initialize()
        return self._profile

    def get_level_progress(self) -> Dict[str, Any]:
        return calculate_level_from_xp(self._profile.xp, self.thresholds)

    def export_profile(self) -> Dict[str, Any]:
        """Deep, JSON-compatible snapshot safe to hand out"""
        return self._profile.to_storage()

    def get_debug_info(self) -> Dict[str, Any]:
        profile = self._profile
        return {
            "is_initialized": self._is_initialized,
            "pending_saves": len(self._pending_saves),
            "subscribers": {name: len(self.events.channel(name)) for name in self.events.names()},
            "profile": {
                "xp": profile.xp,
                "level": profile.level,
                "streak_days": profile.streak_days,
                "streak": streak_system.format_streak_display(profile),
                "last_active_date": str(profile.last_active_date) if profile.last_active_date else None,
                "achievements": achievement_system.get_achievement_summary(profile),
                "recommended_achievements": [
                    a.id for a in achievement_system.get_achievement_recommendations(profile)
                ],
                "missions": missions.get_mission_summary(profile, self._now()),
                "rewards": reward_system.get_reward_summary(profile),
            },
        }

    # ============================================
    # Subscriptions
    # ============================================

    def on(self, event_name: str, callback: Callable[[Any], Any]) -> Callable[[], None]:
        """
        Subscribe to an event by name (e.g. "xpAdded")

        Returns:
            Unsubscribe function (a no-op for unknown event names)
        """
        try:
            return self.events.channel(event_name).subscribe(callback)
        except KeyError as e:
            logger.warning(str(e))
            return lambda: None

    def off(self, event_name: str, callback: Callable[[Any], Any]) -> None:
        try:
            self.events.channel(event_name).unsubscribe(callback)
        except KeyError as e:
            logger.warning(str(e))

    def on_profile_updated(self, callback: Callable[[GamificationProfile], Any]) -> Callable[[], None]:
        return self.events.profile_updated.subscribe(callback)

    def off_profile_updated(self, callback: Callable[[GamificationProfile], Any]) -> None:
        self.events.profile_updated.unsubscribe(callback)

    def on_initialized(self, callback: Callable[[GamificationProfile], Any]) -> Callable[[], None]:
        """Subscribe to initialization; called right away if already ready"""
        if self._is_initialized:
            try:
                callback(self._profile)
            except Exception as e:
                logger.error(f"initialized callback failed: {e}", exc_info=True)
            return lambda: None
        return self.events.initialized.subscribe(callback)

    # ============================================
    # XP
    # ============================================

    def add_xp(self, amount: Any) -> XPResult:
        """
        Add XP, recompute the level and unlock rewards on level up

        Invalid amounts (negative, NaN, infinite, non-numeric) leave the
        profile unchanged.

        Returns:
            XPResult(xp, level, leveled_up, new_rewards)
        """
        try:
            with self._mutation():
                result = apply_xp(self._profile, amount, self._now(), self.thresholds)
                if result is None:
                    return self._current_xp_result()

                self._touched = True
                for reward in result.new_rewards:
                    self.events.reward_unlocked.publish(reward)
                self.events.xp_added.publish(XPAddedEvent(amount=result.amount, result=result))
                return result

        except Exception as e:
            logger.error(f"Critical error in add_xp: {e}", exc_info=True)
            return self._current_xp_result()

    def _current_xp_result(self) -> XPResult:
        return XPResult(xp=self._profile.xp, level=self._profile.level, leveled_up=False)

    # ============================================
    # Achievements
    # ============================================

    def update_achievement_progress(self, achievement_id: Any, progress: Any) -> Optional[Achievement]:
        """
        Set an achievement's absolute progress

        Completing it awards its XP and publishes achievementCompleted.
        Completed achievements are returned unchanged.

        Returns:
            The achievement, or None for invalid input / unknown id
        """
        try:
            with self._mutation():
                update = achievement_system.update_achievement_progress(
                    self._profile, achievement_id, progress, self._now()
                )
                if update is None:
                    return None

                achievement = update.achievement
                if update.just_completed or achievement.progress != update.old_progress:
                    self._touched = True

                if update.just_completed:
                    self.add_xp(achievement.xp_reward)
                    self.events.achievement_completed.publish(achievement)

                return achievement

        except Exception as e:
            logger.error(f"Critical error in update_achievement_progress: {e}", exc_info=True)
            return None

    def check_achievements_for_action(
        self,
        action: str,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> List[Achievement]:
        """Advance every achievement whose trigger matches the action"""
        logger.debug(f"Checking achievements for action: {action} {dict(metadata or {})}")
        with self._mutation():
            return check_for_action(
                self._profile.achievements,
                action,
                metadata,
                self._profile,
                self.update_achievement_progress,
            )

    # ============================================
    # Missions
    # ============================================

    def start_mission(self, mission_id: Any) -> Optional[Mission]:
        with self._mutation():
            mission = missions.start_mission(self._profile, mission_id, self._now())
            if mission is not None:
                self._touched = True
            return mission

    def update_mission_progress(self, mission_id: Any, progress: Any) -> Optional[Mission]:
        """
        Set an active mission's absolute progress

        Reaching max_progress moves it to completed, awards its XP and
        publishes missionCompleted.

        Returns:
            The mission, or None for invalid input / missions that are not active
        """
        return self._update_mission_progress(mission_id, progress, self._now())

    def _update_mission_progress(self, mission_id: Any, progress: Any, now: datetime) -> Optional[Mission]:
        try:
            with self._mutation():
                update = missions.update_mission_progress(self._profile, mission_id, progress, now)
                if update is None:
                    return None

                self._touched = True
                mission = update.mission
                if update.just_completed:
                    self.add_xp(mission.xp_reward)
                    self.events.mission_completed.publish(mission)
                return mission

        except Exception as e:
            logger.error(f"Critical error in update_mission_progress: {e}", exc_info=True)
            return None

    def check_missions_for_action(
        self,
        action: str,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> List[Mission]:
        """
        Drop expired missions, then advance active missions matching the action

        The whole check uses a single timestamp: a mission expiring exactly
        at that instant is still active and can complete.
        """
        logger.debug(f"Checking missions for action: {action} {dict(metadata or {})}")
        now = self._now()
        with self._mutation():
            if missions.expire_missions(self._profile, now):
                self._touched = True

            return check_for_action(
                self._profile.missions.active,
                action,
                metadata,
                self._profile,
                lambda mission_id, progress: self._update_mission_progress(mission_id, progress, now),
            )

    def expire_missions(self) -> List[Mission]:
        """Drop expired missions now"""
        with self._mutation():
            expired = missions.expire_missions(self._profile, self._now())
            if expired:
                self._touched = True
            return expired

    # ============================================
    # Streak
    # ============================================

    def check_daily_streak(self, today: Optional[date] = None) -> int:
        """
        Count today's activity towards the daily streak

        Safe to call repeatedly: the same calendar day is counted once.

        Args:
            today: Calendar date (defaults to today in PROGRESSION_TIMEZONE)

        Returns:
            Current streak length
        """
        try:
            with self._mutation():
                if today is None:
                    today = local_date(self._now())
                elif isinstance(today, datetime):
                    today = local_date(today)

                result = streak_system.check_daily_streak(self._profile, today)
                if not result.changed:
                    return self._profile.streak_days

                self._touched = True
                if result.bonus_xp:
                    self.add_xp(result.bonus_xp)

                if result.state in (streak_system.StreakState.CONSECUTIVE, streak_system.StreakState.RESET):
                    self.events.streak_updated.publish(result.event_payload())
                    self.check_achievements_for_action(ACTION_STREAK_UPDATED, result.trigger_metadata())

                return self._profile.streak_days

        except Exception as e:
            logger.error(f"Critical error in check_daily_streak: {e}", exc_info=True)
            return self._profile.streak_days or 1

    def update_streak(self, has_activity: bool = True) -> int:
        """Deprecated: use check_daily_streak()"""
        warnings.warn(
            "update_streak() is deprecated, use check_daily_streak()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.check_daily_streak()

    # ============================================
    # Rewards
    # ============================================

    def get_available_rewards(self) -> List[Reward]:
        """Locked rewards the current level qualifies for"""
        return reward_system.get_available_rewards(self._profile)

    def unlock_reward(self, reward_id: Any) -> Optional[Reward]:
        """
        Unlock a reward by id

        Returns:
            The reward if it was locked, None for unknown or already-unlocked ids
        """
        with self._mutation():
            reward = reward_system.unlock_reward(self._profile, reward_id, self._now())
            if reward is not None:
                self._touched = True
                self.events.reward_unlocked.publish(reward)
            return reward

    # ============================================
    # Host domain events
    # ============================================

    def on_transaction_added(self, transaction: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        """A transaction was added (metadata: emotionalState, isScanned, category, amount...)"""
        logger.info("Transaction added")
        return self._dispatch(ACTION_ADD_TRANSACTION, transaction, for_achievements=True, for_missions=True)

    def on_report_viewed(self, report_type: str) -> Dict[str, list]:
        logger.info(f"Report viewed: {report_type}")
        return self._dispatch(ACTION_VIEW_REPORT, {"reportType": report_type}, for_achievements=True, for_missions=True)

    def on_financial_health_updated(self, health_score: float, factors: Any = None) -> Dict[str, list]:
        logger.info(f"Financial health updated: {health_score}%")
        return self._dispatch(
            ACTION_FINANCIAL_HEALTH_UPDATED,
            {"healthScore": health_score, "factors": factors},
            for_achievements=True,
        )

    def on_goal_achieved(self, goal_data: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        logger.info(f"Goal achieved: {dict(goal_data or {})}")
        return self._dispatch(ACTION_GOAL_ACHIEVED, goal_data, for_achievements=True, for_missions=True)

    def on_weekly_analysis_completed(self, analysis_data: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        logger.info(f"Weekly analysis completed: {dict(analysis_data or {})}")
        return self._dispatch(ACTION_WEEKLY_ANALYSIS, analysis_data, for_missions=True)

    def on_budget_compliance_check(self, budget_data: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        """Budget check ran (metadata: isWithinBudget, daysInBudget, category)"""
        logger.info(f"Budget compliance check: {dict(budget_data or {})}")
        with self._mutation():
            outcome = self._dispatch(ACTION_BUDGET_CHECK, budget_data, for_achievements=True)
            compliance = self._dispatch(
                ACTION_BUDGET_COMPLIANCE_CHECK, budget_data, for_achievements=True, for_missions=True
            )
        outcome["achievements"].extend(compliance["achievements"])
        outcome["missions"].extend(compliance["missions"])
        return outcome

    def on_savings_check(self, savings_data: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        """Savings check ran (metadata: savingsRate, consecutiveMonths)"""
        logger.info(f"Savings check: {dict(savings_data or {})}")
        return self._dispatch(ACTION_SAVINGS_CHECK, savings_data, for_achievements=True)

    def on_expense_optimization(self, optimization_data: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        """Spending was reduced (metadata: reductionPercentage, category)"""
        logger.info(f"Expense optimization: {dict(optimization_data or {})}")
        return self._dispatch(ACTION_EXPENSE_OPTIMIZATION, optimization_data, for_achievements=True)

    def on_daily_activity_completed(self, metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        return self._dispatch(ACTION_DAILY_ACTIVITY_COMPLETED, metadata, for_missions=True)

    def on_no_entertainment_day(self, metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, list]:
        return self._dispatch(ACTION_NO_ENTERTAINMENT_DAY, metadata, for_missions=True)

    def _dispatch(
        self,
        action: str,
        metadata: Optional[Mapping[str, Any]],
        for_achievements: bool = False,
        for_missions: bool = False
    ) -> Dict[str, list]:
        metadata = dict(metadata or {})
        outcome: Dict[str, list] = {"achievements": [], "missions": []}
        with self._mutation():
            if for_achievements:
                outcome["achievements"] = self.check_achievements_for_action(action, metadata)
            if for_missions:
                outcome["missions"] = self.check_missions_for_action(action, metadata)
        return outcome

    # ============================================
    # Daily activity helpers
    # ============================================

    def set_transactions_data(self, transactions: Sequence[Mapping[str, Any]]) -> None:
        """Provide transaction summaries (date, category, amount) for daily checks"""
        entries = list(transactions) if isinstance(transactions, Sequence) else []
        self._transactions = [t for t in entries if isinstance(t, Mapping)]
        if len(self._transactions) != len(entries):
            logger.warning(f"Ignored {len(entries) - len(self._transactions)} malformed transaction entries")

    def _transactions_for(self, day: date) -> List[Mapping[str, Any]]:
        return [t for t in self._transactions if parse_calendar_date(t.get("date")) == day]

    def check_daily_activity_completion(self) -> bool:
        """
        Fire daily_activity_completed if a transaction exists for today

        Returns:
            True if there was activity today
        """
        today = local_date(self._now())
        todays = self._transactions_for(today)
        if not todays:
            return False

        self.on_daily_activity_completed({"transactionCount": len(todays), "date": today.isoformat()})
        return True

    def check_no_entertainment_today(self) -> bool:
        """
        Fire no_entertainment_day if there is no entertainment expense today

        Returns:
            True if the day was free of entertainment spending
        """
        today = local_date(self._now())
        entertainment = [
            t for t in self._transactions_for(today)
            if str(t.get("category", "")).lower() in ENTERTAINMENT_CATEGORIES and _is_expense(t.get("amount"))
        ]
        if entertainment:
            return False

        self.on_no_entertainment_day({"date": today.isoformat()})
        return True

    # ============================================
    # Whole-profile operations
    # ============================================

    def reset_profile(self) -> GamificationProfile:
        """Replace the profile with a fresh default one"""
        logger.info("Resetting progression profile to defaults")
        with self._mutation():
            self._profile = build_default_profile(self._now(), self.registry)
            self._touched = True
        self.events.profile_reset.publish(self._profile)
        return self._profile

    async def import_profile(self, profile_data: Any) -> bool:
        """
        Replace the profile wholesale with validated data

        Returns:
            True on success, False if the data was invalid (profile unchanged)
        """
        try:
            profile = parse_profile(profile_data, operation="import_profile")
        except ProfileValidationError:
            logger.error("Invalid profile data for import")
            return False
        except Exception as e:
            logger.error(f"Error importing profile: {e}", exc_info=True)
            return False

        self._profile = self.registry.bind(profile)
        self._mark_dirty()
        self.events.profile_updated.publish(self._profile)
        if not await self.flush():
            logger.warning("Imported profile could not be saved yet, it will be retried on the next change")
        logger.info("Profile imported successfully")
        return True

    def refresh_catalog(self) -> Dict[str, int]:
        """Add catalog entries missing from the profile, keeping progress"""
        with self._mutation():
            added = merge_catalog(self._profile, self._now(), self.registry)
            if any(added.values()):
                self._touched = True
            return added

    # ============================================
    # Persistence
    # ============================================

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Group nested mutations so the profile is persisted once at the end"""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0 and self._touched:
                self._touched = False
                self._persist()

    def _mark_dirty(self) -> int:
        self._generation += 1
        self._dirty = True
        return self._generation

    def _persist(self) -> None:
        """Schedule a save of the current state and notify subscribers"""
        generation = self._mark_dirty()
        snapshot = self._profile.to_storage()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, profile save deferred until flush()")
        else:
            task = loop.create_task(self._write(snapshot, generation))
            self._pending_saves.add(task)
            task.add_done_callback(self._pending_saves.discard)

        self.events.profile_updated.publish(self._profile)

    async def _write(self, snapshot: Dict[str, Any], generation: int) -> bool:
        async with self._save_lock:
            try:
                saved = bool(await self.store.save(snapshot))
            except ProgressionError:
                # Already logged with context
                saved = False
            except Exception as e:
                logger.error(f"Error saving progression profile: {e}", exc_info=True)
                saved = False

        record_profile_save(saved)
        if saved and generation == self._generation:
            self._dirty = False
        return saved

    async def flush(self) -> bool:
        """
        Wait for scheduled saves and write any state not yet saved

        Returns:
            True if the latest state is persisted
        """
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

        if self._dirty:
            return await self._write(self._profile.to_storage(), self._generation)
        return True

    def _now(self) -> datetime:
        return ensure_aware(self._clock())
