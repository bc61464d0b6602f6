"""Fixed progression tables and action names"""

from progression_engine.config import STREAK_BONUS_INTERVAL, STREAK_BONUS_XP

# XP required to reach each level (index 0 = level 1)
LEVEL_THRESHOLDS: list[int] = [
    0,     # Level 1
    100,   # Level 2
    250,   # Level 3
    500,   # Level 4
    1000,  # Level 5
    1750,  # Level 6
    2750,  # Level 7
    4000,  # Level 8
    5500,  # Level 9
    7500,  # Level 10
]

MAX_LEVEL: int = len(LEVEL_THRESHOLDS)

# Minimum level that auto-unlocks a reward, keyed by reward id.
# Rewards missing from this table are never unlocked by leveling.
REWARD_LEVEL_GATES: dict[str, int] = {
    "2": 4,  # Advanced analytics
    "3": 5,  # "Financial expert" badge
    "4": 3,  # PRO saving tips
    "5": 7,  # Gold theme
}

# Streak bonus
STREAK_BONUS_EVERY_DAYS: int = STREAK_BONUS_INTERVAL
STREAK_BONUS_AMOUNT: int = STREAK_BONUS_XP

# Domain actions understood by the trigger catalog
ACTION_ADD_TRANSACTION = "add_transaction"
ACTION_VIEW_REPORT = "view_report"
ACTION_FINANCIAL_HEALTH_UPDATED = "financial_health_updated"
ACTION_GOAL_ACHIEVED = "goal_achieved"
ACTION_WEEKLY_ANALYSIS = "weekly_analysis"
ACTION_BUDGET_CHECK = "budget_check"
ACTION_BUDGET_COMPLIANCE_CHECK = "budget_compliance_check"
ACTION_SAVINGS_CHECK = "savings_check"
ACTION_EXPENSE_OPTIMIZATION = "expense_optimization"
ACTION_DAILY_ACTIVITY_COMPLETED = "daily_activity_completed"
ACTION_NO_ENTERTAINMENT_DAY = "no_entertainment_day"
ACTION_STREAK_UPDATED = "streak_updated"

# Transaction categories counted as entertainment spending (case-insensitive)
ENTERTAINMENT_CATEGORIES: frozenset[str] = frozenset({"entertainment", "забавления"})
