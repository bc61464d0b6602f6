"""Configuration management"""
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

from progression_engine.exceptions import ConfigurationError

load_dotenv()

# Storage
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))
PROFILE_FILENAME: str = os.getenv("PROFILE_FILENAME", "gamification_profile.json")

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Calendar days for streaks are counted in this timezone
PROGRESSION_TIMEZONE: str = os.getenv("PROGRESSION_TIMEZONE", "UTC")

# Streak bonus: every Nth consecutive day awards a fixed XP bonus
STREAK_BONUS_INTERVAL: int = int(os.getenv("STREAK_BONUS_INTERVAL", "7"))
STREAK_BONUS_XP: int = int(os.getenv("STREAK_BONUS_XP", "25"))

# Observability
ENABLE_METRICS: bool = os.getenv("ENABLE_METRICS", "true").lower() == "true"


# Validation
def validate_config() -> None:
    """Validate configuration"""
    if not PROFILE_FILENAME:
        raise ConfigurationError("PROFILE_FILENAME is required", config_key="PROFILE_FILENAME")
    if STREAK_BONUS_INTERVAL <= 0:
        raise ConfigurationError(
            "STREAK_BONUS_INTERVAL must be positive", config_key="STREAK_BONUS_INTERVAL"
        )
    if STREAK_BONUS_XP < 0:
        raise ConfigurationError("STREAK_BONUS_XP must not be negative", config_key="STREAK_BONUS_XP")
    try:
        ZoneInfo(PROGRESSION_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(
            f"Unknown timezone: '{PROGRESSION_TIMEZONE}'", config_key="PROGRESSION_TIMEZONE"
        )
    if LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"Invalid LOG_LEVEL: '{LOG_LEVEL}'", config_key="LOG_LEVEL")
