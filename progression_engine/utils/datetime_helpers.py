"""
Standardized Date/Time Handling Utilities

Centralized helpers so the engine reasons about time consistently:
1. Stored timestamps are timezone-aware
2. Streak days are calendar days in the configured progression timezone
3. Legacy naive timestamps are interpreted in that same timezone

CRITICAL RULES:
- Never mix naive and aware datetimes
- Compare calendar dates, never elapsed hours, for streaks
"""

import logging
from datetime import datetime, date
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from progression_engine.config import PROGRESSION_TIMEZONE

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

# Formats seen in stored profiles, tried in order
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%a %b %d %Y",  # "Wed Oct 05 2011"
    "%m/%d/%Y",
)

Clock = Callable[[], datetime]


def get_progression_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    """
    Get the timezone used for calendar-day arithmetic

    Args:
        tz_name: IANA timezone name, defaults to PROGRESSION_TIMEZONE

    Returns:
        ZoneInfo object, UTC if the name is unknown
    """
    tz_str = tz_name or PROGRESSION_TIMEZONE or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(tz_str)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_str}': {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_local() -> datetime:
    """Current time in the progression timezone (timezone-aware)"""
    return datetime.now(get_progression_timezone())


def ensure_aware(dt: datetime) -> datetime:
    """
    Attach the progression timezone to a naive datetime

    Aware datetimes are returned unchanged.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=get_progression_timezone())
    return dt


def local_date(dt: datetime) -> date:
    """Calendar date of a datetime in the progression timezone"""
    return ensure_aware(dt).astimezone(get_progression_timezone()).date()


def parse_calendar_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a stored calendar date

    Accepts date/datetime objects, ISO dates, ISO datetimes and the
    "Wed Oct 05 2011" form.

    Returns:
        date, or None when the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return local_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return local_date(datetime.fromisoformat(text))
    except ValueError:
        logger.debug(f"Unparseable calendar date: {value!r}")
        return None


def days_between(earlier: date, later: date) -> int:
    """Calendar-day difference (later - earlier), midnight to midnight"""
    return (later - earlier).days
