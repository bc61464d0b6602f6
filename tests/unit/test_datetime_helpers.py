"""Tests for datetime helper utilities"""
import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from progression_engine.utils.datetime_helpers import (
    days_between,
    ensure_aware,
    get_progression_timezone,
    local_date,
    now_local,
    parse_calendar_date,
)


class TestTimezone:
    """Test timezone resolution"""

    def test_default_timezone(self):
        """Test the configured timezone is used"""
        assert get_progression_timezone() == ZoneInfo("UTC")

    def test_explicit_timezone(self):
        """Test an explicit IANA name"""
        assert get_progression_timezone("Europe/Sofia") == ZoneInfo("Europe/Sofia")

    def test_invalid_timezone_falls_back_to_utc(self):
        """Test unknown names fall back to UTC"""
        assert get_progression_timezone("Not/AZone") == ZoneInfo("UTC")

    def test_now_local_is_aware(self):
        """Test the default clock returns aware datetimes"""
        assert now_local().tzinfo is not None


class TestEnsureAware:
    """Test naive/aware normalization"""

    def test_naive_gets_progression_timezone(self):
        """Test naive datetimes are interpreted in the progression timezone"""
        result = ensure_aware(datetime(2024, 3, 15, 10, 0))

        assert result.tzinfo == ZoneInfo("UTC")
        assert result.hour == 10

    def test_aware_is_unchanged(self):
        """Test aware datetimes pass through"""
        dt = datetime(2024, 3, 15, 10, 0, tzinfo=ZoneInfo("America/New_York"))

        assert ensure_aware(dt) is dt


class TestCalendarDates:
    """Test calendar-day helpers"""

    def test_local_date_converts_timezone(self):
        """Test the calendar date is taken in the progression timezone"""
        late_in_new_york = datetime(2024, 3, 15, 22, 0, tzinfo=ZoneInfo("America/New_York"))

        assert local_date(late_in_new_york) == date(2024, 3, 16)

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-15", date(2024, 3, 15)),
        ("Fri Mar 15 2024", date(2024, 3, 15)),
        ("03/15/2024", date(2024, 3, 15)),
        ("2024-03-15T23:30:00+00:00", date(2024, 3, 15)),
        (date(2024, 3, 15), date(2024, 3, 15)),
        (datetime(2024, 3, 15, 8, 0, tzinfo=timezone.utc), date(2024, 3, 15)),
        ("yesterday", None),
        ("", None),
        (None, None),
        (20240315, None),
    ])
    def test_parse_calendar_date(self, value, expected):
        """Test supported stored date forms"""
        assert parse_calendar_date(value) == expected

    def test_days_between(self):
        """Test midnight-to-midnight difference"""
        assert days_between(date(2024, 3, 14), date(2024, 3, 15)) == 1
        assert days_between(date(2024, 3, 15), date(2024, 3, 15)) == 0
        assert days_between(date(2024, 3, 16), date(2024, 3, 15)) == -1
