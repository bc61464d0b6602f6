"""Unit tests for input and stored-profile validation (progression_engine/validators.py)"""
import math
import pytest
from datetime import date

from progression_engine.exceptions import ProfileValidationError
from progression_engine.validators import (
    check_profile_shape,
    is_number,
    is_valid_entity_id,
    is_valid_progress,
    normalize_profile,
    parse_profile,
)


# ============================================================================
# Caller Input Tests
# ============================================================================

@pytest.mark.parametrize("value,valid", [
    ("1", True),
    ("abc", True),
    ("", False),
    ("  ", False),
    (None, False),
    (1, False),
])
def test_is_valid_entity_id(value, valid):
    """Test id validation"""
    assert is_valid_entity_id(value) is valid


@pytest.mark.parametrize("value,valid", [
    (0, True),
    (3, True),
    (2.5, True),
    (-1, False),
    (math.nan, False),
    (math.inf, False),
    ("3", False),
    (False, False),
])
def test_is_valid_progress(value, valid):
    """Test progress validation"""
    assert is_valid_progress(value) is valid


@pytest.mark.parametrize("value,valid", [
    (0, True),
    (-4.5, True),
    (math.nan, True),
    ("1", False),
    (None, False),
    (True, False),
])
def test_is_number(value, valid):
    """Test numeric type check"""
    assert is_number(value) is valid


# ============================================================================
# Profile Shape Tests
# ============================================================================

class TestCheckProfileShape:
    """Test the structural pre-check"""

    def test_valid_profile(self, stored_profile):
        """Test a stored default profile passes"""
        assert check_profile_shape(stored_profile) == []

    def test_not_an_object(self):
        """Test non-objects fail"""
        assert check_profile_shape([1, 2]) == ["profile must be an object, got list"]

    def test_missing_fields(self):
        """Test every missing field is reported"""
        problems = check_profile_shape({"xp": "lots"})

        assert "xp must be a number" in problems
        assert "level must be a number" in problems
        assert "achievements must be a list" in problems
        assert "rewards must be a list" in problems
        assert "missions must be an object" in problems

    def test_missions_lists_required(self, stored_profile):
        """Test missions must hold active and completed lists"""
        stored_profile["missions"] = {"active": []}

        assert check_profile_shape(stored_profile) == ["missions.completed must be a list"]


# ============================================================================
# Parse Tests
# ============================================================================

class TestParseProfile:
    """Test full stored-profile validation"""

    def test_round_trip_of_stored_form(self, profile):
        """Test a stored profile parses back to an equal profile"""
        parsed = parse_profile(profile.to_storage())

        assert parsed.to_storage() == profile.to_storage()

    def test_accepts_profile_instance(self, profile):
        """Test a model instance is copied, not shared"""
        parsed = parse_profile(profile)

        assert parsed is not profile
        assert parsed.achievements[0] is not profile.achievements[0]

    def test_level_is_recomputed_from_xp(self, stored_profile):
        """Test a stale stored level is corrected"""
        stored_profile["xp"] = 300
        stored_profile["level"] = 1

        assert parse_profile(stored_profile).level == 3

    def test_counters_are_recomputed(self, stored_profile):
        """Test achievement counters mirror the catalog"""
        stored_profile["achievements"][0]["isCompleted"] = True
        stored_profile["completedAchievements"] = 7

        parsed = parse_profile(stored_profile)

        assert parsed.completed_achievements == 1
        assert parsed.total_achievements == 10

    def test_mission_in_both_collections_is_completed(self, stored_profile):
        """Test duplicated missions are kept only in completed"""
        mission = dict(stored_profile["missions"]["active"][0], isCompleted=True, progress=1)
        stored_profile["missions"]["completed"].append(mission)

        parsed = parse_profile(stored_profile)

        assert parsed.get_active_mission(mission["id"]) is None
        assert [m.id for m in parsed.missions.completed] == [mission["id"]]

    def test_legacy_last_active_date(self, stored_profile):
        """Test the "Wed Mar 13 2024" stored form is parsed"""
        stored_profile["lastActiveDate"] = "Wed Mar 13 2024"

        assert parse_profile(stored_profile).last_active_date == date(2024, 3, 13)

    def test_structural_failure_raises(self):
        """Test a shapeless payload raises ProfileValidationError"""
        with pytest.raises(ProfileValidationError) as exc_info:
            parse_profile({"xp": 10})

        assert "level must be a number" in exc_info.value.errors

    def test_field_failure_raises(self, stored_profile):
        """Test invalid entries raise ProfileValidationError"""
        stored_profile["achievements"][0]["type"] = "not-a-type"

        with pytest.raises(ProfileValidationError) as exc_info:
            parse_profile(stored_profile, operation="import_profile")

        assert exc_info.value.operation == "import_profile"
        assert any("type" in error for error in exc_info.value.errors)

    def test_fractional_numbers_are_truncated(self, stored_profile):
        """Test finite floats in whole-number fields are truncated"""
        stored_profile["xp"] = 150.5
        stored_profile["achievements"][7]["progress"] = 42.5
        stored_profile["missions"]["active"][0]["progress"] = 0.9

        parsed = parse_profile(stored_profile)

        assert parsed.xp == 150
        assert parsed.level == 2
        assert parsed.achievements[7].progress == 42
        assert parsed.missions.active[0].progress == 0

    def test_non_finite_number_raises(self, stored_profile):
        """Test NaN xp passes the shape check but fails validation"""
        stored_profile["xp"] = math.nan

        with pytest.raises(ProfileValidationError):
            parse_profile(stored_profile)

    def test_progress_above_max_is_clamped(self, stored_profile):
        """Test stored progress beyond max is clamped"""
        stored_profile["achievements"][0]["progress"] = 50

        parsed = parse_profile(stored_profile)

        assert parsed.achievements[0].progress == parsed.achievements[0].max_progress


def test_normalize_profile_returns_same_instance(profile):
    """Test normalization mutates in place"""
    profile.xp = 1000

    assert normalize_profile(profile) is profile
    assert profile.level == 5
