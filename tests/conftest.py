"""Global test fixtures and utilities for progression engine tests"""
import os

# Calendar-day arithmetic in tests is done in UTC
os.environ["PROGRESSION_TIMEZONE"] = "UTC"

import pytest
from datetime import datetime, timedelta, timezone

from progression_engine.gamification.catalog import build_default_profile
from progression_engine.services.progression_engine import ProgressionEngine
from progression_engine.storage.profile_store import InMemoryProfileStore


# ============================================================================
# Time Fixtures
# ============================================================================

class FakeClock:
    """Manually advanced clock (timezone-aware)"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def fixed_now():
    """Fixed timestamp: Friday 2024-03-15 10:00 UTC"""
    return datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    """Controllable clock starting at fixed_now"""
    return FakeClock(fixed_now)


# ============================================================================
# Profile Fixtures
# ============================================================================

@pytest.fixture
def profile(fixed_now):
    """Fresh default profile built at fixed_now"""
    return build_default_profile(fixed_now)


@pytest.fixture
def stored_profile(fixed_now):
    """Stored (camelCase JSON) form of a default profile"""
    return build_default_profile(fixed_now).to_storage()


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Empty in-memory profile store"""
    return InMemoryProfileStore()


@pytest.fixture
def engine(memory_store, clock):
    """Engine on an empty in-memory store (not initialized)"""
    return ProgressionEngine(store=memory_store, clock=clock)


@pytest.fixture
def event_log(engine):
    """Record every event published by the engine as (name, payload)"""
    log = []
    for name in engine.events.names():
        engine.on(name, lambda payload, name=name: log.append((name, payload)))
    return log


@pytest.fixture
def temp_data_dir(tmp_path):
    """Temporary directory for profile files"""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir
