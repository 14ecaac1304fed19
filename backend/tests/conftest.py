"""Shared test fixtures for all test groups."""

from datetime import UTC, datetime, timedelta

import pytest

from savrii.domain.entitlements import EntitlementResolver
from savrii.schemas.entitlements import UserRecord

NOW = datetime(2030, 6, 15, 10, 30, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed wall-clock instant used by time-dependent tests."""
    return NOW


@pytest.fixture
def resolver() -> EntitlementResolver:
    """Resolver over the production plan tables."""
    return EntitlementResolver()


@pytest.fixture
def trial_user(now):
    """Starter user who signed up three days ago."""
    start = now - timedelta(days=3)
    return UserRecord(plan="starter", trial_start_date=start, trial_end_date=start + timedelta(days=14))


@pytest.fixture
def expired_user(now):
    """Starter user whose trial ended an hour ago."""
    end = now - timedelta(hours=1)
    return UserRecord(plan="starter", trial_start_date=end - timedelta(days=14), trial_end_date=end)


@pytest.fixture
def pro_user():
    return UserRecord(plan="pro")


@pytest.fixture
def enterprise_user():
    return UserRecord(plan="enterprise")
