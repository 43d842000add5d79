"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timezone
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from src.models.actor import Actor, Role, SYSTEM_ACTOR  # noqa: E402
from tests.utils.fake_supabase import FakeSupabase  # noqa: E402

NOW = datetime(2024, 12, 9, 12, 0, 0, tzinfo=timezone.utc)

OWNER_ID = "user-owner"
ADMIN_ID = "user-admin"
STRANGER_ID = "user-stranger"


@pytest.fixture
def fake_supabase(monkeypatch):
    """In-memory Supabase client installed as the module singleton."""
    store = FakeSupabase()
    store.auth.add_user("owner-token", OWNER_ID, role="model", email="owner@example.com")
    store.auth.add_user("admin-token", ADMIN_ID, role="admin", email="admin@example.com")
    store.auth.add_user("stranger-token", STRANGER_ID, role="customer")
    monkeypatch.setattr("src.services.supabase_client._client", store)
    return store


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def admin_actor():
    return Actor(id=ADMIN_ID, role=Role.ADMIN, email="admin@example.com")


@pytest.fixture
def owner_actor():
    return Actor(id=OWNER_ID, role=Role.MODEL)


@pytest.fixture
def stranger_actor():
    return Actor(id=STRANGER_ID, role=Role.CUSTOMER)


@pytest.fixture
def system_actor():
    return SYSTEM_ACTOR


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
