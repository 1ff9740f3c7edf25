from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from event_manager.deps import get_store
from event_manager.main import app
from event_manager.models import Profile
from event_manager.services.sqlite_store import SQLiteStore


@pytest.fixture
def store():
    """A fresh in-memory store per test."""
    store = SQLiteStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def make_profile(store):
    def _make(profile_id: str, name: str | None = None, tz: str = "UTC") -> Profile:
        profile = Profile(
            id=profile_id,
            name=name or f"profile-{profile_id}",
            timezone=tz,
            created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        return store.profiles.create(profile)

    return _make


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
