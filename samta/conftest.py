# samta/conftest.py
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(scope="function", autouse=True)
def fresh_store():
    """
    Give every test its own empty in-memory store.

    Tests that exercise the SQL store build one explicitly and install it
    with set_store().
    """
    from samta.features.store.memory import InMemoryMatchStore, reset_store, set_store

    store = InMemoryMatchStore()
    set_store(store)
    yield store
    reset_store()


@pytest.fixture(scope="function", autouse=True)
def clear_analytics_events():
    from samta.features.analytics.service import reset_events

    reset_events()
    yield
    reset_events()


@pytest.fixture(scope="function", autouse=True)
def restore_settings():
    """Undo any settings a test mutates in place."""
    from samta.core.config import settings

    snapshot = settings.model_dump()
    yield settings
    for key, value in snapshot.items():
        setattr(settings, key, value)


@pytest.fixture
def sqlite_store():
    """SQL store on an in-process SQLite database, schema created."""
    from samta.core.database import build_engine
    from samta.features.store.sql import SqlMatchStore

    engine = build_engine("sqlite://")
    store = SqlMatchStore(engine=engine)
    store.create_schema()
    yield store
    engine.dispose()


class TickingClock:
    """Deterministic clock: each call advances by one second."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def services(fresh_store, clock):
    """Domain services sharing one store and one clock."""
    from types import SimpleNamespace

    from samta.features.admin.service import AdminService
    from samta.features.conversations.service import ConversationService
    from samta.features.entitlements.service import EntitlementService
    from samta.features.interests.service import InterestService
    from samta.features.users.service import UserService

    entitlements = EntitlementService(fresh_store, clock=clock)
    return SimpleNamespace(
        store=fresh_store,
        users=UserService(fresh_store, clock=clock),
        entitlements=entitlements,
        interests=InterestService(fresh_store, entitlements, clock=clock),
        conversations=ConversationService(fresh_store, entitlements, clock=clock),
        admin=AdminService(fresh_store, entitlements, clock=clock),
    )
