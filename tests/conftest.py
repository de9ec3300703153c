"""Global test fixtures and utilities for GlowUp scoring tests"""
import pytest
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from glowup.gamification.notifications import CelebrationBus, InMemoryNotifier
from glowup.gamification.store import InMemoryScoreStore
from glowup.auth.identity import StaticIdentity
from glowup.services.scoring_service import ScoringService


# ============================================================================
# Database Fakes
# ============================================================================

class FakeCursor:
    """Async cursor that records executed queries and replays canned rows"""

    def __init__(self, rows: Optional[List[Any]] = None):
        self.rows = list(rows or [])
        self.executed: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query, params=None):
        self.executed.append((query, params))

    async def fetchone(self):
        if self.rows:
            return self.rows.pop(0)
        return None


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    def __init__(self, cursor: FakeCursor):
        self._cursor = cursor
        self.commits = 0
        self.transactions = 0

    def cursor(self):
        return self._cursor

    def transaction(self):
        return FakeTransaction(self)

    async def commit(self):
        self.commits += 1


class FakeDatabase:
    """Stands in for glowup.db.connection.db"""

    def __init__(self, rows: Optional[List[Any]] = None):
        self.cursor = FakeCursor(rows)
        self.conn = FakeConnection(self.cursor)

    @asynccontextmanager
    async def connection(self):
        yield self.conn


@pytest.fixture
def fake_db_factory():
    """Factory for fake databases preloaded with fetchone rows"""
    def _create(*rows):
        return FakeDatabase(list(rows))
    return _create


# ============================================================================
# User & Identity Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "6f1c2a3e-0000-4000-8000-000000000001"


@pytest.fixture
def identity(test_user_id):
    """Identity provider signed in as the test user"""
    return StaticIdentity(test_user_id)


# ============================================================================
# Scoring Fixtures
# ============================================================================

@pytest.fixture
def memory_store(test_user_id):
    """In-memory store with a zeroed profile for the test user"""
    store = InMemoryScoreStore()
    store.create_profile(test_user_id)
    return store


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def celebrations():
    """Celebration bus plus the list of events it received"""
    bus = CelebrationBus()
    received = []
    bus.subscribe(received.append)
    return bus, received


@pytest.fixture
def scoring_service(memory_store, notifier, celebrations, identity):
    """ScoringService wired to in-memory collaborators, lenient catalog"""
    bus, _ = celebrations
    return ScoringService(
        store=memory_store,
        notifier=notifier,
        celebrations=bus,
        identity=identity,
        strict_catalog=False,
        max_retries=1,
    )
