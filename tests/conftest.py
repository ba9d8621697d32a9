"""
Shared fixtures for FinTrack Ledger tests.

Every test runs against the in-memory collaborators. RecordingStore adds
call recording and failure injection on top of InMemoryStore so partial
failures of multi-step sequences can be reproduced.
"""

import asyncio
from datetime import date

import pytest

from fintrack.audit import AuditLogger
from fintrack.config import LedgerSettings
from fintrack.ledger import LedgerManager
from fintrack.services.auth import LocalAuthProvider
from fintrack.services.preferences import MemoryPreferenceStore
from fintrack.services.storage import InMemoryStore, StorageError

TODAY = date(2024, 3, 20)
EMAIL = "ana@example.com"
PASSWORD = "correct-horse"


class RecordingStore(InMemoryStore):
    """InMemoryStore that records calls and fails chosen (operation, table) pairs."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], str] = {}

    def fail(self, operation: str, table: str, message: str = "simulated outage") -> None:
        self.failures[(operation, table)] = message

    def heal(self) -> None:
        self.failures.clear()

    def calls_for(self, operation: str) -> list[str]:
        return [table for called, table in self.calls if called == operation]

    def _record(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        message = self.failures.get((operation, table))
        if message:
            raise StorageError(message)

    async def select(self, table, filters=None, order=()):
        self._record("select", table)
        return await super().select(table, filters=filters, order=order)

    async def insert(self, table, rows):
        self._record("insert", table)
        return await super().insert(table, rows)

    async def update(self, table, patch, filters):
        self._record("update", table)
        return await super().update(table, patch, filters)

    async def upsert(self, table, row, on_conflict):
        self._record("upsert", table)
        return await super().upsert(table, row, on_conflict)

    async def delete(self, table, filters):
        self._record("delete", table)
        return await super().delete(table, filters)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def auth():
    provider = LocalAuthProvider()
    result = asyncio.run(provider.sign_up(EMAIL, PASSWORD))
    assert result.error is None
    return provider


@pytest.fixture
def preferences():
    return MemoryPreferenceStore()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def make_ledger(store, auth, preferences, audit_logger):
    """Build managers sharing the same store, auth provider and preferences."""
    def factory(**overrides) -> LedgerManager:
        options = {
            "store": store,
            "auth": auth,
            "preferences": preferences,
            "audit_logger": audit_logger,
            "settings": LedgerSettings(),
            "clock": lambda: TODAY,
        }
        options.update(overrides)
        return LedgerManager(**options)
    return factory


@pytest.fixture
def ledger(make_ledger):
    """A manager signed in as EMAIL, on its default profile, viewing 2024-03."""
    manager = make_ledger()
    result = asyncio.run(manager.sign_in(EMAIL, PASSWORD))
    assert result.error is None
    return manager


@pytest.fixture
def category_named(ledger):
    """Look up a category of the signed-in ledger by name."""
    def find(name: str):
        return next(category for category in ledger.get_categories() if category.name == name)
    return find
