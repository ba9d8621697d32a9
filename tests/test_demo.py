"""
Tests for demo data generation and component wiring.
"""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest

from fintrack.config import LedgerSettings
from fintrack.demo import DEMO_EMAIL, DEMO_PROFILE_NAME, generate_demo_document
from fintrack.ledger import parse_import_document
from fintrack.orchestrator import create_demo_ledger, create_ledger, create_remote_store
from fintrack.services.auth import LocalAuthProvider
from fintrack.services.preferences import MemoryPreferenceStore
from fintrack.services.storage import InMemoryStore

DEMO_DAY = date(2024, 3, 20)
DEMO_MONTHS = ["2023-10", "2023-11", "2023-12", "2024-01", "2024-02", "2024-03"]


class TestDemoDocument:
    """Tests for generate_demo_document."""

    def test_covers_six_months_ending_now(self):
        """Test the document spans the six months up to the current one."""
        document = generate_demo_document(today=DEMO_DAY, seed=7)
        assert list(document["monthlyData"]) == DEMO_MONTHS
        assert document["currentMonth"] == "2024-03"
        assert document["profile"] == {"name": DEMO_PROFILE_NAME, "currency": "$"}

    def test_month_contents(self):
        """Test expense counts, dates and rounded budget/income."""
        document = generate_demo_document(today=DEMO_DAY, seed=7)
        category_ids = {category["id"] for category in document["categories"]}
        assert len(category_ids) == 8

        for month_key, month in document["monthlyData"].items():
            assert 15 <= len(month["expenses"]) <= 30
            assert month["budget"] % 50 == 0
            assert month["income"] % 50 == 0
            for expense in month["expenses"]:
                assert expense["date"].startswith(month_key)
                assert expense["amount"] > 0
                assert expense["categoryId"] in category_ids

    def test_same_seed_same_document(self):
        """Test a seed makes the document reproducible."""
        assert generate_demo_document(today=DEMO_DAY, seed=3) == generate_demo_document(today=DEMO_DAY, seed=3)

    def test_document_is_importable(self):
        """Test the serialized document passes import validation."""
        document, error = parse_import_document(json.dumps(generate_demo_document(today=DEMO_DAY, seed=1)))
        assert error is None
        assert document["currentMonth"] == "2024-03"


class TestWiring:
    """Tests for the orchestrator factories."""

    def test_memory_backend(self):
        """Test the memory backend builds an InMemoryStore."""
        store = create_remote_store(LedgerSettings(storage_backend="memory"))
        assert isinstance(store, InMemoryStore)

    def test_create_ledger_persists_preferences(self, tmp_path):
        """Test the default preference store writes to the configured file."""
        path = tmp_path / "preferences.json"
        auth = LocalAuthProvider()
        asyncio.run(auth.sign_up("ana@example.com", "correct-horse"))
        ledger = create_ledger(
            store=InMemoryStore(),
            auth=auth,
            settings=LedgerSettings(preferences_path=str(path)),
        )

        asyncio.run(ledger.sign_in("ana@example.com", "correct-horse"))

        assert ledger.is_authenticated()
        assert ledger.get_profile().name == "My Profile"
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert any(key.startswith("fintrack_active_profile_id:") for key in saved)

    def test_create_ledger_follows_auth_events(self):
        """Test the manager is subscribed to the provider it was built with."""
        auth = LocalAuthProvider()
        asyncio.run(auth.sign_up("ana@example.com", "correct-horse"))
        ledger = create_ledger(store=InMemoryStore(), auth=auth, preferences=MemoryPreferenceStore())

        asyncio.run(auth.sign_in("ana@example.com", "correct-horse"))
        assert ledger.get_user_email() == "ana@example.com"

        asyncio.run(auth.sign_out())
        assert not ledger.is_authenticated()


class TestDemoLedger:
    """Tests for create_demo_ledger."""

    def test_demo_ledger_is_ready(self):
        """Test the demo session is signed in with six months of data."""
        ledger = asyncio.run(create_demo_ledger(today=DEMO_DAY, seed=11))

        assert ledger.get_user_email() == DEMO_EMAIL
        assert ledger.get_profile().name == DEMO_PROFILE_NAME
        assert ledger.get_current_month() == "2024-03"
        assert ledger.get_months_with_data() == DEMO_MONTHS
        assert sum(1 for category in ledger.get_categories() if category.is_other) == 1
        assert len(ledger.get_categories()) == 8
        assert ledger.get_total_spent() > Decimal("0")
        assert len(ledger.get_monthly_trend()) == 6


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
