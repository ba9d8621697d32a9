"""
Tests for the in-memory remote store.

The ledger relies on the store for identifiers, timestamps, unique keys,
cascades and the default category seed.
"""

import asyncio

import pytest

from fintrack.services.storage import (
    DuplicateError,
    InMemoryStore,
    NotFoundError,
    Order,
    PermissionDeniedError,
    StorageError,
)


@pytest.fixture
def memory_store():
    return InMemoryStore()


def _profile(store: InMemoryStore, owner: str = "u1", name: str = "Home") -> dict:
    return asyncio.run(store.insert("profiles", [{"owner": owner, "name": name, "currency": "$"}]))[0]


class TestCrud:
    """Tests for the five table operations."""

    def test_insert_assigns_identity_and_timestamps(self, memory_store):
        """Test the store assigns id and created_at on insert."""
        row = _profile(memory_store)
        assert row["id"]
        assert row["created_at"]
        assert row["owner"] == "u1"

    def test_insert_returns_rows_in_input_order(self, memory_store):
        """Test bulk inserts return one row per input, in order."""
        rows = asyncio.run(memory_store.insert("categories", [
            {"profile_id": "p1", "name": "B"},
            {"profile_id": "p1", "name": "A"},
        ]))
        assert [row["name"] for row in rows] == ["B", "A"]

    def test_returned_rows_are_copies(self, memory_store):
        """Test callers cannot mutate stored rows."""
        row = _profile(memory_store)
        row["name"] = "Changed"
        assert memory_store.rows("profiles")[0]["name"] == "Home"

    def test_select_filters_and_orders(self, memory_store):
        """Test equality filters and descending order."""
        asyncio.run(memory_store.insert("expenses", [
            {"profile_id": "p1", "name": "a", "amount": "1", "date": "2024-03-01"},
            {"profile_id": "p1", "name": "b", "amount": "2", "date": "2024-03-09"},
            {"profile_id": "p2", "name": "c", "amount": "3", "date": "2024-03-05"},
        ]))
        rows = asyncio.run(memory_store.select(
            "expenses",
            filters={"profile_id": "p1"},
            order=[Order("date", descending=True)],
        ))
        assert [row["name"] for row in rows] == ["b", "a"]

    def test_update_returns_affected_rows(self, memory_store):
        """Test update patches matching rows and reports them."""
        inserted = asyncio.run(memory_store.insert("expenses", [
            {"profile_id": "p1", "name": "a", "amount": "1", "date": "2024-03-01"},
        ]))[0]
        updated = asyncio.run(memory_store.update("expenses", {"name": "z"}, {"id": inserted["id"]}))
        assert updated[0]["name"] == "z"
        assert updated[0]["updated_at"] >= inserted["updated_at"]

    def test_update_without_match_returns_empty(self, memory_store):
        """Test update reports nothing when no row matches."""
        assert asyncio.run(memory_store.update("expenses", {"name": "z"}, {"id": "missing"})) == []

    def test_monthly_stats_unique_key(self, memory_store):
        """Test (profile_id, month_key) is unique and a failed batch stores nothing."""
        row = {"profile_id": "p1", "month_key": "2024-03", "budget": "1", "income": "0"}
        asyncio.run(memory_store.insert("monthly_stats", [row]))
        other = {"profile_id": "p1", "month_key": "2024-04", "budget": "1", "income": "0"}
        with pytest.raises(DuplicateError):
            asyncio.run(memory_store.insert("monthly_stats", [other, row]))
        assert len(memory_store.rows("monthly_stats")) == 1

    def test_upsert_updates_existing_row(self, memory_store):
        """Test upsert on the conflict key updates instead of duplicating."""
        key = ("profile_id", "month_key")
        base = {"profile_id": "p1", "month_key": "2024-03", "income": "0"}
        asyncio.run(memory_store.upsert("monthly_stats", {**base, "budget": "1"}, key))
        stored = asyncio.run(memory_store.upsert("monthly_stats", {**base, "budget": "2"}, key))
        assert stored["budget"] == "2"
        assert len(memory_store.rows("monthly_stats")) == 1

    def test_unknown_table_and_column(self, memory_store):
        """Test unknown tables and columns are storage errors."""
        with pytest.raises(StorageError, match="Unknown table"):
            asyncio.run(memory_store.select("bills"))
        with pytest.raises(StorageError, match="Unknown column"):
            asyncio.run(memory_store.insert("profiles", [{"nickname": "x"}]))


class TestCascades:
    """Tests for delete side effects."""

    def test_delete_profile_cascades(self, memory_store):
        """Test deleting a profile deletes its child rows."""
        profile = _profile(memory_store)
        asyncio.run(memory_store.seed_default_categories(profile["id"], "u1"))
        asyncio.run(memory_store.insert("expenses", [
            {"profile_id": profile["id"], "name": "a", "amount": "1", "date": "2024-03-01"},
        ]))
        deleted = asyncio.run(memory_store.delete("profiles", {"id": profile["id"]}))
        assert deleted == 1
        assert memory_store.rows("categories") == []
        assert memory_store.rows("expenses") == []

    def test_delete_category_clears_references(self, memory_store):
        """Test expenses of a deleted category keep existing with no category."""
        category = asyncio.run(memory_store.insert("categories", [{"profile_id": "p1", "name": "Pets"}]))[0]
        asyncio.run(memory_store.insert("expenses", [
            {"profile_id": "p1", "category_id": category["id"], "name": "a", "amount": "1", "date": "2024-03-01"},
        ]))
        asyncio.run(memory_store.delete("categories", {"id": category["id"]}))
        assert memory_store.rows("expenses")[0]["category_id"] is None


class TestSeedDefaultCategories:
    """Tests for the default category seed operation."""

    def test_seed_is_idempotent(self, memory_store):
        """Test seeding twice inserts the defaults once."""
        profile = _profile(memory_store)
        assert asyncio.run(memory_store.seed_default_categories(profile["id"], "u1")) == 8
        assert asyncio.run(memory_store.seed_default_categories(profile["id"], "u1")) == 0
        assert len(memory_store.rows("categories")) == 8

    def test_seed_fills_only_missing_keys(self, memory_store):
        """Test only absent system keys are inserted."""
        profile = _profile(memory_store)
        asyncio.run(memory_store.insert("categories", [
            {"profile_id": profile["id"], "name": "Other", "system_key": "other"},
        ]))
        assert asyncio.run(memory_store.seed_default_categories(profile["id"], "u1")) == 7

    def test_seed_checks_ownership(self, memory_store):
        """Test seeding someone else's profile is refused."""
        profile = _profile(memory_store, owner="u1")
        with pytest.raises(PermissionDeniedError):
            asyncio.run(memory_store.seed_default_categories(profile["id"], "u2"))

    def test_seed_unknown_profile(self, memory_store):
        """Test seeding a missing profile raises NotFoundError."""
        with pytest.raises(NotFoundError):
            asyncio.run(memory_store.seed_default_categories("missing", "u1"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
