"""
Abstract Remote Store Interface

DESIGN DECISION: The ledger talks to its backend through a thin,
table-oriented CRUD contract (select / insert / update / upsert / delete
with equality filters and ordering). This allows us to:
1. Use an in-memory store for tests and demo sessions
2. Swap the spreadsheet backend for a hosted relational database
3. Keep every ownership and consistency rule inside the ledger manager

The interface is intentionally simple - we're not building an ORM.
Each call is expected to be atomic on its own; nothing is atomic across
calls. Sequencing and recovery are the ledger manager's job.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, NamedTuple, Optional
from uuid import uuid4

from fintrack.models.ledger import DEFAULT_CATEGORIES


# Column layout of every remote table
TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "profiles": ("id", "owner", "name", "currency", "created_at"),
    "categories": ("id", "profile_id", "name", "color", "system_key"),
    "monthly_stats": ("profile_id", "month_key", "budget", "income"),
    "expenses": (
        "id",
        "profile_id",
        "category_id",
        "name",
        "amount",
        "date",
        "created_at",
        "updated_at",
    ),
}

# Unique keys enforced by the store
UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "profiles": ("id",),
    "categories": ("id",),
    "monthly_stats": ("profile_id", "month_key"),
    "expenses": ("id",),
}

# Rows owned by a profile, deleted with it
PROFILE_CHILD_TABLES = ("expenses", "monthly_stats", "categories")


class Order(NamedTuple):
    """Sort instruction for select()."""
    column: str
    descending: bool = False


Row = dict[str, Any]
Filters = Mapping[str, Any]


class RemoteStore(ABC):
    """
    Abstract interface for the remote ledger store.

    Any backend (spreadsheet, in-memory, hosted Postgres) must implement
    the five table operations. Identifiers and timestamps are assigned
    by the store, never by the caller.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order: Sequence[Order] = (),
    ) -> list[Row]:
        """
        Fetch rows matching every equality filter.

        Args:
            table: Remote table name
            filters: Column -> value equality filters
            order: Sort instructions, applied in priority order

        Returns:
            Matching rows (copies)

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
    ) -> list[Row]:
        """
        Insert one or more rows.

        Returns:
            The inserted rows, with server-assigned id/created_at/updated_at,
            in the same order as the input

        Raises:
            DuplicateError: If a unique key is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        patch: Mapping[str, Any],
        filters: Filters,
    ) -> list[Row]:
        """
        Apply a patch to every row matching the filters.

        Returns:
            The affected rows after the patch (empty if nothing matched)
        """
        pass

    @abstractmethod
    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        on_conflict: Sequence[str],
    ) -> Row:
        """
        Insert a row, or update the existing row with the same conflict key.

        Returns:
            The stored row
        """
        pass

    @abstractmethod
    async def delete(
        self,
        table: str,
        filters: Filters,
    ) -> int:
        """
        Delete every row matching the filters.

        Deleting a profile also deletes its child rows. Deleting a category
        clears category_id on the expenses that referenced it.

        Returns:
            Number of rows deleted from the target table
        """
        pass

    async def seed_default_categories(self, profile_id: str, owner: str) -> int:
        """
        (Re)populate a profile's default category set.

        Idempotent: only default system keys the profile is missing are
        inserted. Ownership is checked against the profiles table.

        Returns:
            Number of categories inserted

        Raises:
            NotFoundError: If the profile does not exist
            PermissionDeniedError: If the profile belongs to someone else
        """
        profiles = await self.select("profiles", filters={"id": profile_id})
        if not profiles:
            raise NotFoundError(f"Profile not found: {profile_id}")
        if str(profiles[0].get("owner")) != str(owner):
            raise PermissionDeniedError(f"Profile {profile_id} is not owned by {owner}")

        existing = await self.select("categories", filters={"profile_id": profile_id})
        present = {row.get("system_key") for row in existing if row.get("system_key")}
        missing = [
            {"profile_id": profile_id, **category}
            for category in DEFAULT_CATEGORIES
            if category["system_key"] not in present
        ]
        if not missing:
            return 0
        inserted = await self.insert("categories", missing)
        return len(inserted)


# =============================================================================
# ROW HELPERS shared by the implementations
# =============================================================================

def check_table(table: str) -> tuple[str, ...]:
    """Return a table's columns, rejecting unknown tables."""
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise StorageError(f"Unknown table: {table}")


def check_columns(table: str, keys: Sequence[str]) -> None:
    columns = check_table(table)
    unknown = [key for key in keys if key not in columns]
    if unknown:
        raise StorageError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_cell(value: Any) -> Any:
    """Convert a value to what the backends store (JSON-compatible scalars)."""
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def cell_text(value: Any) -> str:
    """Comparable text form of a cell ('' for empty)."""
    if value is None:
        return ""
    return str(to_cell(value))


def row_matches(row: Mapping[str, Any], filters: Optional[Filters]) -> bool:
    if not filters:
        return True
    return all(cell_text(row.get(key)) == cell_text(value) for key, value in filters.items())


def sort_rows(rows: list[Row], order: Sequence[Order]) -> list[Row]:
    """Stable multi-column sort (first instruction has highest priority)."""
    result = list(rows)
    for instruction in reversed(order):
        result.sort(
            key=lambda row: cell_text(row.get(instruction.column)).casefold(),
            reverse=instruction.descending,
        )
    return result


def prepare_insert(table: str, row: Mapping[str, Any], now: str) -> Row:
    """Fill server-managed columns and blank out missing ones."""
    columns = check_table(table)
    check_columns(table, list(row.keys()))
    prepared = {column: to_cell(row.get(column)) for column in columns}
    if "id" in columns and not prepared.get("id"):
        prepared["id"] = str(uuid4())
    if "created_at" in columns and not prepared.get("created_at"):
        prepared["created_at"] = now
    if "updated_at" in columns:
        prepared["updated_at"] = now
    return prepared


def conflict_key(row: Mapping[str, Any], keys: Sequence[str]) -> tuple[str, ...]:
    return tuple(cell_text(row.get(key)) for key in keys)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PermissionDeniedError(StorageError):
    """The caller does not own the row it tried to touch."""
    pass
