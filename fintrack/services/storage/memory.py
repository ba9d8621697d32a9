"""
In-Memory Remote Store

A process-local implementation of the RemoteStore contract. It behaves
like the hosted backend as far as the ledger can observe:
- identifiers and timestamps are assigned on insert
- (profile_id, month_key) is unique in monthly_stats
- deleting a profile cascades to its rows
- deleting a category sets category_id to NULL on its expenses

Used for tests and demo sessions. Rows are copied on the way in and on
the way out so callers can never mutate stored state by accident.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional

from fintrack.services.storage.interface import (
    PROFILE_CHILD_TABLES,
    TABLE_COLUMNS,
    UNIQUE_KEYS,
    DuplicateError,
    Filters,
    Order,
    RemoteStore,
    Row,
    check_columns,
    check_table,
    conflict_key,
    prepare_insert,
    row_matches,
    sort_rows,
    to_cell,
    utc_timestamp,
)


class InMemoryStore(RemoteStore):
    """RemoteStore backed by plain lists of dicts."""

    def __init__(self):
        self._tables: dict[str, list[Row]] = {table: [] for table in TABLE_COLUMNS}

    def rows(self, table: str) -> list[Row]:
        """Snapshot of a whole table (test and demo helper)."""
        check_table(table)
        return [dict(row) for row in self._tables[table]]

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order: Sequence[Order] = (),
    ) -> list[Row]:
        check_table(table)
        if filters:
            check_columns(table, list(filters.keys()))
        matched = [dict(row) for row in self._tables[table] if row_matches(row, filters)]
        return sort_rows(matched, order)

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
    ) -> list[Row]:
        now = utc_timestamp()
        prepared = [prepare_insert(table, row, now) for row in rows]

        # Validate the whole batch before storing any of it
        keys = UNIQUE_KEYS[table]
        taken = {conflict_key(row, keys) for row in self._tables[table]}
        for row in prepared:
            key = conflict_key(row, keys)
            if key in taken:
                raise DuplicateError(f"Duplicate {table} row for {dict(zip(keys, key))}")
            taken.add(key)

        self._tables[table].extend(prepared)
        return [dict(row) for row in prepared]

    async def update(
        self,
        table: str,
        patch: Mapping[str, Any],
        filters: Filters,
    ) -> list[Row]:
        columns = check_table(table)
        check_columns(table, list(patch.keys()) + list(filters.keys()))
        now = utc_timestamp()

        affected = []
        for row in self._tables[table]:
            if not row_matches(row, filters):
                continue
            row.update({key: to_cell(value) for key, value in patch.items()})
            if "updated_at" in columns:
                row["updated_at"] = now
            affected.append(dict(row))
        return affected

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        on_conflict: Sequence[str],
    ) -> Row:
        check_columns(table, list(on_conflict))
        filters = {key: row.get(key) for key in on_conflict}
        existing = [stored for stored in self._tables[table] if row_matches(stored, filters)]
        if existing:
            patch = {key: value for key, value in row.items() if key not in on_conflict}
            updated = await self.update(table, patch, filters)
            return updated[0]
        inserted = await self.insert(table, [row])
        return inserted[0]

    async def delete(
        self,
        table: str,
        filters: Filters,
    ) -> int:
        check_table(table)
        check_columns(table, list(filters.keys()))

        doomed = [row for row in self._tables[table] if row_matches(row, filters)]
        if not doomed:
            return 0
        self._tables[table] = [row for row in self._tables[table] if not row_matches(row, filters)]

        if table == "profiles":
            for profile in doomed:
                for child in PROFILE_CHILD_TABLES:
                    self._tables[child] = [
                        row for row in self._tables[child]
                        if row.get("profile_id") != profile["id"]
                    ]
        elif table == "categories":
            removed = {row["id"] for row in doomed}
            for expense in self._tables["expenses"]:
                if expense.get("category_id") in removed:
                    expense["category_id"] = None

        return len(doomed)
