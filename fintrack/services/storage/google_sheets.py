"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets can serve as the remote store because:
1. Users can inspect their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each remote table is one worksheet whose first row holds the column
names from TABLE_COLUMNS. Every cell is written RAW as text and parsed
back by the ledger's normalization boundary.

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions (each call is one batch of sheet writes; the ledger
  manager handles sequencing and recovery)
- Limited query capabilities (we filter and sort in Python)
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from fintrack.config import GoogleSheetsSettings, get_settings
from fintrack.services.storage.interface import (
    PROFILE_CHILD_TABLES,
    UNIQUE_KEYS,
    ConnectionError,
    DuplicateError,
    Filters,
    Order,
    RemoteStore,
    Row,
    StorageError,
    cell_text,
    check_columns,
    check_table,
    conflict_key,
    prepare_insert,
    row_matches,
    sort_rows,
    to_cell,
    utc_timestamp,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
        self._sheet_names = self._settings.sheet_names()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a remote table."""
        columns = check_table(table)
        title = self._sheet_names[table]
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(list(columns))
        return sheet


class GoogleSheetsStore(RemoteStore):
    """
    Google Sheets implementation of the remote store.

    Rows are stored one per sheet row, in TABLE_COLUMNS order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_table(self, table: str) -> tuple[gspread.Worksheet, list[tuple[int, Row]]]:
        """Read a whole table as (sheet row number, row dict) pairs."""
        columns = check_table(table)
        sheet = self._client.get_table_sheet(table)
        values = sheet.get_all_values()
        header = values[0] if values else list(columns)

        rows = []
        # Sheet row 1 is the header
        for number, raw in enumerate(values[1:], start=2):
            if not raw or not any(raw):
                continue
            row = {column: "" for column in columns}
            for index, column in enumerate(header):
                if column in row and index < len(raw):
                    row[column] = raw[index]
            rows.append((number, row))
        return sheet, rows

    @staticmethod
    def _to_values(table: str, row: Mapping[str, Any]) -> list[str]:
        return [cell_text(row.get(column)) for column in check_table(table)]

    def _write_row(self, sheet: gspread.Worksheet, number: int, table: str, row: Row) -> None:
        sheet.update(
            range_name=f"A{number}",
            values=[self._to_values(table, row)],
            value_input_option="RAW",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order: Sequence[Order] = (),
    ) -> list[Row]:
        """Fetch matching rows from a worksheet."""
        if filters:
            check_columns(table, list(filters.keys()))
        try:
            _, rows = self._read_table(table)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {table}: {e}")

        matched = [row for _, row in rows if row_matches(row, filters)]
        return sort_rows(matched, order)

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
    ) -> list[Row]:
        """Append rows to a worksheet in one batch."""
        now = utc_timestamp()
        prepared = [prepare_insert(table, row, now) for row in rows]
        if not prepared:
            return []

        try:
            sheet, existing = self._read_table(table)
            keys = UNIQUE_KEYS[table]
            taken = {conflict_key(row, keys) for _, row in existing}
            for row in prepared:
                key = conflict_key(row, keys)
                if key in taken:
                    raise DuplicateError(f"Duplicate {table} row for {dict(zip(keys, key))}")
                taken.add(key)

            sheet.append_rows(
                [self._to_values(table, row) for row in prepared],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table}: {e}")

        return [{key: cell_text(value) for key, value in row.items()} for row in prepared]

    async def update(
        self,
        table: str,
        patch: Mapping[str, Any],
        filters: Filters,
    ) -> list[Row]:
        """Patch every matching row in place."""
        columns = check_table(table)
        check_columns(table, list(patch.keys()) + list(filters.keys()))
        now = utc_timestamp()

        try:
            sheet, rows = self._read_table(table)
            affected = []
            for number, row in rows:
                if not row_matches(row, filters):
                    continue
                row.update({key: cell_text(value) for key, value in patch.items()})
                if "updated_at" in columns:
                    row["updated_at"] = now
                self._write_row(sheet, number, table, row)
                affected.append(row)
            return affected
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        on_conflict: Sequence[str],
    ) -> Row:
        """Insert or update by conflict key (safe to retry)."""
        check_columns(table, list(on_conflict))
        filters = {key: to_cell(row.get(key)) for key in on_conflict}
        existing = await self.select(table, filters=filters)
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
        """Delete matching rows (bottom-up so row numbers stay valid)."""
        check_columns(table, list(filters.keys()))

        try:
            sheet, rows = self._read_table(table)
            doomed = [(number, row) for number, row in rows if row_matches(row, filters)]
            for number, _ in sorted(doomed, key=lambda item: item[0], reverse=True):
                sheet.delete_rows(number)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {table}: {e}")

        if table == "profiles":
            for _, profile in doomed:
                for child in PROFILE_CHILD_TABLES:
                    await self.delete(child, {"profile_id": profile["id"]})
        elif table == "categories":
            for _, category in doomed:
                await self.update(
                    "expenses",
                    {"category_id": None},
                    {"profile_id": category["profile_id"], "category_id": category["id"]},
                )

        return len(doomed)
