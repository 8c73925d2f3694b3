"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is kept as an optional backend because:
1. The user can look at (and fix) their balance directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

The sheet is a plain two-column table:

    key                          | value      | updated_at
    enough_balance               | 35.50      | 2025-01-05T08:00:00+00:00
    enough_daily_allowance       | 10         | ...
    enough_last_allowance_date   | 2025-01-05 | ...

TRADEOFFS:
- No transactions: multi_set updates cells one by one
- Every read fetches the whole sheet (three rows, so we're fine)
"""

from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from enough.config import GoogleSheetsSettings, get_settings
from enough.services.storage.interface import (
    ConnectionError,
    KeyValueStorageInterface,
    StorageError,
)


# Column layout for the key/value sheet
KV_COLUMNS = [
    "key",
    "value",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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

    def get_balance_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.balance_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.balance_sheet_name,
                rows=20,
                cols=len(KV_COLUMNS),
            )
            sheet.append_row(KV_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStorage(KeyValueStorageInterface):
    """
    Google Sheets implementation of key/value storage.

    One key per row. Rows are located by scanning column A.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_rows(self) -> list[list[str]]:
        """All data rows (header excluded)."""
        sheet = self._client.get_balance_sheet()
        return sheet.get_all_values()[1:]

    @staticmethod
    def _index_rows(rows: list[list[str]]) -> dict[str, tuple[int, str]]:
        """Map key -> (sheet row number, value). Row 1 is the header."""
        index = {}
        for row_number, row in enumerate(rows, start=2):
            if not row or not row[0]:
                continue  # Skip empty rows
            value = row[1] if len(row) > 1 else ""
            index[row[0]] = (row_number, value)
        return index

    async def get_item(self, key: str) -> Optional[str]:
        values = await self.multi_get([key])
        return values[key]

    async def multi_get(self, keys: Iterable[str]) -> dict[str, Optional[str]]:
        try:
            index = self._index_rows(self._read_rows())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read balance sheet: {e}")

        result = {}
        for key in keys:
            found = index.get(key)
            # An empty cell counts as absent, same as a missing row
            result[key] = found[1] if found and found[1] != "" else None
        return result

    async def set_item(self, key: str, value: str) -> None:
        await self.multi_set({key: value})

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def multi_set(self, items: Mapping[str, str]) -> None:
        """Update existing rows in place, append rows for new keys."""
        try:
            sheet = self._client.get_balance_sheet()
            index = self._index_rows(sheet.get_all_values()[1:])
            updated_at = datetime.now(timezone.utc).isoformat()

            for key, value in items.items():
                if key in index:
                    row_number, _ = index[key]
                    sheet.update_cell(row_number, 2, str(value))
                    sheet.update_cell(row_number, 3, updated_at)
                else:
                    sheet.append_row(
                        [key, str(value), updated_at],
                        value_input_option="RAW",
                    )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write balance sheet: {e}")

    async def remove_item(self, key: str) -> bool:
        try:
            sheet = self._client.get_balance_sheet()
            index = self._index_rows(sheet.get_all_values()[1:])
            if key not in index:
                return False
            row_number, _ = index[key]
            sheet.delete_rows(row_number)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {key}: {e}")
