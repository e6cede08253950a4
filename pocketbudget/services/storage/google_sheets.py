"""
Google Sheets Tree Store

DESIGN DECISION: Google Sheets can back the ledger tree because:
1. Non-technical users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

LAYOUT: One worksheet, one row per scalar leaf of the tree:
    path | value_json | updated_at
e.g. users/u1/transactions/-Nx.../amount | "75.50" | 2025-01-02T...

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No push notifications, so subscriptions poll the sheet
- Every write rewrites the sheet in a single update call, which is
  what gives multi_path_update its all-or-nothing behaviour
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocketbudget.config import get_settings
from pocketbudget.services.storage.interface import (
    ConnectionError,
    StorageError,
)
from pocketbudget.services.storage.memory import (
    MemoryTreeStore,
    flatten_tree,
    unflatten_tree,
)


logger = structlog.get_logger(__name__)

# Column mappings for the Ledger sheet
LEDGER_COLUMNS = [
    "path",
    "value_json",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def poll_interval_seconds(self) -> float:
        return self._settings.poll_interval_seconds

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

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the Ledger worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.ledger_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.ledger_sheet_name,
                rows=1000,
                cols=len(LEDGER_COLUMNS),
            )
            sheet.append_row(LEDGER_COLUMNS)
        return sheet


class GoogleSheetsTreeStore(MemoryTreeStore):
    """
    Google Sheets implementation of the tree store.

    The local tree is a cache of the sheet: it is reloaded before every
    read and write, and written back after every write.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        super().__init__()
        self._client = client or GoogleSheetsClient()
        self._poll_interval = poll_interval_seconds
        self._row_count = 0
        self._stamps: dict[str, tuple[str, str]] = {}
        self._poll_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _rows_to_flat(self, rows: list[list[str]]) -> dict:
        """Parse sheet rows (header excluded) into {path: scalar}."""
        flat = {}
        stamps = {}
        for row in rows:
            if not row or not row[0]:
                continue  # Skip empty rows
            value_json = row[1] if len(row) > 1 else ""
            try:
                flat[row[0]] = json.loads(value_json)
            except json.JSONDecodeError:
                logger.warning("ledger_row_malformed", path=row[0])
                continue
            stamps[row[0]] = (value_json, row[2] if len(row) > 2 else "")
        self._stamps = stamps
        return flat

    def _flat_to_rows(self, flat: dict) -> list[list[str]]:
        """Serialize {path: scalar} to sheet rows, keeping unchanged stamps."""
        now = datetime.now(timezone.utc).isoformat()
        rows = []
        stamps = {}
        for path in sorted(flat):
            value_json = json.dumps(flat[path])
            previous = self._stamps.get(path)
            stamp = previous[1] if previous and previous[0] == value_json else now
            stamps[path] = (value_json, stamp)
            rows.append([path, value_json, stamp])
        self._stamps = stamps
        return rows

    # ------------------------------------------------------------------
    # Sheet I/O
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self) -> list[list[str]]:
        try:
            sheet = self._client.get_ledger_sheet()
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to read ledger sheet: {e}")
        self._row_count = len(all_rows)
        return all_rows[1:]  # Skip header

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_rows(self, rows: list[list[str]]) -> None:
        values = [LEDGER_COLUMNS] + rows
        # Blank out rows left over from a longer previous version
        blanks = max(self._row_count - len(values), 0)
        values += [["", "", ""] for _ in range(blanks)]
        try:
            sheet = self._client.get_ledger_sheet()
            sheet.update(values=values, range_name="A1", raw=True)
        except Exception as e:
            raise StorageError(f"Failed to write ledger sheet: {e}")
        self._row_count = len(rows) + 1

    # ------------------------------------------------------------------
    # MemoryTreeStore hooks
    # ------------------------------------------------------------------

    # gspread and the retry waits block, so they run in a worker thread
    async def _refresh(self) -> None:
        rows = await asyncio.to_thread(self._read_rows)
        self._tree = unflatten_tree(self._rows_to_flat(rows))

    async def _commit(self, tree: dict) -> None:
        rows = self._flat_to_rows(flatten_tree(tree))
        await asyncio.to_thread(self._write_rows, rows)
        self._tree = tree

    # ------------------------------------------------------------------
    # Polling subscriptions
    # ------------------------------------------------------------------

    async def poll_once(self) -> None:
        """Reload the sheet and notify subscribers whose node changed."""
        await self._load()
        await self._notify()

    async def _poll_forever(self, interval: float) -> None:
        while True:
            try:
                await self.poll_once()
            except StorageError as e:
                logger.error("ledger_poll_failed", error=str(e))
                await self._broadcast_error(e)
            await asyncio.sleep(interval)

    def start_polling(self) -> None:
        """Start re-reading the sheet in the background."""
        if self._poll_task is not None and not self._poll_task.done():
            return
        interval = self._poll_interval or self._client.poll_interval_seconds
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll_forever(interval)
        )

    async def stop_polling(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        try:
            await self._poll_task
        except asyncio.CancelledError:
            pass
        self._poll_task = None
