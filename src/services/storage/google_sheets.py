"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. Users can view and fix their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: concurrent edits are last-write-wins
- Limited query capabilities (we filter in Python)

Every worksheet is a flat table. Row 1 holds the headers, records
start at row 2 and the first column is the record id. Updates and
deletes address a record by its physical row number, which is
recomputed from a fresh read on every call.
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AUDIT_COLUMNS, AuditEvent, AuditEventType, AuditSeverity
from src.models.records import RecordTable
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
    next_record_id,
)


logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# First data row; row 1 is the header.
FIRST_DATA_ROW = 2

# Only transient API failures are worth retrying.
sheets_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    def _credentials(self) -> Credentials:
        if self._settings.credentials_path:
            return Credentials.from_service_account_file(
                self._settings.credentials_path,
                scopes=SCOPES,
            )
        return Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": self._settings.client_email,
                "private_key": self._settings.private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            },
            scopes=SCOPES,
        )

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
                self._client = gspread.authorize(self._credentials())
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

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """
        Get or create a worksheet.

        The header row is written whenever row 1 is empty, so a tab that
        exists but was never used gets one before its first record.
        """
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            logger.info("worksheet_created", title=title)

        if not any(cell.strip() for cell in sheet.row_values(1)):
            sheet.update(range_name="A1", values=[columns], value_input_option="RAW")
            logger.info("worksheet_header_written", title=title, columns=columns)

        self._worksheets[title] = sheet
        return sheet


def record_to_row(record: BaseModel, columns: list[str]) -> list[str]:
    """Convert a record to a spreadsheet row in header order."""
    data = record.model_dump(mode="json")
    return ["" if data.get(column) is None else str(data[column]) for column in columns]


def row_to_record(row: list[str], table: RecordTable) -> BaseModel:
    """
    Convert a spreadsheet row to a record.

    Short rows are padded; empty cells fall back to the model default,
    so a missing required cell raises a ValidationError.
    """
    data = {}
    for index, column in enumerate(table.columns):
        value = row[index].strip() if index < len(row) else ""
        if value:
            data[column] = value
    return table.model.model_validate(data)


class GoogleSheetsRecordStorage(RecordStorageInterface):
    """
    Google Sheets implementation of record storage.

    One worksheet per record kind, one record per row.
    """

    def __init__(
        self,
        table: RecordTable,
        client: Optional[GoogleSheetsClient] = None,
        sheet_name: Optional[str] = None,
    ):
        super().__init__(table)
        self._client = client or GoogleSheetsClient()
        self._sheet_name = sheet_name or table.sheet_name

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name, self.table.columns)

    @sheets_retry
    def _read_all(self) -> list[list[str]]:
        return self._sheet().get_all_values()

    def _parse_rows(self, all_rows: list[list[str]]) -> list[BaseModel]:
        records = []
        for row_number, row in enumerate(all_rows[1:], start=FIRST_DATA_ROW):
            if not row or not any(cell.strip() for cell in row):
                continue
            try:
                records.append(row_to_record(row, self.table))
            except ValidationError as e:
                logger.warning(
                    "malformed_row_skipped",
                    sheet=self._sheet_name,
                    row=row_number,
                    errors=e.error_count(),
                )
        return records

    def _locate(self, all_rows: list[list[str]], record_id: str) -> tuple[int, list[str]]:
        """Physical sheet row number and cells of a record."""
        for row_number, row in enumerate(all_rows[1:], start=FIRST_DATA_ROW):
            if row and row[0].strip() == record_id:
                return row_number, row
        raise NotFoundError(self.table.not_found_message())

    # gspread blocks; Sheets calls and their retries run in a worker thread.

    async def list_records(self, **filters: Optional[str]) -> list[BaseModel]:
        try:
            all_rows = await asyncio.to_thread(self._read_all)
            records = self._parse_rows(all_rows)
        except Exception as e:
            raise StorageError(f"Failed to fetch {self.table.plural}: {e}")
        return [record for record in records if self._matches(record, filters)]

    async def get_record(self, record_id: str) -> Optional[BaseModel]:
        try:
            all_rows = await asyncio.to_thread(self._read_all)
        except Exception as e:
            raise StorageError(f"Failed to fetch {self.table.label.lower()}: {e}")

        try:
            _, row = self._locate(all_rows, record_id)
        except NotFoundError:
            return None

        try:
            return row_to_record(row, self.table)
        except ValidationError as e:
            raise StorageError(
                f"Row for {self.table.label.lower()} {record_id} is malformed: {e}"
            )

    async def create_record(self, data: BaseModel) -> BaseModel:
        try:
            return await asyncio.to_thread(self._create, data)
        except Exception as e:
            raise StorageError(f"Failed to create {self.table.label.lower()}: {e}")

    async def update_record(self, record_id: str, data: BaseModel) -> BaseModel:
        try:
            return await asyncio.to_thread(self._update, record_id, data)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self.table.label.lower()}: {e}")

    async def delete_record(self, record_id: str) -> Optional[BaseModel]:
        try:
            row = await asyncio.to_thread(self._delete, record_id)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {self.table.label.lower()}: {e}")

        # Malformed rows can still be deleted; there is just nothing to return.
        try:
            return row_to_record(row, self.table)
        except ValidationError:
            return None

    def _create(self, data: BaseModel) -> BaseModel:
        all_rows = self._read_all()
        existing_ids = [row[0] for row in all_rows[1:] if row]
        record = self.table.model(id=next_record_id(existing_ids), **data.model_dump())
        self._append(record_to_row(record, self.table.columns))
        return record

    def _update(self, record_id: str, data: BaseModel) -> BaseModel:
        row_number, _ = self._locate(self._read_all(), record_id)
        record = self.table.model(id=record_id, **data.model_dump())
        self._write_row(row_number, record_to_row(record, self.table.columns))
        return record

    def _delete(self, record_id: str) -> list[str]:
        row_number, row = self._locate(self._read_all(), record_id)
        self._delete_row(row_number)
        return row

    @sheets_retry
    def _append(self, row: list[str]) -> None:
        self._sheet().append_row(row, value_input_option="RAW", table_range="A1")

    @sheets_retry
    def _write_row(self, row_number: int, row: list[str]) -> None:
        self._sheet().update(
            range_name=f"A{row_number}",
            values=[row],
            value_input_option="RAW",
        )

    @sheets_retry
    def _delete_row(self, row_number: int) -> None:
        self._sheet().delete_rows(row_number)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        sheet_name: Optional[str] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._sheet_name = sheet_name or self._client.settings.audit_sheet_name

    def _sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._client.get_worksheet(self._sheet_name, AUDIT_COLUMNS, rows=5000)

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        await asyncio.to_thread(self._append, event.to_sheets_row())
        return True

    @sheets_retry
    def _append(self, row: list[str]) -> None:
        self._sheet().append_row(row, value_input_option="RAW", table_range="A1")

    @sheets_retry
    def _read_all(self) -> list[list[str]]:
        return self._sheet().get_all_values()

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = (await asyncio.to_thread(self._read_all))[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                logger.warning("malformed_audit_row_skipped", event_id=row[0])

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
