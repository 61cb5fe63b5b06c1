"""
Tests for the Google Sheets storage row logic.

Runs against FakeWorksheet (see conftest) so row numbering, id
assignment and value formatting can be checked without the network.
"""

import asyncio
import time
from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.models.audit import AuditEventBuilder
from src.models.records import BUDGETS, INVESTMENTS, TRANSACTIONS, TransactionCreate
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStorage,
    NotFoundError,
    StorageError,
    next_record_id,
    record_to_row,
    row_to_record,
)


HEADER = TRANSACTIONS.columns


def seed(sheets_client, rows: list[list[str]]):
    sheet = sheets_client.get_worksheet("Transactions", HEADER)
    sheet.rows.extend(rows)
    return sheet


def expense(amount: str = "10.00", category: str = "Groceries", context_id: str = "1") -> TransactionCreate:
    return TransactionCreate(
        context_id=context_id,
        date=date(2024, 3, 10),
        category=category,
        type="Expense",
        amount=Decimal(amount),
    )


class TestRowConversion:
    """Tests for record ↔ row conversion."""

    def test_record_to_row_follows_columns(self):
        record = TRANSACTIONS.model(id="3", **expense("12.30").model_dump())
        row = record_to_row(record, TRANSACTIONS.columns)
        assert row == ["3", "1", "2024-03-10", "Groceries", "Expense", "12.30", "", ""]

    def test_none_becomes_empty_cell(self):
        record = INVESTMENTS.model(
            id="1",
            context_id="1",
            asset_name="BTC",
            type="Crypto",
            amount_invested="500",
            current_value="0",
            date_invested="2023-01-01",
        )
        row = record_to_row(record, INVESTMENTS.columns)
        assert row[INVESTMENTS.columns.index("current_value")] == "0"
        assert row[INVESTMENTS.columns.index("notes")] == ""

    def test_row_to_record_pads_short_rows(self):
        record = row_to_record(["5", "1", "2024-03-10", "Rent", "Expense", "900"], TRANSACTIONS)
        assert record.id == "5"
        assert record.amount == Decimal("900")
        assert record.account == ""

    def test_row_to_record_uses_defaults_for_empty_cells(self):
        record = row_to_record(["2", "1", "Food", "300", "2024-05", ""], BUDGETS)
        assert record.spent == Decimal("0")


class TestNextRecordId:
    """Tests for sequential id assignment."""

    def test_empty_table_starts_at_one(self):
        assert next_record_id([]) == "1"

    def test_one_past_largest(self):
        assert next_record_id(["1", "2", "7", "3"]) == "8"

    def test_ignores_non_numeric_ids(self):
        assert next_record_id(["abc", "2", ""]) == "3"


class TestGoogleSheetsRecordStorage:
    """Tests for GoogleSheetsRecordStorage."""

    @pytest.mark.asyncio
    async def test_create_appends_raw_row(self, sheets_client):
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        record = await storage.create_record(expense("19.99"))

        sheet = sheets_client.worksheets["Transactions"]
        assert record.id == "1"
        assert sheet.rows[1][0] == "1"
        assert sheet.rows[1][5] == "19.99"
        assert sheet.calls[-1] == ("append_row", "RAW", "A1")

    @pytest.mark.asyncio
    async def test_ids_survive_deletes(self, sheets_client):
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)
        for _ in range(3):
            await storage.create_record(expense())

        await storage.delete_record("2")
        record = await storage.create_record(expense())

        assert record.id == "4"

    @pytest.mark.asyncio
    async def test_list_filters_by_context(self, sheets_client):
        seed(sheets_client, [
            ["1", "1", "2024-03-01", "Rent", "Expense", "900", "", ""],
            ["2", "2", "2024-03-02", "Salary", "Income", "3000", "", ""],
            ["3", "1", "2024-03-03", "Salary", "Income", "2500", "", ""],
        ])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        records = await storage.list_records(context_id="1")

        assert [record.id for record in records] == ["1", "3"]
        assert len(await storage.list_records()) == 3

    @pytest.mark.asyncio
    async def test_list_skips_blank_and_malformed_rows(self, sheets_client):
        seed(sheets_client, [
            ["1", "1", "2024-03-01", "Rent", "Expense", "900", "", ""],
            ["", "", "", "", "", "", "", ""],
            ["2", "1", "not a date", "Rent", "Expense", "900", "", ""],
            ["3", "1", "2024-03-03", "Salary", "Income", "2500", "", ""],
        ])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        records = await storage.list_records()

        assert [record.id for record in records] == ["1", "3"]

    @pytest.mark.asyncio
    async def test_update_writes_physical_row(self, sheets_client):
        sheet = seed(sheets_client, [
            ["1", "1", "2024-03-01", "Rent", "Expense", "900", "", ""],
            ["", "", "", "", "", "", "", ""],
            ["5", "1", "2024-03-03", "Food", "Expense", "20", "", ""],
        ])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        updated = await storage.update_record("5", expense("25.00", category="Dining"))

        assert updated.id == "5"
        assert sheet.calls[-1] == ("update", "A4", "RAW")
        assert sheet.rows[3][3] == "Dining"
        assert sheet.rows[3][5] == "25.00"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, sheets_client):
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)
        with pytest.raises(NotFoundError, match="Transaction not found"):
            await storage.update_record("99", expense())

    @pytest.mark.asyncio
    async def test_delete_removes_physical_row(self, sheets_client):
        sheet = seed(sheets_client, [
            ["1", "1", "2024-03-01", "Rent", "Expense", "900", "", ""],
            ["2", "1", "2024-03-02", "Food", "Expense", "20", "", ""],
        ])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        deleted = await storage.delete_record("2")

        assert deleted.category == "Food"
        assert sheet.calls[-1] == ("delete_rows", 3)
        assert len(sheet.rows) == 2

    @pytest.mark.asyncio
    async def test_delete_malformed_row_returns_none(self, sheets_client):
        sheet = seed(sheets_client, [["1", "1", "garbage"]])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        assert await storage.delete_record("1") is None
        assert len(sheet.rows) == 1

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, sheets_client):
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)
        assert await storage.get_record("1") is None

    @pytest.mark.asyncio
    async def test_get_malformed_row_raises_storage_error(self, sheets_client):
        seed(sheets_client, [["1", "1", "garbage"]])
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)
        with pytest.raises(StorageError):
            await storage.get_record("1")

    @pytest.mark.asyncio
    async def test_api_failure_becomes_storage_error(self, sheets_client):
        sheet = seed(sheets_client, [])
        sheet.fail = True
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)

        with pytest.raises(StorageError, match="Failed to fetch transactions"):
            await storage.list_records()
        with pytest.raises(StorageError, match="Failed to create transaction"):
            await storage.create_record(expense())

    @pytest.mark.asyncio
    async def test_custom_sheet_name(self, sheets_client):
        storage = GoogleSheetsRecordStorage(BUDGETS, client=sheets_client, sheet_name="Budgets2024")
        await storage.list_records()
        assert "Budgets2024" in sheets_client.worksheets

    @pytest.mark.asyncio
    async def test_slow_reads_leave_event_loop_running(self, sheets_client):
        sheet = seed(sheets_client, [])
        sheet.delay = 0.3
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=sheets_client)
        ticks = []

        async def heartbeat():
            while True:
                ticks.append(time.monotonic())
                await asyncio.sleep(0.02)

        task = asyncio.create_task(heartbeat())
        started = time.monotonic()
        await asyncio.gather(storage.list_records(), storage.list_records())
        elapsed = time.monotonic() - started
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        # Both reads overlap and the loop keeps ticking meanwhile
        assert elapsed < 0.55
        assert max(gaps) < 0.2


class TestGoogleSheetsClient:
    """Tests for worksheet lookup and header handling."""

    def test_new_tab_gets_header(self, gspread_client, spreadsheet):
        sheet = gspread_client.get_worksheet("Budgets", BUDGETS.columns)

        assert spreadsheet.tabs["Budgets"] is sheet
        assert sheet.rows == [BUDGETS.columns]

    def test_existing_header_left_alone(self, gspread_client, spreadsheet):
        existing = spreadsheet.add_worksheet("Budgets", rows=1000, cols=6)
        existing.rows = [list(BUDGETS.columns), ["1", "1", "Food", "300", "2024-05", "0"]]

        sheet = gspread_client.get_worksheet("Budgets", BUDGETS.columns)

        assert sheet.calls == []
        assert len(sheet.rows) == 2

    @pytest.mark.asyncio
    async def test_existing_blank_tab_gets_header_before_first_record(self, gspread_client, spreadsheet):
        spreadsheet.add_worksheet("Transactions", rows=1000, cols=8)
        storage = GoogleSheetsRecordStorage(TRANSACTIONS, client=gspread_client)

        first = await storage.create_record(expense())
        second = await storage.create_record(expense())

        sheet = spreadsheet.tabs["Transactions"]
        assert sheet.rows[0] == HEADER
        assert [first.id, second.id] == ["1", "2"]
        assert [record.id for record in await storage.list_records()] == ["1", "2"]


class TestGoogleSheetsAuditStorage:
    """Tests for GoogleSheetsAuditStorage."""

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, sheets_client):
        storage = GoogleSheetsAuditStorage(sheets_client)

        first = AuditEventBuilder.record_created("budgets", "1", {"category": "Food"})
        second = AuditEventBuilder.record_deleted("budgets", "1", {"category": "Food"})
        second.timestamp = first.timestamp + timedelta(seconds=1)
        await storage.append_event(first)
        await storage.append_event(second)

        events = await storage.get_recent_events(limit=10)

        assert "AuditLog" in sheets_client.worksheets
        assert [event.event_id for event in events] == [second.event_id, first.event_id]
        assert events[1].details == {"category": "Food"}
