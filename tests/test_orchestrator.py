"""
Tests for the orchestrator flows.

Runs on in-memory storage; the audit trail is read back from the
in-memory audit store to check what each flow recorded.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.records import TRANSACTIONS, TransactionCreate
from src.orchestrator import FinanceTracker, RecordService, create_app_components
from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    NotFoundError,
    StorageError,
)
from src.validation import RecordValidationError


async def audit_types(tracker: FinanceTracker) -> list[AuditEventType]:
    events = await tracker.audit_logger.get_recent_events(limit=100)
    return [event.event_type for event in reversed(events)]


class BrokenStorage(InMemoryRecordStorage):
    async def create_record(self, data):
        raise StorageError("Failed to create transaction: quota exceeded")


class TestRecordService:
    """Tests for RecordService write flows."""

    @pytest.mark.asyncio
    async def test_create_from_dict(self, tracker, home_context, make_transaction):
        service = tracker.service("transactions")

        record, result = await service.create(make_transaction(home_context.id))

        assert record.id == "1"
        assert record.amount == Decimal("42.50")
        assert not result.has_errors
        assert (await service.get("1")) == record

    @pytest.mark.asyncio
    async def test_create_from_model(self, tracker, home_context, make_transaction):
        model = TransactionCreate(**make_transaction(home_context.id))
        record, _ = await tracker.service("transactions").create(model)
        assert record.category == "Groceries"

    @pytest.mark.asyncio
    async def test_schema_errors_raise_before_storage(self, tracker, home_context):
        service = tracker.service("transactions")
        with pytest.raises(ValidationError):
            await service.create({"context_id": home_context.id})
        assert await service.list() == []

    @pytest.mark.asyncio
    async def test_unknown_context_blocks_write(self, tracker, home_context, make_transaction):
        service = tracker.service("transactions")

        with pytest.raises(RecordValidationError):
            await service.create(make_transaction("99"))

        assert await service.list() == []
        assert AuditEventType.VALIDATION_FAILED in await audit_types(tracker)

    @pytest.mark.asyncio
    async def test_warnings_do_not_block(self, tracker, home_context, make_transaction):
        record, result = await tracker.service("transactions").create(
            make_transaction(home_context.id, amount=Decimal("2000000"))
        )
        assert record.id == "1"
        assert len(result.warnings) == 1
        assert await audit_types(tracker) == [
            AuditEventType.RECORD_CREATED,  # the context
            AuditEventType.VALIDATION_WARNING,
            AuditEventType.RECORD_CREATED,
        ]

    @pytest.mark.asyncio
    async def test_update_replaces_record(self, tracker, home_context, make_transaction):
        service = tracker.service("transactions")
        created, _ = await service.create(make_transaction(home_context.id))

        updated, _ = await service.update(
            created.id,
            make_transaction(home_context.id, category="Dining", amount=Decimal("60")),
        )

        assert updated.id == created.id
        assert (await service.get(created.id)).category == "Dining"
        events = await tracker.audit_logger.get_recent_events()
        assert events[0].event_type == AuditEventType.RECORD_UPDATED
        assert set(events[0].details["changed"]) == {"category", "amount"}

    @pytest.mark.asyncio
    async def test_update_accepts_stored_record(self, tracker, home_context, make_transaction):
        service = tracker.service("transactions")
        created, _ = await service.create(make_transaction(home_context.id))

        updated, _ = await service.update(created.id, created.model_copy(update={"notes": "split"}))

        assert updated.notes == "split"

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, tracker, home_context, make_transaction):
        with pytest.raises(NotFoundError, match="Transaction not found"):
            await tracker.service("transactions").update("5", make_transaction(home_context.id))

    @pytest.mark.asyncio
    async def test_delete(self, tracker, home_context, make_transaction):
        service = tracker.service("transactions")
        created, _ = await service.create(make_transaction(home_context.id))

        deleted = await service.delete(created.id)

        assert deleted == created
        with pytest.raises(NotFoundError):
            await service.get(created.id)
        events = await tracker.audit_logger.get_recent_events()
        assert events[0].event_type == AuditEventType.RECORD_DELETED
        assert events[0].details["category"] == "Groceries"

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, tracker):
        with pytest.raises(NotFoundError):
            await tracker.service("budgets").delete("1")

    @pytest.mark.asyncio
    async def test_storage_error_is_audited_and_reraised(self, make_transaction):
        audit_storage = InMemoryAuditStorage()
        service = RecordService(
            TRANSACTIONS,
            BrokenStorage(TRANSACTIONS),
            audit_logger=AuditLogger(audit_storage),
        )

        with pytest.raises(StorageError):
            await service.create(make_transaction())

        assert audit_storage.events[-1].event_type == AuditEventType.STORAGE_ERROR
        assert audit_storage.events[-1].details == {"operation": "create"}


class TestFinanceTracker:
    """Tests for the cross-kind flows."""

    @pytest.mark.asyncio
    async def test_dashboard_scoped_to_context(self, tracker, home_context, make_transaction):
        other, _ = await tracker.contexts.create({"name": "Office", "type": "Work"})
        await tracker.service("transactions").create(make_transaction(home_context.id))
        await tracker.service("transactions").create(
            make_transaction(other.id, type="Income", amount=Decimal("999"))
        )

        summary = await tracker.dashboard(context_id=home_context.id, month="2024-03")

        assert summary.context == home_context
        assert summary.totals.total_expenses == Decimal("42.50")
        assert summary.totals.total_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_dashboard_unknown_context(self, tracker):
        with pytest.raises(NotFoundError, match="Context not found"):
            await tracker.dashboard(context_id="77")

    @pytest.mark.asyncio
    async def test_budget_status(self, tracker, home_context, make_transaction):
        await tracker.service("budgets").create({
            "context_id": home_context.id,
            "category": "Groceries",
            "monthly_limit": "50",
            "month": "2024-03",
        })
        await tracker.service("transactions").create(make_transaction(home_context.id))

        rows = await tracker.budget_status(context_id=home_context.id, month="2024-03")

        assert len(rows) == 1
        assert rows[0].spent == Decimal("42.50")
        assert rows[0].level == "warning"

    @pytest.mark.asyncio
    async def test_theme_for_context(self, tracker):
        business, _ = await tracker.contexts.create({"name": "Shop", "type": "Business"})
        custom, _ = await tracker.contexts.create({"name": "Club", "type": "Hobby"})

        assert (await tracker.theme_for_context(business.id)).name == "Business"
        assert (await tracker.theme_for_context(custom.id)).name == "Home"

    @pytest.mark.asyncio
    async def test_deleting_context_keeps_records(self, tracker, home_context, make_transaction):
        await tracker.service("transactions").create(make_transaction(home_context.id))

        await tracker.contexts.delete(home_context.id)

        assert len(await tracker.service("transactions").list(context_id=home_context.id)) == 1

    def test_unknown_kind(self, tracker):
        with pytest.raises(KeyError):
            tracker.service("bills")


class TestCreateAppComponents:
    def test_without_storage_uses_memory(self):
        tracker = create_app_components(use_storage=False)
        assert tracker.storage_backend == "memory"
        assert tracker.sheets_client is None

    def test_unconfigured_sheets_falls_back_to_memory(self, monkeypatch):
        def unconfigured():
            raise ValueError("spreadsheet_id missing")

        monkeypatch.setattr("src.orchestrator.GoogleSheetsClient", unconfigured)
        tracker = create_app_components(use_storage=True)
        assert tracker.storage_backend == "memory"

    def test_sheets_storage_uses_configured_sheet_names(self, monkeypatch, sheets_client):
        monkeypatch.setattr("src.orchestrator.GoogleSheetsClient", lambda: sheets_client)
        tracker = create_app_components(use_storage=True)
        assert tracker.storage_backend == "google_sheets"
        assert tracker.service("savings")._storage._sheet_name == "Savings"
