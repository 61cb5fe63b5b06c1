"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for every record kind:
1. Write (input → schema check → semantic check → save → audit)
2. Read (list / get, filtered by context)
3. Dashboard (fetch a context's records → aggregate)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No record is written without passing validation
- Validation errors block the write, warnings never do
- Every write and every failed write is audited

Both the HTTP API and the Streamlit UI go through these flows, so
the two front ends cannot drift apart.
"""

import asyncio
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.models.records import (
    BUDGETS,
    CONTEXTS,
    INVESTMENTS,
    SAVINGS,
    SUBSCRIPTIONS,
    TABLES,
    TRANSACTIONS,
    RecordTable,
)
from src.models.validation import ValidationResult
from src.queries import BudgetStatus, DashboardSummary, budget_status, build_dashboard, current_month
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
)
from src.themes import Theme, get_theme
from src.validation import RecordValidationError, RecordValidator


logger = structlog.get_logger(__name__)

RecordInput = Union[dict, BaseModel]


class RecordService:
    """
    Orchestrates reads and writes for one record kind.

    Flow for writes:
    1. Schema check → build the *Create model (pydantic ValidationError)
    2. Semantic check → RecordValidator (RecordValidationError on errors)
    3. Save → storage
    4. Audit → created / updated / deleted event

    Storage failures are audited and re-raised unchanged.
    """

    def __init__(
        self,
        table: RecordTable,
        storage: RecordStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.table = table
        self._storage = storage
        self._validator = validator
        self._audit_logger = audit_logger

    def _to_create_model(self, data: RecordInput) -> BaseModel:
        if isinstance(data, self.table.create_model) and not hasattr(data, "id"):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude={"id"})
        return self.table.create_model.model_validate(data)

    async def _validate(
        self,
        model: BaseModel,
        record_id: Optional[str],
        correlation_id: UUID,
    ) -> ValidationResult:
        if self._validator is None:
            return ValidationResult()

        result = await self._validator.validate(self.table, model, record_id)

        if self._audit_logger:
            if result.has_errors:
                await self._audit_logger.log_validation_failed(
                    kind=self.table.kind,
                    issues=[issue.model_dump() for issue in result.issues],
                    record_id=record_id,
                    correlation_id=correlation_id,
                )
            elif result.warnings:
                await self._audit_logger.log_validation_warnings(
                    kind=self.table.kind,
                    warnings=result.warnings,
                    record_id=record_id,
                    correlation_id=correlation_id,
                )

        if result.has_errors:
            raise RecordValidationError(self.table, result)
        return result

    async def _storage_failed(self, operation: str, error: StorageError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                kind=self.table.kind,
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def list(self, **filters: Optional[str]) -> list[BaseModel]:
        """Records of this kind in sheet order, filtered by equality."""
        return await self._storage.list_records(**filters)

    async def get(self, record_id: str) -> BaseModel:
        """
        One record by id.

        Raises:
            NotFoundError: If no record has this id
        """
        record = await self._storage.get_record(record_id)
        if record is None:
            raise NotFoundError(self.table.not_found_message())
        return record

    async def create(
        self,
        data: RecordInput,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[BaseModel, ValidationResult]:
        """
        Validate and save a new record.

        Returns:
            (stored record with its new id, validation result with warnings)
        """
        correlation_id = correlation_id or create_correlation_id()
        model = self._to_create_model(data)
        result = await self._validate(model, None, correlation_id)

        try:
            record = await self._storage.create_record(model)
        except StorageError as e:
            await self._storage_failed("create", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_created(
                kind=self.table.kind,
                record_id=record.id,
                data=record.model_dump(mode="json"),
                correlation_id=correlation_id,
            )

        return record, result

    async def update(
        self,
        record_id: str,
        data: RecordInput,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[BaseModel, ValidationResult]:
        """
        Replace every field of an existing record.

        Raises:
            NotFoundError: If no record has this id
        """
        correlation_id = correlation_id or create_correlation_id()
        model = self._to_create_model(data)
        before = await self.get(record_id)
        result = await self._validate(model, record_id, correlation_id)

        try:
            record = await self._storage.update_record(record_id, model)
        except NotFoundError:
            raise
        except StorageError as e:
            await self._storage_failed("update", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                kind=self.table.kind,
                record_id=record_id,
                before=before.model_dump(mode="json"),
                after=record.model_dump(mode="json"),
                correlation_id=correlation_id,
            )

        return record, result

    async def delete(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[BaseModel]:
        """
        Delete a record.

        Returns:
            The deleted record, None when its row was unreadable

        Raises:
            NotFoundError: If no record has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            record = await self._storage.delete_record(record_id)
        except NotFoundError:
            raise
        except StorageError as e:
            await self._storage_failed("delete", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_deleted(
                kind=self.table.kind,
                record_id=record_id,
                data=record.model_dump(mode="json") if record else {},
                correlation_id=correlation_id,
            )

        return record


class FinanceTracker:
    """
    One RecordService per kind plus the read-only cross-kind flows.

    Deleting a context leaves its records in place; they simply stop
    showing up because every screen filters by the selected context.
    """

    def __init__(
        self,
        services: dict[str, RecordService],
        audit_logger: AuditLogger,
        sheets_client: Optional[GoogleSheetsClient] = None,
    ):
        self._services = services
        self.audit_logger = audit_logger
        self.sheets_client = sheets_client

    @property
    def storage_backend(self) -> str:
        return "google_sheets" if self.sheets_client else "memory"

    def service(self, kind: str) -> RecordService:
        """
        Service for a record kind ('transactions', 'budgets', ...).

        Raises:
            KeyError: For an unknown kind
        """
        return self._services[kind]

    @property
    def contexts(self) -> RecordService:
        return self._services[CONTEXTS.kind]

    async def dashboard(
        self,
        context_id: Optional[str] = None,
        month: Optional[str] = None,
    ) -> DashboardSummary:
        """
        Aggregate a context's records for the dashboard.

        Without a context_id every record is included.

        Raises:
            NotFoundError: If context_id names no context
        """
        context = await self.contexts.get(context_id) if context_id else None

        transactions, subscriptions, savings, budgets, investments = await asyncio.gather(
            self.service(TRANSACTIONS.kind).list(context_id=context_id),
            self.service(SUBSCRIPTIONS.kind).list(context_id=context_id),
            self.service(SAVINGS.kind).list(context_id=context_id),
            self.service(BUDGETS.kind).list(context_id=context_id),
            self.service(INVESTMENTS.kind).list(context_id=context_id),
        )

        return build_dashboard(
            transactions=transactions,
            subscriptions=subscriptions,
            savings=savings,
            budgets=budgets,
            investments=investments,
            context=context,
            month=month,
        )

    async def budget_status(
        self,
        context_id: Optional[str] = None,
        month: Optional[str] = None,
    ) -> list[BudgetStatus]:
        """Spending against each of a month's budgets (current month by default)."""
        month = month or current_month()
        budgets, transactions = await asyncio.gather(
            self.service(BUDGETS.kind).list(context_id=context_id, month=month),
            self.service(TRANSACTIONS.kind).list(context_id=context_id),
        )
        return budget_status(budgets, transactions, month)

    async def theme_for_context(self, context_id: str) -> Theme:
        """
        Raises:
            NotFoundError: If no context has this id
        """
        context = await self.contexts.get(context_id)
        return get_theme(context.type)


def _build_tracker(
    storages: dict[str, RecordStorageInterface],
    audit_logger: AuditLogger,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> FinanceTracker:
    validator = RecordValidator(
        context_storage=storages[CONTEXTS.kind],
        budget_storage=storages[BUDGETS.kind],
        settings=get_settings().app,
    )
    services = {
        kind: RecordService(
            table=TABLES[kind],
            storage=storage,
            validator=validator,
            audit_logger=audit_logger,
        )
        for kind, storage in storages.items()
    }
    return FinanceTracker(services, audit_logger, sheets_client)


def create_memory_components() -> FinanceTracker:
    """All components on in-memory storage (local development and tests)."""
    storages = {kind: InMemoryRecordStorage(table) for kind, table in TABLES.items()}
    return _build_tracker(storages, AuditLogger(InMemoryAuditStorage()))


def create_app_components(
    use_storage: bool = True,
) -> FinanceTracker:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        FinanceTracker wired to Google Sheets, or to in-memory storage
        when Sheets is not configured.
    """
    if not use_storage:
        return create_memory_components()

    try:
        sheets_client = GoogleSheetsClient()
        sheets_settings = sheets_client.settings
        storages = {
            kind: GoogleSheetsRecordStorage(
                table,
                client=sheets_client,
                sheet_name=sheets_settings.sheet_name_for(kind),
            )
            for kind, table in TABLES.items()
        }
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    except Exception as e:
        # Storage not configured - continue in memory
        logger.warning("storage_not_configured", error=str(e), fallback="memory")
        return create_memory_components()

    return _build_tracker(storages, audit_logger, sheets_client)
