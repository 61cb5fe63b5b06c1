"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and local development
3. Keep the API layer decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Every record kind is a flat table with a string id in the first column,
so one interface serves all of them.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from src.models.audit import AuditEvent
from src.models.records import RecordTable


class RecordStorageInterface(ABC):
    """
    Abstract interface for one table of records.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    def __init__(self, table: RecordTable):
        self.table = table

    @abstractmethod
    async def list_records(self, **filters: Optional[str]) -> list[BaseModel]:
        """
        List records in storage order.

        Args:
            filters: Field equality filters (e.g. context_id="1").
                     None values are ignored.

        Returns:
            List of matching records
        """
        pass

    @abstractmethod
    async def get_record(self, record_id: str) -> Optional[BaseModel]:
        """
        Retrieve a record by its ID.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_record(self, data: BaseModel) -> BaseModel:
        """
        Store a new record and assign it an id.

        Args:
            data: A validated *Create model

        Returns:
            The stored record, including its new id

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_record(self, record_id: str, data: BaseModel) -> BaseModel:
        """
        Replace every field of an existing record.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_record(self, record_id: str) -> Optional[BaseModel]:
        """
        Delete a record by ID.

        Returns:
            The record as it was before deletion, or None if its
            row could not be parsed

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If delete fails
        """
        pass

    def _matches(self, record: BaseModel, filters: dict[str, Optional[str]]) -> bool:
        for name, expected in filters.items():
            if expected is None or name not in self.table.filters:
                continue
            value = getattr(record, name)
            if hasattr(value, "value"):
                value = value.value
            if str(value) != expected:
                return False
        return True


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def next_record_id(existing_ids: list[str]) -> str:
    """
    Next id for a table: one past the largest numeric id.

    Non-numeric ids (hand-edited rows) are ignored.
    """
    numeric = [int(value) for value in existing_ids if value.strip().isdigit()]
    return str(max(numeric, default=0) + 1)
