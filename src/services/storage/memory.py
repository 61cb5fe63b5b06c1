"""
In-Memory Storage

Used when Google Sheets is not configured (local development) and in
tests. Behaves like the Sheets backend: records keep insertion order,
ids are sequential strings, deleted ids are not reused until they are
the largest.
"""

from typing import Optional

from pydantic import BaseModel

from src.models.audit import AuditEvent
from src.models.records import RecordTable
from src.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    next_record_id,
)


class InMemoryRecordStorage(RecordStorageInterface):
    """List-backed record storage."""

    def __init__(self, table: RecordTable, records: Optional[list[BaseModel]] = None):
        super().__init__(table)
        self._records: list[BaseModel] = list(records or [])

    def _index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise NotFoundError(self.table.not_found_message())

    async def list_records(self, **filters: Optional[str]) -> list[BaseModel]:
        return [record for record in self._records if self._matches(record, filters)]

    async def get_record(self, record_id: str) -> Optional[BaseModel]:
        try:
            return self._records[self._index_of(record_id)]
        except NotFoundError:
            return None

    async def create_record(self, data: BaseModel) -> BaseModel:
        new_id = next_record_id([record.id for record in self._records])
        record = self.table.model(id=new_id, **data.model_dump())
        self._records.append(record)
        return record

    async def update_record(self, record_id: str, data: BaseModel) -> BaseModel:
        index = self._index_of(record_id)
        record = self.table.model(id=record_id, **data.model_dump())
        self._records[index] = record
        return record

    async def delete_record(self, record_id: str) -> Optional[BaseModel]:
        return self._records.pop(self._index_of(record_id))


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
