"""
Record Endpoints.

The same five endpoints exist for every record kind, so the router is
built from the kind's RecordTable:

    GET    /api/<kind>          list, filtered by ?context_id= (budgets: also ?month=)
    GET    /api/<kind>/<id>     one record
    POST   /api/<kind>          create
    PUT    /api/<kind>/<id>     replace every field
    DELETE /api/<kind>/<id>     delete
"""

from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from src.api.deps import TrackerDep
from src.api.errors import storage_errors
from src.models.records import RecordTable


class DeleteResponse(BaseModel):
    message: str


def build_record_router(table: RecordTable) -> APIRouter:
    """CRUD router for one record kind."""
    router = APIRouter()
    label = table.label.lower()
    error_responses = {
        400: {"description": "Required fields missing or invalid"},
        404: {"description": table.not_found_message()},
        500: {"description": "Storage failure"},
    }

    @router.get(
        "",
        response_model=list[table.model],
        summary=f"List {table.plural}",
        responses={500: error_responses[500]},
    )
    async def list_records(
        tracker: TrackerDep,
        context_id: Optional[str] = Query(default=None, description="Only records of this context"),
        month: Optional[str] = Query(default=None, description="YYYY-MM, budgets only"),
    ):
        with storage_errors(f"Failed to fetch {table.plural}"):
            return await tracker.service(table.kind).list(context_id=context_id, month=month)

    @router.get(
        "/{record_id}",
        response_model=table.model,
        summary=f"Get a {label}",
        responses={404: error_responses[404], 500: error_responses[500]},
    )
    async def get_record(record_id: str, tracker: TrackerDep):
        with storage_errors(f"Failed to fetch {label}"):
            return await tracker.service(table.kind).get(record_id)

    @router.post(
        "",
        response_model=table.model,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create a {label}",
        responses={400: error_responses[400], 500: error_responses[500]},
    )
    async def create_record(payload: table.create_model, tracker: TrackerDep):
        with storage_errors(f"Failed to create {label}"):
            record, _ = await tracker.service(table.kind).create(payload)
        return record

    @router.put(
        "/{record_id}",
        response_model=table.model,
        summary=f"Update a {label}",
        responses=error_responses,
    )
    async def update_record(record_id: str, payload: table.create_model, tracker: TrackerDep):
        with storage_errors(f"Failed to update {label}"):
            record, _ = await tracker.service(table.kind).update(record_id, payload)
        return record

    @router.delete(
        "/{record_id}",
        response_model=DeleteResponse,
        summary=f"Delete a {label}",
        responses={404: error_responses[404], 500: error_responses[500]},
    )
    async def delete_record(record_id: str, tracker: TrackerDep):
        with storage_errors(f"Failed to delete {label}"):
            await tracker.service(table.kind).delete(record_id)
        return DeleteResponse(message=f"{table.label} deleted successfully")

    return router
