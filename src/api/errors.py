"""
Exception Handlers for the HTTP API.

Every error body carries an "error" key with a human-readable message:

- Schema errors (missing or malformed fields) → 400 with the field issues
  and the record kind's message ("Name and type are required", ...)
- Semantic validation errors → 400 with the validator's issues
- Unknown ids → 404 "<Label> not found"
- Storage failures → 500 "Failed to <verb> <what>"
- Anything else → 500 with an error id that is also in the log
"""

import traceback
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.models.records import TABLES, RecordTable
from src.services.storage import NotFoundError, StorageError
from src.validation import RecordValidationError


logger = structlog.get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Required fields missing"


class APIError(Exception):
    """An error with a fixed status code and public message."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


@contextmanager
def storage_errors(message: str) -> Iterator[None]:
    """
    Turn storage failures inside the block into a 500 with a fixed message.

    NotFoundError passes through so it still becomes a 404.
    """
    try:
        yield
    except NotFoundError:
        raise
    except StorageError as e:
        logger.error("storage_failed", message=message, error=str(e))
        raise APIError(500, message) from e


def _field_issues(errors: list[dict]) -> list[dict]:
    issues = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        issues.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        })
    return issues


def _table_for(request: Request) -> Optional[RecordTable]:
    """Record kind addressed by an /api/<kind>/... path."""
    path = request.url.path
    if not path.startswith("/api/"):
        return None
    return TABLES.get(path[len("/api/"):].split("/")[0])


def _schema_error_response(request: Request, errors: list[dict]) -> JSONResponse:
    table = _table_for(request)
    message = table.invalid_input_message(errors) if table else REQUIRED_FIELDS_MESSAGE
    return JSONResponse(
        status_code=400,
        content={"error": message, "issues": _field_issues(errors)},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _schema_error_response(request, list(exc.errors()))


async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _schema_error_response(request, exc.errors())


async def record_validation_handler(request: Request, exc: RecordValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": str(exc),
            "issues": [issue.model_dump() for issue in exc.result.issues],
        },
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(
        "storage_error",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"error": "Storage error"})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception with its request context.

    The error id in the response matches the log entry.
    """
    error_id = id(exc)

    logger.error(
        "unhandled_exception",
        error_id=error_id,
        method=request.method,
        path=request.url.path,
        query_params=dict(request.query_params),
        client=request.client.host if request.client else "unknown",
        error_type=type(exc).__name__,
        error=str(exc),
        traceback=traceback.format_exc(),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register every handler above with the application."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(RecordValidationError, record_validation_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("exception_handlers_registered")
