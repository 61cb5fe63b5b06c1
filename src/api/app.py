"""
Main Application Entry Point.

This module builds the FastAPI application, configures middleware (CORS),
and includes all API routers. When a built single-page app is configured
it is served from the same origin, with unknown non-API paths falling
back to its index.html.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from src import __version__
from src.api.errors import APIError, setup_exception_handlers
from src.api.routes import build_record_router, health, reports
from src.audit import configure_logging
from src.config import ServerSettings, get_settings
from src.models.records import TABLES
from src.orchestrator import FinanceTracker, create_app_components


logger = structlog.get_logger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and storage on startup."""
    configure_logging(get_settings().app.log_level)

    if getattr(app.state, "tracker", None) is None:
        app.state.tracker = create_app_components()

    logger.info(
        "api_starting",
        version=__version__,
        storage=app.state.tracker.storage_backend,
    )

    yield

    logger.info("api_stopping")


def _mount_spa(app: FastAPI, static_dir: str) -> None:
    root = Path(static_dir).resolve()
    index = root / "index.html"

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_spa(full_path: str) -> FileResponse:
        if f"/{full_path}/".startswith(f"{API_PREFIX}/"):
            raise APIError(404, "Not found")

        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)
        if not index.is_file():
            raise APIError(404, "Not found")
        return FileResponse(index)

    logger.info("spa_mounted", static_dir=str(root))


def create_app(
    tracker: Optional[FinanceTracker] = None,
    server_settings: Optional[ServerSettings] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        tracker: Components to serve. Built from settings on startup when omitted.
        server_settings: CORS and static file settings. Read from the
                         environment when omitted.
    """
    server_settings = server_settings or get_settings().server

    app = FastAPI(
        title="Finance Tracker",
        description="Track transactions, subscriptions, savings, budgets and "
                    "investments per context, stored in Google Sheets.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.tracker = tracker

    origins = server_settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    # Registered before the record routers so /budgets/status is not read as a budget id
    app.include_router(reports.router, prefix=API_PREFIX, tags=["reports"])
    for kind, table in TABLES.items():
        app.include_router(
            build_record_router(table),
            prefix=f"{API_PREFIX}/{kind}",
            tags=[kind],
        )

    if server_settings.static_dir:
        _mount_spa(app, server_settings.static_dir)

    return app
