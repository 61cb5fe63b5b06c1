"""API routers."""

from src.api.routes import health, reports
from src.api.routes.records import build_record_router

__all__ = ["build_record_router", "health", "reports"]
