"""
Health Check Endpoint.

Used for monitoring and deployment verification.
"""

from fastapi import APIRouter

from src import __version__
from src.api.deps import TrackerDep
from src.config import validate_all_settings


router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object.",
)
async def health_check(tracker: TrackerDep) -> dict:
    """
    Report that the server is up, which storage it writes to and which
    settings groups are configured.
    """
    settings = {
        name: valid
        for name, valid in validate_all_settings().items()
        if not name.endswith("_error")
    }
    return {
        "status": "ok",
        "version": __version__,
        "storage": tracker.storage_backend,
        "settings": settings,
    }
