"""
Dashboard, Budget Status and Theme Endpoints.

Read-only views computed from several record kinds at once.
"""

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from src.api.deps import TrackerDep
from src.api.errors import storage_errors
from src.models.records import MONTH_PATTERN
from src.queries import BudgetStatus, DashboardSummary
from src.themes import Theme, generate_theme_css


router = APIRouter()


class ThemeResponse(BaseModel):
    context_id: str
    theme: Theme
    css: str


@router.get(
    "/dashboard",
    response_model=DashboardSummary,
    summary="Dashboard summary",
    description="Totals, charts data, savings progress and budget status for one context.",
    responses={404: {"description": "Context not found"}},
)
async def dashboard(
    tracker: TrackerDep,
    context_id: Optional[str] = Query(default=None),
    month: Optional[str] = Query(default=None, pattern=MONTH_PATTERN),
) -> DashboardSummary:
    with storage_errors("Failed to fetch dashboard data"):
        return await tracker.dashboard(context_id=context_id, month=month)


@router.get(
    "/budgets/status",
    response_model=list[BudgetStatus],
    summary="Budget progress",
    description="Spending against each budget of a month, the current month by default.",
)
async def budgets_status(
    tracker: TrackerDep,
    context_id: Optional[str] = Query(default=None),
    month: Optional[str] = Query(default=None, pattern=MONTH_PATTERN),
) -> list[BudgetStatus]:
    with storage_errors("Failed to fetch budgets"):
        return await tracker.budget_status(context_id=context_id, month=month)


@router.get(
    "/contexts/{context_id}/theme",
    response_model=ThemeResponse,
    summary="Context theme",
    responses={404: {"description": "Context not found"}},
)
async def context_theme(context_id: str, tracker: TrackerDep) -> ThemeResponse:
    with storage_errors("Failed to fetch context"):
        theme = await tracker.theme_for_context(context_id)
    return ThemeResponse(context_id=context_id, theme=theme, css=generate_theme_css(theme))
