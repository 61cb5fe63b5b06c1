"""
Tracker Dependency.

Routes get the FinanceTracker from the application state. The app
factory may be handed one (tests); otherwise it is built on first use.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.orchestrator import FinanceTracker, create_app_components


def get_tracker(request: Request) -> FinanceTracker:
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        tracker = create_app_components()
        request.app.state.tracker = tracker
    return tracker


TrackerDep = Annotated[FinanceTracker, Depends(get_tracker)]
