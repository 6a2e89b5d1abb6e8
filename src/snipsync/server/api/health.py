"""Health check API route."""

from __future__ import annotations

from fastapi import APIRouter, Request

from snipsync import __version__
from snipsync.server.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """Report server version and whether auto-sync is scheduled."""
    scheduler = getattr(request.app.state, "scheduler", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        scheduler_running=bool(scheduler is not None and scheduler.is_running),
    )
