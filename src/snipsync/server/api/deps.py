"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Request

from snipsync.server.service import SyncService


def get_service(request: Request) -> SyncService:
    """Get sync service from app state."""
    service: SyncService = request.app.state.service
    return service
