"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from snipsync.server.api import gist_sync, health

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(gist_sync.router)
