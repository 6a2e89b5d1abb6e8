"""FastAPI application for the snipsync server.

This module creates and configures the FastAPI application with:
- REST API for gist sync administration
- Background scheduler for automatic sync

Usage:
    uvicorn snipsync.server.app:app_factory --factory --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from snipsync import __version__
from snipsync.core.config import GITHUB_API_URL
from snipsync.server.api.router import router as api_router
from snipsync.server.database import Database
from snipsync.server.scheduler import GistSyncScheduler
from snipsync.server.service import SyncService

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("SNIPSYNC_DB_PATH", "snipsync.db"))
LOG_PATH = Path(os.environ.get("SNIPSYNC_LOG_PATH", "snipsync-server.log"))
SECRET_KEY = os.environ.get("SNIPSYNC_SECRET_KEY", "")
GITHUB_API = os.environ.get("SNIPSYNC_GITHUB_API_URL", GITHUB_API_URL)

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for snipsync
    root_logger = logging.getLogger("snipsync")
    root_logger.setLevel(logging.INFO)
    if root_logger.handlers:
        return  # Already configured

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(
    db: Database,
    service: SyncService | None = None,
    scheduler: GistSyncScheduler | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Create FastAPI application with a custom database.

    This is primarily used for testing with isolated databases.

    Args:
        db: Database instance.
        service: Sync service (built from db and environment if omitted).
        scheduler: Background scheduler (built from the service if omitted).
        start_scheduler: Run the scheduler for the lifetime of the app.

    Returns:
        Configured FastAPI application.
    """
    if service is None:
        service = SyncService(db, SECRET_KEY, api_url=GITHUB_API)
    if scheduler is None:
        scheduler = GistSyncScheduler(service)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("=" * 60)
        logger.info("snipsync server starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        logger.info("  Logs:     %s", LOG_PATH.absolute())
        logger.info("  Auto-sync scheduler: %s", "on" if start_scheduler else "off")
        logger.info("=" * 60)
        if not SECRET_KEY:
            logger.warning("SNIPSYNC_SECRET_KEY is not set; a GitHub token cannot be stored")
        if start_scheduler:
            scheduler.start()

        yield

        # Shutdown
        logger.info("snipsync server shutting down")
        scheduler.stop()

    application = FastAPI(
        title="snipsync",
        description="Gist synchronization for a personal snippet manager",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.state.service = service
    application.state.scheduler = scheduler

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(LOG_PATH)
    return create_app(db=Database(DB_PATH))
