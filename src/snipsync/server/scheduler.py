"""Scheduler for automatic gist sync.

This module provides:
- A one-minute tick that runs a full sync pass when one is due
- is_sync_due() / run_auto_sync() for manual and test usage
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from snipsync.server.database import as_utc

if TYPE_CHECKING:
    from snipsync.core.types import SyncResult
    from snipsync.server.models import SyncConfig
    from snipsync.server.service import SyncService

logger = logging.getLogger(__name__)

# Must stay well below the minimum sync interval
TICK_SECONDS = 60


def is_sync_due(config: SyncConfig | None, now: datetime | None = None) -> bool:
    """Check whether an automatic pass should run.

    Args:
        config: Stored sync configuration.
        now: Current time (defaults to now).

    Returns:
        True if sync and auto-sync are enabled, a token is stored and the
        interval has elapsed since the last full pass.
    """
    if config is None or not config.enabled or not config.auto_sync_enabled:
        return False
    if not config.has_token:
        logger.debug("No GitHub token configured, skipping sync")
        return False

    last = as_utc(config.last_full_sync_at)
    if last is None:
        return True
    now = now or datetime.now(UTC)
    return now >= last + timedelta(minutes=config.sync_interval_minutes)


def run_auto_sync(service: SyncService, now: datetime | None = None) -> SyncResult | None:
    """Run a full sync pass if one is due.

    Args:
        service: Sync service.
        now: Current time (defaults to now).

    Returns:
        Result of the pass, or None if no pass was due.
    """
    if not is_sync_due(service.db.get_config(), now):
        return None

    logger.info("Starting automatic sync")
    result = service.sync_all()
    logger.info(
        "Automatic sync completed: %d total, %d synced, %d conflicts, %d errors (%.2fs)",
        result.total_processed,
        result.synced,
        result.conflicts,
        result.errors,
        result.duration,
    )
    return result


class GistSyncScheduler:
    """Background scheduler for automatic gist sync.

    Wakes every minute and runs a pass when the configured interval has
    elapsed. Only one tick runs at a time.
    """

    def __init__(self, service: SyncService, tick_seconds: float = TICK_SECONDS) -> None:
        """Initialize the scheduler.

        Args:
            service: Sync service used to run passes.
            tick_seconds: Seconds between due checks.
        """
        self._service = service
        self._tick_seconds = tick_seconds
        self._scheduler: BackgroundScheduler | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def _sync_job(self) -> None:
        """Job function for the periodic tick."""
        try:
            run_auto_sync(self._service)
        except Exception:
            logger.exception("Error during automatic gist sync")

    def start(self) -> None:
        """Start the scheduler. Starting twice is a no-op."""
        with self._lock:
            if self._scheduler is not None:
                return  # Already running

            self._scheduler = BackgroundScheduler()
            self._scheduler.add_job(
                self._sync_job,
                trigger=IntervalTrigger(seconds=self._tick_seconds),
                id="gist_sync",
                name="Automatic gist sync",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            self._scheduler.start()
            logger.info("Gist sync scheduler started (tick: %ss)", self._tick_seconds)

    def stop(self) -> None:
        """Stop the scheduler, waiting for an in-flight tick to finish."""
        with self._lock:
            if self._scheduler is None:
                return
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("Gist sync scheduler stopped")

    def run_now(self) -> SyncResult | None:
        """Run one tick immediately (manual trigger).

        Returns:
            Result of the pass, or None if no pass was due.
        """
        return run_auto_sync(self._service)
