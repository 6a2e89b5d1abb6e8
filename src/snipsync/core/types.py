"""Shared types for snipsync.

This module defines enums and result types used by the sync engine,
the scheduler and the admin API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class SyncStatus(str, Enum):
    """Durable sync status of a snippet/gist mapping."""

    SYNCED = "synced"
    PENDING = "pending"
    CONFLICT = "conflict"
    ERROR = "error"


class SyncDirection(Enum):
    """Action to take for a mapping on a given pass."""

    NO_SYNC = auto()
    LOCAL_TO_REMOTE = auto()
    REMOTE_TO_LOCAL = auto()
    CONFLICT = auto()


class SyncOperation(str, Enum):
    """Operation recorded in the sync audit log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SYNC = "sync"
    CONFLICT = "conflict"


class OperationStatus(str, Enum):
    """Outcome recorded in the sync audit log."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Aggregate result of a full sync pass."""

    total_processed: int = 0
    synced: int = 0
    conflicts: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)
    duration: float = 0.0

    def add_error(self, message: str) -> None:
        """Record a failed item."""
        self.errors += 1
        self.error_messages.append(message)


@dataclass
class EnableAllResult:
    """Aggregate result of enabling sync for every snippet."""

    enabled: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)
