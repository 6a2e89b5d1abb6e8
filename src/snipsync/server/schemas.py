"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from snipsync.core.config import DEFAULT_SYNC_INTERVAL_MINUTES
from snipsync.core.types import EnableAllResult, SyncResult
from snipsync.server.models import SnippetGistMapping, SyncConflict, SyncLogEntry
from snipsync.server.service import ConfigView

# === Config schemas ===


class ConfigUpdateRequest(BaseModel):
    """Request body for configuration update."""

    enabled: bool
    github_token: str = ""
    auto_sync_enabled: bool = True
    sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    conflict_resolution_strategy: str = "manual"


class ConfigResponse(BaseModel):
    """Sync configuration in responses (the token is never returned)."""

    enabled: bool
    github_username: str
    has_token: bool
    auto_sync_enabled: bool
    sync_interval_minutes: int
    conflict_resolution_strategy: str
    last_full_sync_at: str | None = None


class ConnectionTestResponse(BaseModel):
    """Response for a successful token check."""

    valid: bool
    username: str
    message: str


class MessageResponse(BaseModel):
    """Generic confirmation message."""

    message: str


# === Sync schemas ===


class SyncResultResponse(BaseModel):
    """Tallies of a full sync pass."""

    total_processed: int
    synced: int
    conflicts: int
    errors: int
    error_messages: list[str]
    duration: float  # seconds


class EnableAllResponse(BaseModel):
    """Result of enabling sync for every snippet."""

    message: str
    enabled: int
    skipped: int
    errors: int
    error_messages: list[str]


class MappingResponse(BaseModel):
    """Snippet/gist mapping in responses."""

    id: int
    snippet_id: str
    gist_id: str
    gist_url: str
    sync_enabled: bool
    sync_status: str
    local_checksum: str
    remote_checksum: str
    error_message: str | None
    last_synced_at: str | None
    created_at: str
    updated_at: str


# === Conflict schemas ===


class ResolveConflictRequest(BaseModel):
    """Request body for conflict resolution."""

    resolution: str = Field(description="local-wins or remote-wins")


class ConflictResponse(BaseModel):
    """Conflict in responses."""

    id: int
    snippet_id: str
    gist_id: str
    local_version: str
    remote_version: str
    resolved: bool
    resolution: str | None
    created_at: str
    resolved_at: str | None


# === Log schemas ===


class LogEntryResponse(BaseModel):
    """Sync log entry in responses."""

    id: int
    snippet_id: str | None
    gist_id: str | None
    operation: str
    status: str
    message: str | None
    created_at: str


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    scheduler_running: bool


# === Converters ===


def config_to_response(view: ConfigView) -> ConfigResponse:
    """Convert ConfigView to response model."""
    return ConfigResponse(
        enabled=view.enabled,
        github_username=view.github_username,
        has_token=view.has_token,
        auto_sync_enabled=view.auto_sync_enabled,
        sync_interval_minutes=view.sync_interval_minutes,
        conflict_resolution_strategy=view.conflict_strategy,
        last_full_sync_at=view.last_full_sync_at.isoformat() if view.last_full_sync_at else None,
    )


def sync_result_to_response(result: SyncResult) -> SyncResultResponse:
    """Convert SyncResult to response model."""
    return SyncResultResponse(
        total_processed=result.total_processed,
        synced=result.synced,
        conflicts=result.conflicts,
        errors=result.errors,
        error_messages=list(result.error_messages),
        duration=result.duration,
    )


def enable_all_to_response(result: EnableAllResult) -> EnableAllResponse:
    """Convert EnableAllResult to response model."""
    return EnableAllResponse(
        message=f"Enabled sync for {result.enabled} snippets",
        enabled=result.enabled,
        skipped=result.skipped,
        errors=result.errors,
        error_messages=list(result.error_messages),
    )


def mapping_to_response(mapping: SnippetGistMapping) -> MappingResponse:
    """Convert SnippetGistMapping to response model."""
    return MappingResponse(
        id=mapping.id,
        snippet_id=mapping.snippet_id,
        gist_id=mapping.gist_id,
        gist_url=mapping.gist_url,
        sync_enabled=mapping.sync_enabled,
        sync_status=mapping.sync_status,
        local_checksum=mapping.local_checksum,
        remote_checksum=mapping.remote_checksum,
        error_message=mapping.error_message,
        last_synced_at=mapping.last_synced_at.isoformat() if mapping.last_synced_at else None,
        created_at=mapping.created_at.isoformat(),
        updated_at=mapping.updated_at.isoformat(),
    )


def conflict_to_response(conflict: SyncConflict) -> ConflictResponse:
    """Convert SyncConflict to response model."""
    return ConflictResponse(
        id=conflict.id,
        snippet_id=conflict.snippet_id,
        gist_id=conflict.gist_id,
        local_version=conflict.local_version,
        remote_version=conflict.remote_version,
        resolved=conflict.resolved,
        resolution=conflict.resolution,
        created_at=conflict.created_at.isoformat(),
        resolved_at=conflict.resolved_at.isoformat() if conflict.resolved_at else None,
    )


def log_to_response(entry: SyncLogEntry) -> LogEntryResponse:
    """Convert SyncLogEntry to response model."""
    return LogEntryResponse(
        id=entry.id,
        snippet_id=entry.snippet_id,
        gist_id=entry.gist_id,
        operation=entry.operation,
        status=entry.status,
        message=entry.message,
        created_at=entry.created_at.isoformat(),
    )
