"""Gist sync administration API routes."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, Query, status

from snipsync.server.api.deps import get_service
from snipsync.server.database import MAX_LOG_LIMIT, SnippetNotFoundError
from snipsync.server.engine import (
    ConflictNotFoundError,
    InvalidResolutionError,
    MappingNotFoundError,
    SyncError,
    SyncNotEnabledError,
)
from snipsync.server.schemas import (
    ConfigResponse,
    ConfigUpdateRequest,
    ConflictResponse,
    ConnectionTestResponse,
    EnableAllResponse,
    LogEntryResponse,
    MappingResponse,
    MessageResponse,
    ResolveConflictRequest,
    SyncResultResponse,
    config_to_response,
    conflict_to_response,
    enable_all_to_response,
    log_to_response,
    mapping_to_response,
    sync_result_to_response,
)
from snipsync.server.service import ConfigurationError, ConfigUpdate, SyncService

router = APIRouter(prefix="/api/gist-sync", tags=["gist-sync"])


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map service and engine errors to HTTP errors."""
    try:
        yield
    except (ConfigurationError, InvalidResolutionError, SyncNotEnabledError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except (MappingNotFoundError, ConflictNotFoundError, SnippetNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except SyncError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e


# === Configuration ===


@router.get("/config", response_model=ConfigResponse)
def get_config(service: SyncService = Depends(get_service)) -> ConfigResponse:
    """Get the sync configuration."""
    return config_to_response(service.get_config_view())


@router.put("/config", response_model=ConfigResponse)
def update_config(
    request: ConfigUpdateRequest,
    service: SyncService = Depends(get_service),
) -> ConfigResponse:
    """Update the sync configuration."""
    update = ConfigUpdate(
        enabled=request.enabled,
        auto_sync_enabled=request.auto_sync_enabled,
        sync_interval_minutes=request.sync_interval_minutes,
        conflict_strategy=request.conflict_resolution_strategy,
        github_token=request.github_token,
    )
    with _translate_errors():
        view = service.update_config(update)
    return config_to_response(view)


@router.delete("/config", response_model=MessageResponse)
def clear_config(service: SyncService = Depends(get_service)) -> MessageResponse:
    """Clear the token and disable sync."""
    service.clear_config()
    return MessageResponse(message="Configuration cleared successfully")


@router.post("/test", response_model=ConnectionTestResponse)
def check_connection(service: SyncService = Depends(get_service)) -> ConnectionTestResponse:
    """Check the stored token against GitHub."""
    with _translate_errors():
        username = service.test_connection()
    return ConnectionTestResponse(valid=True, username=username, message="Connection successful")


# === Sync ===


@router.post("/snippets/{snippet_id}/sync", response_model=MappingResponse)
def sync_snippet(
    snippet_id: str,
    service: SyncService = Depends(get_service),
) -> MappingResponse:
    """Push a snippet to its gist."""
    with _translate_errors():
        mapping = service.sync_snippet(snippet_id)
    return mapping_to_response(mapping)


@router.post("/sync-all", response_model=SyncResultResponse)
def sync_all(service: SyncService = Depends(get_service)) -> SyncResultResponse:
    """Run a full sync pass."""
    with _translate_errors():
        result = service.sync_all()
    return sync_result_to_response(result)


@router.post("/snippets/{snippet_id}/enable", response_model=MappingResponse)
def enable_sync(
    snippet_id: str,
    service: SyncService = Depends(get_service),
) -> MappingResponse:
    """Enable sync for a snippet."""
    with _translate_errors():
        mapping = service.enable_sync(snippet_id)
    return mapping_to_response(mapping)


@router.post("/snippets/{snippet_id}/disable", response_model=MappingResponse)
def disable_sync(
    snippet_id: str,
    service: SyncService = Depends(get_service),
) -> MappingResponse:
    """Disable sync for a snippet."""
    with _translate_errors():
        mapping = service.disable_sync(snippet_id)
    return mapping_to_response(mapping)


@router.post("/enable-all", response_model=EnableAllResponse)
def enable_sync_for_all(service: SyncService = Depends(get_service)) -> EnableAllResponse:
    """Enable sync for every snippet that is not linked yet."""
    with _translate_errors():
        result = service.enable_sync_for_all()
    return enable_all_to_response(result)


# === Mappings ===


@router.get("/mappings", response_model=list[MappingResponse])
def list_mappings(service: SyncService = Depends(get_service)) -> list[MappingResponse]:
    """List snippet/gist mappings."""
    return [mapping_to_response(m) for m in service.list_mappings()]


@router.delete("/mappings/{mapping_id}", response_model=MessageResponse)
def delete_mapping(
    mapping_id: int,
    service: SyncService = Depends(get_service),
) -> MessageResponse:
    """Unlink a snippet from its gist."""
    if not service.delete_mapping(mapping_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Mapping not found: {mapping_id}",
        )
    return MessageResponse(message="Mapping deleted successfully")


# === Conflicts ===


@router.get("/conflicts", response_model=list[ConflictResponse])
def list_conflicts(
    resolved: bool = False,
    service: SyncService = Depends(get_service),
) -> list[ConflictResponse]:
    """List conflicts (unresolved by default)."""
    return [conflict_to_response(c) for c in service.list_conflicts(resolved=resolved)]


@router.post("/conflicts/{conflict_id}/resolve", response_model=ConflictResponse)
def resolve_conflict(
    conflict_id: int,
    request: ResolveConflictRequest,
    service: SyncService = Depends(get_service),
) -> ConflictResponse:
    """Resolve a conflict with local-wins or remote-wins."""
    with _translate_errors():
        conflict = service.resolve_conflict(conflict_id, request.resolution)
    return conflict_to_response(conflict)


# === Logs ===


@router.get("/logs", response_model=list[LogEntryResponse])
def list_logs(
    limit: int = Query(default=50, ge=1, le=MAX_LOG_LIMIT),
    service: SyncService = Depends(get_service),
) -> list[LogEntryResponse]:
    """List recent sync log entries."""
    return [log_to_response(e) for e in service.list_logs(limit)]
