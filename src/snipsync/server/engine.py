"""Gist sync engine.

Keeps each linked snippet and its gist in step using a three-way
comparison: the mapping stores the checksums of both sides as of the last
successful sync, and the current checksums decide the direction.

Flow per mapping:
1. Read the snippet and fetch the gist
2. compute_direction() on stored vs current checksums
3. Push, pull, record a conflict, or do nothing
4. Store new baseline checksums only after the write was confirmed
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol

from snipsync.core.checksum import gist_checksum, snippet_checksum
from snipsync.core.types import (
    EnableAllResult,
    OperationStatus,
    SyncDirection,
    SyncOperation,
    SyncResult,
    SyncStatus,
)
from snipsync.gist.client import GistAPIError
from snipsync.gist.converter import gist_to_snippet, snippet_to_gist_request
from snipsync.server.conflicts import ConflictSide, ConflictStrategy, choose_side

if TYPE_CHECKING:
    from snipsync.core.snippet import Snippet
    from snipsync.gist.client import Gist, GistClient
    from snipsync.server.database import Database
    from snipsync.server.models import SnippetGistMapping, SyncConflict

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Base exception for sync failures."""


class SyncNotEnabledError(SyncError):
    """Gist sync is not configured or disabled."""


class MappingNotFoundError(SyncError):
    """No mapping exists for the snippet or gist."""


class ConflictNotFoundError(SyncError):
    """Conflict does not exist or was already resolved."""


class InvalidResolutionError(SyncError):
    """Resolution strategy cannot be applied to a recorded conflict."""


class SnippetStore(Protocol):
    """Local snippet storage used by the engine."""

    def get_snippet(self, snippet_id: str) -> Snippet:
        """Read a full snippet including files, tags and folders."""
        ...

    def list_snippets(self) -> list[Snippet]:
        """List every local snippet."""
        ...

    def update_snippet(self, snippet_id: str, snippet: Snippet) -> Snippet:
        """Replace content and metadata fields, returning the stored snippet."""
        ...


class SnippetLocks:
    """Process-local lock per snippet ID.

    Shared by every engine built from the same service so a scheduled pass
    and a manual trigger never work on the same mapping at once.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, snippet_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(snippet_id, threading.RLock())
        with lock:
            yield


def compute_direction(
    stored_local: str,
    stored_remote: str,
    current_local: str,
    current_remote: str,
) -> SyncDirection:
    """Decide the sync direction from baseline and current checksums.

    Args:
        stored_local: Snippet checksum as of the last sync.
        stored_remote: Gist checksum as of the last sync.
        current_local: Snippet checksum now.
        current_remote: Gist checksum now.

    Returns:
        NO_SYNC if neither side changed, LOCAL_TO_REMOTE or REMOTE_TO_LOCAL
        if exactly one side changed, CONFLICT if both changed.
    """
    local_changed = current_local != stored_local
    remote_changed = current_remote != stored_remote

    if local_changed and remote_changed:
        return SyncDirection.CONFLICT
    if local_changed:
        return SyncDirection.LOCAL_TO_REMOTE
    if remote_changed:
        return SyncDirection.REMOTE_TO_LOCAL
    return SyncDirection.NO_SYNC


class GistSyncEngine:
    """Synchronizes local snippets with their gists."""

    def __init__(
        self,
        db: Database,
        client: GistClient,
        snippets: SnippetStore | None = None,
        locks: SnippetLocks | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            db: Sync state store.
            client: Gist API client.
            snippets: Local snippet store (defaults to db).
            locks: Shared per-snippet locks.
        """
        self._db = db
        self._client = client
        self._snippets: SnippetStore = snippets if snippets is not None else db
        self._locks = locks or SnippetLocks()

    @property
    def client(self) -> GistClient:
        return self._client

    # === Change detection ===

    def detect_changes(self, snippet_id: str) -> SyncDirection:
        """Compute the sync direction of a linked snippet.

        Raises:
            MappingNotFoundError: If the snippet is not linked to a gist.
            SyncError: If the gist could not be fetched.
        """
        mapping = self._require_mapping(snippet_id)
        snippet = self._snippets.get_snippet(snippet_id)
        gist = self._fetch_gist(mapping)
        return self._direction(mapping, snippet, gist)

    def _direction(self, mapping: SnippetGistMapping, snippet: Snippet, gist: Gist) -> SyncDirection:
        return compute_direction(
            mapping.local_checksum,
            mapping.remote_checksum,
            snippet_checksum(snippet),
            gist_checksum(gist),
        )

    # === Single item sync ===

    def sync_snippet_to_gist(self, snippet_id: str) -> SnippetGistMapping:
        """Sync one snippet now, creating its gist if unlinked.

        A linked snippet goes through change detection like a pass item, so
        a remote edit is pulled or recorded as a conflict instead of being
        overwritten. Conflicts follow the configured strategy.

        Returns:
            The mapping after the sync.

        Raises:
            SnippetNotFoundError: If the snippet does not exist.
            SyncError: If the gist API call failed.
        """
        with self._locks.hold(snippet_id):
            mapping = self._db.get_mapping(snippet_id)
            if mapping is None:
                return self._push(self._snippets.get_snippet(snippet_id), None)

            self._sync_mapping(mapping, self._configured_strategy())
            return self._require_mapping(snippet_id)

    def sync_gist_to_snippet(self, gist_id: str) -> SnippetGistMapping:
        """Pull a gist into its linked snippet.

        Returns:
            The synced mapping.

        Raises:
            MappingNotFoundError: If the gist is not linked to a snippet.
            SyncError: If the gist could not be fetched.
        """
        mapping = self._db.get_mapping_by_gist_id(gist_id)
        if mapping is None:
            raise MappingNotFoundError(f"No mapping found for gist {gist_id}")

        with self._locks.hold(mapping.snippet_id):
            existing = self._snippets.get_snippet(mapping.snippet_id)
            gist = self._fetch_gist(mapping)
            return self._pull(mapping, existing, gist)

    def _push(self, snippet: Snippet, mapping: SnippetGistMapping | None) -> SnippetGistMapping:
        request = snippet_to_gist_request(snippet)

        if mapping is None:
            try:
                gist = self._client.create_gist(request)
            except GistAPIError as e:
                self._log_failure(SyncOperation.CREATE, snippet.id, None, e)
                raise SyncError(f"Failed to create gist for snippet {snippet.id}: {e}") from e

            mapping = self._db.create_mapping(
                snippet_id=snippet.id,
                gist_id=gist.id,
                gist_url=gist.html_url,
                local_checksum=snippet_checksum(snippet),
                remote_checksum=gist_checksum(gist),
            )
            self._db.add_log(
                SyncOperation.CREATE,
                OperationStatus.SUCCESS,
                "Gist created successfully",
                snippet_id=snippet.id,
                gist_id=gist.id,
            )
            logger.info("Created gist %s for snippet %s", gist.id, snippet.id)
            return mapping

        try:
            # Files renamed or removed locally must be deleted remotely
            current = self._client.get_gist(mapping.gist_id)
            request.deleted_files = [name for name in current.files if name not in request.files]
            gist = self._client.update_gist(mapping.gist_id, request)
        except GistAPIError as e:
            self._db.mark_mapping_error(mapping.id, str(e))
            self._log_failure(SyncOperation.UPDATE, snippet.id, mapping.gist_id, e)
            raise SyncError(f"Failed to update gist {mapping.gist_id}: {e}") from e

        synced = self._db.mark_mapping_synced(
            mapping.id, snippet_checksum(snippet), gist_checksum(gist)
        )
        self._db.add_log(
            SyncOperation.UPDATE,
            OperationStatus.SUCCESS,
            "Gist updated successfully",
            snippet_id=snippet.id,
            gist_id=gist.id,
        )
        logger.info("Pushed snippet %s to gist %s", snippet.id, gist.id)
        return synced or mapping

    def _pull(self, mapping: SnippetGistMapping, existing: Snippet, gist: Gist) -> SnippetGistMapping:
        converted = gist_to_snippet(gist, existing)
        updated = self._snippets.update_snippet(existing.id, converted)

        synced = self._db.mark_mapping_synced(
            mapping.id, snippet_checksum(updated), gist_checksum(gist)
        )
        self._db.add_log(
            SyncOperation.SYNC,
            OperationStatus.SUCCESS,
            "Snippet updated from gist",
            snippet_id=existing.id,
            gist_id=gist.id,
        )
        logger.info("Pulled gist %s into snippet %s", gist.id, existing.id)
        return synced or mapping

    # === Conflicts ===

    def _record_conflict(self, mapping: SnippetGistMapping, snippet: Snippet, gist: Gist) -> SyncConflict:
        """Snapshot both sides of a conflict. Neither side is written.

        An unresolved conflict of the snippet is reused whatever the mapping
        status, since a failed call in between leaves the mapping in error.
        """
        existing = self._db.get_open_conflict(mapping.snippet_id)
        if existing is not None:
            if mapping.sync_status != SyncStatus.CONFLICT.value:
                self._db.mark_mapping_conflict(mapping.id)
            return existing

        conflict = self._db.create_conflict(
            snippet_id=mapping.snippet_id,
            gist_id=mapping.gist_id,
            local_version=json.dumps(snippet.to_dict(), ensure_ascii=False),
            remote_version=json.dumps(gist.to_dict(), ensure_ascii=False),
        )
        self._db.mark_mapping_conflict(mapping.id)
        self._db.add_log(
            SyncOperation.CONFLICT,
            OperationStatus.SUCCESS,
            "Conflict detected",
            snippet_id=mapping.snippet_id,
            gist_id=mapping.gist_id,
        )
        logger.warning(
            "Conflict on snippet %s / gist %s (conflict %d)",
            mapping.snippet_id,
            mapping.gist_id,
            conflict.id,
        )
        return conflict

    def resolve_conflict(
        self, conflict_id: int, strategy: str | ConflictStrategy
    ) -> SyncConflict:
        """Resolve a recorded conflict by keeping one side.

        Args:
            conflict_id: Conflict ID.
            strategy: "local-wins" or "remote-wins".

        Returns:
            The resolved conflict.

        Raises:
            InvalidResolutionError: If the strategy is not a manual choice.
            ConflictNotFoundError: If the conflict is missing or resolved.
            SyncError: If applying the chosen side failed.
        """
        try:
            choice = ConflictStrategy.parse(strategy)
        except ValueError as e:
            raise InvalidResolutionError(str(e)) from e
        if not choice.is_manual_choice:
            raise InvalidResolutionError(
                f"Invalid resolution strategy: {choice.value} "
                "(expected local-wins or remote-wins)"
            )

        conflict = self._db.get_conflict(conflict_id)
        if conflict is None or conflict.resolved:
            raise ConflictNotFoundError(f"Conflict not found: {conflict_id}")

        side = choose_side(choice)
        with self._locks.hold(conflict.snippet_id):
            mapping = self._require_mapping(conflict.snippet_id)
            snippet = self._snippets.get_snippet(conflict.snippet_id)
            if side is ConflictSide.LOCAL:
                self._push(snippet, mapping)
            else:
                self._pull(mapping, snippet, self._fetch_gist(mapping))

        resolved = self._db.resolve_conflict(conflict_id, choice.value)
        logger.info("Resolved conflict %d with %s", conflict_id, choice.value)
        return resolved or conflict

    # === Full pass ===

    def sync_all(self, strategy: str | ConflictStrategy | None = None) -> SyncResult:
        """Sync every enabled mapping.

        Args:
            strategy: Conflict strategy for this pass (defaults to the
                configured one). Automatic strategies resolve detected
                conflicts immediately.

        Returns:
            Tallies of the pass. One item failing never aborts the pass.

        Raises:
            SyncNotEnabledError: If gist sync is not enabled.
        """
        config = self._db.get_config()
        if config is None or not config.enabled:
            raise SyncNotEnabledError("Gist sync is not enabled")

        strategy = ConflictStrategy.parse(strategy or config.conflict_strategy)

        start = time.monotonic()
        result = SyncResult()
        mappings = self._db.list_enabled_mappings()
        result.total_processed = len(mappings)

        for mapping in mappings:
            try:
                direction = self._sync_mapping(mapping, strategy)
            except Exception as e:
                logger.warning("Sync failed for snippet %s: %s", mapping.snippet_id, e)
                result.add_error(f"snippet {mapping.snippet_id}: {e}")
                continue

            if direction is SyncDirection.CONFLICT:
                result.conflicts += 1
            else:
                result.synced += 1

        result.duration = time.monotonic() - start
        self._db.update_last_full_sync()
        logger.info(
            "Sync pass: %d processed, %d synced, %d conflicts, %d errors",
            result.total_processed,
            result.synced,
            result.conflicts,
            result.errors,
        )
        return result

    def _sync_mapping(self, mapping: SnippetGistMapping, strategy: ConflictStrategy) -> SyncDirection:
        """Apply the needed direction to one mapping.

        Returns:
            The applied direction. An automatically resolved conflict is
            reported as the direction it was resolved in.
        """
        with self._locks.hold(mapping.snippet_id):
            # Re-read under the lock: another caller may have synced it
            mapping = self._require_mapping(mapping.snippet_id)
            snippet = self._snippets.get_snippet(mapping.snippet_id)
            gist = self._fetch_gist(mapping)
            direction = self._direction(mapping, snippet, gist)

            if direction is SyncDirection.LOCAL_TO_REMOTE:
                self._push(snippet, mapping)
            elif direction is SyncDirection.REMOTE_TO_LOCAL:
                self._pull(mapping, snippet, gist)
            elif direction is SyncDirection.CONFLICT:
                conflict = self._record_conflict(mapping, snippet, gist)
                side = choose_side(strategy, snippet.updated_at, gist.updated_at)
                if side is None:
                    return direction
                if side is ConflictSide.LOCAL:
                    self._push(snippet, mapping)
                    direction = SyncDirection.LOCAL_TO_REMOTE
                else:
                    self._pull(mapping, snippet, gist)
                    direction = SyncDirection.REMOTE_TO_LOCAL
                self._db.resolve_conflict(conflict.id, strategy.value)
                logger.info(
                    "Resolved conflict %d automatically with %s", conflict.id, strategy.value
                )
            return direction

    # === Enable / disable ===

    def enable_sync(self, snippet_id: str) -> SnippetGistMapping:
        """Enable sync for a snippet, creating its gist if unlinked.

        Raises:
            SnippetNotFoundError: If the snippet does not exist.
            SyncError: If the gist could not be created.
        """
        with self._locks.hold(snippet_id):
            mapping = self._db.get_mapping(snippet_id)
            if mapping is None:
                return self._push(self._snippets.get_snippet(snippet_id), None)
            self._db.set_mapping_enabled(mapping.id, True)
            mapping.sync_enabled = True
            return mapping

    def disable_sync(self, snippet_id: str) -> SnippetGistMapping:
        """Disable sync for a snippet. The mapping and gist are kept.

        Raises:
            MappingNotFoundError: If the snippet is not linked.
        """
        mapping = self._require_mapping(snippet_id)
        self._db.set_mapping_enabled(mapping.id, False)
        mapping.sync_enabled = False
        return mapping

    def enable_sync_for_all(self) -> EnableAllResult:
        """Create gists for every snippet that is not linked yet.

        Returns:
            Aggregate result. Per-item failures are collected, not raised.
        """
        result = EnableAllResult()
        for snippet in self._snippets.list_snippets():
            if self._db.get_mapping(snippet.id) is not None:
                result.skipped += 1
                continue
            try:
                self.enable_sync(snippet.id)
            except Exception as e:
                logger.warning("Enable sync failed for snippet %s: %s", snippet.id, e)
                result.errors += 1
                result.error_messages.append(f"{snippet.id}: {e}")
            else:
                result.enabled += 1

        logger.info(
            "Enabled sync for %d snippets (%d skipped, %d errors)",
            result.enabled,
            result.skipped,
            result.errors,
        )
        return result

    # === Helpers ===

    def _require_mapping(self, snippet_id: str) -> SnippetGistMapping:
        mapping = self._db.get_mapping(snippet_id)
        if mapping is None:
            raise MappingNotFoundError(f"No mapping found for snippet {snippet_id}")
        return mapping

    def _configured_strategy(self) -> ConflictStrategy:
        config = self._db.get_config()
        if config is None:
            return ConflictStrategy.MANUAL
        return ConflictStrategy.parse(config.conflict_strategy)

    def _fetch_gist(self, mapping: SnippetGistMapping) -> Gist:
        """Fetch the gist of a mapping, recording failures on the mapping."""
        try:
            return self._client.get_gist(mapping.gist_id)
        except GistAPIError as e:
            self._db.mark_mapping_error(mapping.id, str(e))
            self._log_failure(SyncOperation.SYNC, mapping.snippet_id, mapping.gist_id, e)
            raise SyncError(f"Failed to get gist {mapping.gist_id}: {e}") from e

    def _log_failure(
        self,
        operation: SyncOperation,
        snippet_id: str | None,
        gist_id: str | None,
        error: Exception,
    ) -> None:
        logger.warning("Gist %s failed for snippet %s: %s", operation.value, snippet_id, error)
        self._db.add_log(
            operation,
            OperationStatus.FAILED,
            str(error),
            snippet_id=snippet_id,
            gist_id=gist_id,
        )
