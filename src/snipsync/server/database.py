"""Server database using SQLAlchemy with SQLite.

This module provides:
- Sync configuration storage (single row)
- Snippet/gist mapping storage with baseline checksums
- Conflict snapshots and their resolution
- Append-only sync audit log
- Local snippet storage read and written by the sync engine
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, selectinload

from snipsync.core.snippet import Folder, Snippet, SnippetFile, Tag
from snipsync.core.types import OperationStatus, SyncOperation, SyncStatus
from snipsync.server.models import (
    Base,
    SnippetFileRecord,
    SnippetGistMapping,
    SnippetRecord,
    SyncConfig,
    SyncConflict,
    SyncLogEntry,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 200


class SnippetNotFoundError(LookupError):
    """Raised when a snippet does not exist in the local store."""


def as_utc(value: datetime | None) -> datetime | None:
    """Return value as an aware UTC datetime.

    SQLite drops tzinfo on round-trip, so naive values read back from the
    database are assumed to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def clamp_log_limit(limit: int | None) -> int:
    """Clamp a requested log page size to 1..200 (default 50)."""
    if limit is None or limit <= 0:
        return DEFAULT_LOG_LIMIT
    return min(limit, MAX_LOG_LIMIT)


def _record_to_snippet(record: SnippetRecord) -> Snippet:
    return Snippet(
        id=record.id,
        title=record.title,
        description=record.description,
        content=record.content,
        language=record.language,
        is_public=record.is_public,
        is_favorite=record.is_favorite,
        is_archived=record.is_archived,
        files=[
            SnippetFile(filename=f.filename, content=f.content, language=f.language)
            for f in record.files
        ],
        tags=[Tag.from_dict(t) for t in record.tags or []],
        folders=[Folder.from_dict(f) for f in record.folders or []],
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


def _file_records(snippet: Snippet) -> list[SnippetFileRecord]:
    return [
        SnippetFileRecord(
            position=index,
            filename=f.filename,
            content=f.content,
            language=f.language,
        )
        for index, f in enumerate(snippet.files)
    ]


class Database:
    """SQLAlchemy database for sync state and local snippets.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Shared between the scheduler thread and request handlers
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")

        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Config operations ===

    def get_config(self) -> SyncConfig | None:
        """Get the sync configuration row.

        Returns:
            SyncConfig if configured, None otherwise.
        """
        with self._session() as session:
            config = session.get(SyncConfig, 1)
            if config:
                session.expunge(config)
            return config

    def save_config(
        self,
        *,
        enabled: bool,
        github_token_encrypted: str,
        github_username: str,
        auto_sync_enabled: bool,
        sync_interval_minutes: int,
        conflict_strategy: str,
    ) -> SyncConfig:
        """Create or update the sync configuration.

        The last full sync timestamp is preserved across updates.

        Returns:
            The stored configuration.
        """
        with self._session() as session:
            config = session.get(SyncConfig, 1)
            if config is None:
                config = SyncConfig(id=1)
                session.add(config)
            config.enabled = enabled
            config.github_token_encrypted = github_token_encrypted
            config.github_username = github_username
            config.auto_sync_enabled = auto_sync_enabled
            config.sync_interval_minutes = sync_interval_minutes
            config.conflict_strategy = conflict_strategy
            session.commit()
            session.refresh(config)
            session.expunge(config)
            return config

    def delete_config(self) -> bool:
        """Delete the sync configuration.

        Returns:
            True if a configuration was deleted.
        """
        with self._session() as session:
            config = session.get(SyncConfig, 1)
            if config is None:
                return False
            session.delete(config)
            session.commit()
            return True

    def update_last_full_sync(self, when: datetime | None = None) -> None:
        """Stamp the time of the last full sync pass.

        Args:
            when: Timestamp to store (defaults to now).
        """
        with self._session() as session:
            config = session.get(SyncConfig, 1)
            if config:
                config.last_full_sync_at = when or datetime.now(UTC)
                session.commit()

    # === Mapping operations ===

    def create_mapping(
        self,
        snippet_id: str,
        gist_id: str,
        gist_url: str,
        local_checksum: str,
        remote_checksum: str,
    ) -> SnippetGistMapping:
        """Create a synced mapping after a gist was created.

        Raises:
            IntegrityError: If the snippet or the gist is already mapped.
        """
        with self._session() as session:
            mapping = SnippetGistMapping(
                snippet_id=snippet_id,
                gist_id=gist_id,
                gist_url=gist_url,
                sync_enabled=True,
                local_checksum=local_checksum,
                remote_checksum=remote_checksum,
                sync_status=SyncStatus.SYNCED.value,
                last_synced_at=datetime.now(UTC),
            )
            session.add(mapping)
            session.commit()
            session.refresh(mapping)
            session.expunge(mapping)
            return mapping

    def get_mapping(self, snippet_id: str) -> SnippetGistMapping | None:
        """Get a mapping by snippet ID."""
        with self._session() as session:
            stmt = select(SnippetGistMapping).where(SnippetGistMapping.snippet_id == snippet_id)
            mapping = session.execute(stmt).scalar_one_or_none()
            if mapping:
                session.expunge(mapping)
            return mapping

    def get_mapping_by_id(self, mapping_id: int) -> SnippetGistMapping | None:
        """Get a mapping by its ID."""
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping:
                session.expunge(mapping)
            return mapping

    def get_mapping_by_gist_id(self, gist_id: str) -> SnippetGistMapping | None:
        """Get a mapping by gist ID."""
        with self._session() as session:
            stmt = select(SnippetGistMapping).where(SnippetGistMapping.gist_id == gist_id)
            mapping = session.execute(stmt).scalar_one_or_none()
            if mapping:
                session.expunge(mapping)
            return mapping

    def list_mappings(self) -> list[SnippetGistMapping]:
        """List all mappings, newest first."""
        with self._session() as session:
            stmt = select(SnippetGistMapping).order_by(
                SnippetGistMapping.created_at.desc(), SnippetGistMapping.id.desc()
            )
            mappings = list(session.execute(stmt).scalars().all())
            for mapping in mappings:
                session.expunge(mapping)
            return mappings

    def list_enabled_mappings(self) -> list[SnippetGistMapping]:
        """List sync-enabled mappings in insertion order."""
        with self._session() as session:
            stmt = (
                select(SnippetGistMapping)
                .where(SnippetGistMapping.sync_enabled.is_(True))
                .order_by(SnippetGistMapping.id)
            )
            mappings = list(session.execute(stmt).scalars().all())
            for mapping in mappings:
                session.expunge(mapping)
            return mappings

    def mark_mapping_synced(
        self,
        mapping_id: int,
        local_checksum: str,
        remote_checksum: str,
    ) -> SnippetGistMapping | None:
        """Store new baseline checksums after a successful sync.

        Returns:
            Updated mapping, or None if it no longer exists.
        """
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping is None:
                return None
            mapping.local_checksum = local_checksum
            mapping.remote_checksum = remote_checksum
            mapping.sync_status = SyncStatus.SYNCED.value
            mapping.error_message = None
            mapping.last_synced_at = datetime.now(UTC)
            session.commit()
            session.refresh(mapping)
            session.expunge(mapping)
            return mapping

    def mark_mapping_error(self, mapping_id: int, message: str) -> None:
        """Record a failed sync on a mapping (baseline is left untouched)."""
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping:
                mapping.sync_status = SyncStatus.ERROR.value
                mapping.error_message = message
                session.commit()

    def mark_mapping_conflict(self, mapping_id: int) -> None:
        """Flag a mapping as conflicting (baseline is left untouched)."""
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping:
                mapping.sync_status = SyncStatus.CONFLICT.value
                mapping.error_message = None
                session.commit()

    def set_mapping_enabled(self, mapping_id: int, enabled: bool) -> None:
        """Enable or disable sync for a mapping."""
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping:
                mapping.sync_enabled = enabled
                session.commit()

    def delete_mapping(self, mapping_id: int) -> bool:
        """Delete a mapping. Neither the snippet nor the gist is touched.

        Returns:
            True if the mapping was deleted, False if not found.
        """
        with self._session() as session:
            mapping = session.get(SnippetGistMapping, mapping_id)
            if mapping is None:
                return False
            session.delete(mapping)
            session.commit()
            return True

    # === Conflict operations ===

    def create_conflict(
        self,
        snippet_id: str,
        gist_id: str,
        local_version: str,
        remote_version: str,
    ) -> SyncConflict:
        """Store snapshots of both sides of a conflict."""
        with self._session() as session:
            conflict = SyncConflict(
                snippet_id=snippet_id,
                gist_id=gist_id,
                local_version=local_version,
                remote_version=remote_version,
            )
            session.add(conflict)
            session.commit()
            session.refresh(conflict)
            session.expunge(conflict)
            return conflict

    def get_conflict(self, conflict_id: int) -> SyncConflict | None:
        """Get a conflict by ID."""
        with self._session() as session:
            conflict = session.get(SyncConflict, conflict_id)
            if conflict:
                session.expunge(conflict)
            return conflict

    def get_open_conflict(self, snippet_id: str) -> SyncConflict | None:
        """Get the most recent unresolved conflict of a snippet."""
        with self._session() as session:
            stmt = (
                select(SyncConflict)
                .where(
                    SyncConflict.snippet_id == snippet_id,
                    SyncConflict.resolved.is_(False),
                )
                .order_by(SyncConflict.id.desc())
                .limit(1)
            )
            conflict = session.execute(stmt).scalar_one_or_none()
            if conflict:
                session.expunge(conflict)
            return conflict

    def list_conflicts(self, resolved: bool = False) -> list[SyncConflict]:
        """List conflicts, newest first.

        Args:
            resolved: List resolved conflicts instead of open ones.
        """
        with self._session() as session:
            stmt = (
                select(SyncConflict)
                .where(SyncConflict.resolved.is_(resolved))
                .order_by(SyncConflict.created_at.desc(), SyncConflict.id.desc())
            )
            conflicts = list(session.execute(stmt).scalars().all())
            for conflict in conflicts:
                session.expunge(conflict)
            return conflicts

    def resolve_conflict(self, conflict_id: int, resolution: str) -> SyncConflict | None:
        """Mark a conflict as resolved with the chosen strategy."""
        with self._session() as session:
            conflict = session.get(SyncConflict, conflict_id)
            if conflict is None:
                return None
            conflict.resolved = True
            conflict.resolution = resolution
            conflict.resolved_at = datetime.now(UTC)
            session.commit()
            session.refresh(conflict)
            session.expunge(conflict)
            return conflict

    # === Log operations ===

    def add_log(
        self,
        operation: SyncOperation,
        status: OperationStatus,
        message: str | None = None,
        snippet_id: str | None = None,
        gist_id: str | None = None,
    ) -> SyncLogEntry:
        """Append an entry to the sync audit log."""
        with self._session() as session:
            entry = SyncLogEntry(
                snippet_id=snippet_id,
                gist_id=gist_id or None,
                operation=operation.value,
                status=status.value,
                message=message,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)
            return entry

    def list_logs(self, limit: int | None = DEFAULT_LOG_LIMIT) -> list[SyncLogEntry]:
        """List the most recent log entries, newest first."""
        with self._session() as session:
            stmt = (
                select(SyncLogEntry)
                .order_by(SyncLogEntry.created_at.desc(), SyncLogEntry.id.desc())
                .limit(clamp_log_limit(limit))
            )
            entries = list(session.execute(stmt).scalars().all())
            for entry in entries:
                session.expunge(entry)
            return entries

    # === Snippet operations ===

    def create_snippet(self, snippet: Snippet) -> Snippet:
        """Insert a snippet.

        Raises:
            IntegrityError: If a snippet with the same ID exists.
        """
        now = datetime.now(UTC)
        with self._session() as session:
            record = SnippetRecord(
                id=snippet.id,
                title=snippet.title,
                description=snippet.description,
                content=snippet.content,
                language=snippet.language,
                is_public=snippet.is_public,
                is_favorite=snippet.is_favorite,
                is_archived=snippet.is_archived,
                tags=[t.to_dict() for t in snippet.tags],
                folders=[f.to_dict() for f in snippet.folders],
                created_at=snippet.created_at or now,
                updated_at=snippet.updated_at or now,
            )
            record.files = _file_records(snippet)
            session.add(record)
            session.commit()
            return _record_to_snippet(record)

    def get_snippet(self, snippet_id: str) -> Snippet:
        """Get a snippet with its files, tags and folders.

        Raises:
            SnippetNotFoundError: If the snippet does not exist.
        """
        with self._session() as session:
            stmt = (
                select(SnippetRecord)
                .options(selectinload(SnippetRecord.files))
                .where(SnippetRecord.id == snippet_id)
            )
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                raise SnippetNotFoundError(f"Snippet not found: {snippet_id}")
            return _record_to_snippet(record)

    def list_snippets(self) -> list[Snippet]:
        """List all snippets in creation order."""
        with self._session() as session:
            stmt = (
                select(SnippetRecord)
                .options(selectinload(SnippetRecord.files))
                .order_by(SnippetRecord.created_at, SnippetRecord.id)
            )
            return [_record_to_snippet(r) for r in session.execute(stmt).scalars().all()]

    def update_snippet(self, snippet_id: str, snippet: Snippet) -> Snippet:
        """Replace a snippet's content, metadata and file set.

        Tags are owned by the snippet store and are kept as they are.

        Raises:
            SnippetNotFoundError: If the snippet does not exist.
        """
        with self._session() as session:
            stmt = (
                select(SnippetRecord)
                .options(selectinload(SnippetRecord.files))
                .where(SnippetRecord.id == snippet_id)
            )
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                raise SnippetNotFoundError(f"Snippet not found: {snippet_id}")

            record.title = snippet.title
            record.description = snippet.description
            record.content = snippet.content
            record.language = snippet.language
            record.is_public = snippet.is_public
            record.is_favorite = snippet.is_favorite
            record.is_archived = snippet.is_archived
            record.folders = [f.to_dict() for f in snippet.folders]
            record.files = _file_records(snippet)
            record.updated_at = datetime.now(UTC)
            session.commit()
            session.refresh(record)
            return _record_to_snippet(record)
