"""SQLAlchemy models for snipsync.

This module defines the database schema using SQLAlchemy ORM: the four
sync tables (config, mappings, conflicts, log) and the local snippet
tables they are linked to.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from snipsync.core.config import DEFAULT_SYNC_INTERVAL_MINUTES


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


# === Local snippet tables ===


class SnippetRecord(Base):
    """A locally owned snippet."""

    __tablename__ = "snippets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    language: Mapped[str] = mapped_column(String(50), default="plaintext", nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tags: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    folders: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )

    # Relationships
    files: Mapped[list[SnippetFileRecord]] = relationship(
        "SnippetFileRecord",
        back_populates="snippet",
        cascade="all, delete-orphan",
        order_by="SnippetFileRecord.position",
    )


class SnippetFileRecord(Base):
    """A named file belonging to a snippet."""

    __tablename__ = "snippet_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snippet_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("snippets.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    language: Mapped[str] = mapped_column(String(50), default="plaintext", nullable=False)

    # Relationships
    snippet: Mapped[SnippetRecord] = relationship("SnippetRecord", back_populates="files")

    __table_args__ = (Index("idx_snippet_files_snippet", "snippet_id"),)


# === Sync tables ===


class SyncConfig(Base):
    """Global gist sync configuration (single row, id = 1)."""

    __tablename__ = "gist_sync_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False, default=1)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    github_token_encrypted: Mapped[str] = mapped_column(Text, default="", nullable=False)
    github_username: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    auto_sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sync_interval_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_SYNC_INTERVAL_MINUTES, nullable=False
    )
    conflict_strategy: Mapped[str] = mapped_column(String(32), default="manual", nullable=False)
    last_full_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    __table_args__ = (CheckConstraint("id = 1", name="ck_gist_sync_config_single_row"),)

    @property
    def has_token(self) -> bool:
        return bool(self.github_token_encrypted)


class SnippetGistMapping(Base):
    """Link between one local snippet and one gist, with baseline checksums."""

    __tablename__ = "snippet_gist_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snippet_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    gist_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    gist_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    local_checksum: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    remote_checksum: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    sync_status: Mapped[str] = mapped_column(String(16), default="synced", nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    __table_args__ = (
        Index("idx_gist_mappings_status", "sync_status"),
        Index("idx_gist_mappings_enabled", "sync_enabled"),
    )


class SyncConflict(Base):
    """Snapshot of both sides when both changed since the last sync."""

    __tablename__ = "gist_sync_conflicts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snippet_id: Mapped[str] = mapped_column(String(64), nullable=False)
    gist_id: Mapped[str] = mapped_column(String(64), nullable=False)
    local_version: Mapped[str] = mapped_column(Text, nullable=False)
    remote_version: Mapped[str] = mapped_column(Text, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolution: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_gist_conflicts_resolved", "resolved"),
        Index("idx_gist_conflicts_snippet", "snippet_id"),
    )


class SyncLogEntry(Base):
    """Append-only audit trail of sync operations."""

    __tablename__ = "gist_sync_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snippet_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    gist_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    operation: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )

    __table_args__ = (Index("idx_gist_sync_log_created", "created_at"),)
