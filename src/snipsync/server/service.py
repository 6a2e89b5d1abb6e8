"""Administrative operations for gist sync.

SyncService is the single entry point used by the HTTP API, the CLI and
the background scheduler. It validates configuration changes, keeps the
GitHub token encrypted at rest and builds sync engines on demand.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from snipsync.core.config import (
    DEFAULT_SYNC_INTERVAL_MINUTES,
    GITHUB_API_URL,
    MIN_SYNC_INTERVAL_MINUTES,
    GistConfig,
)
from snipsync.core.crypto import DecryptionError, decrypt_value, encrypt_value
from snipsync.core.types import EnableAllResult, SyncResult
from snipsync.gist.client import GistAPIError, GistClient
from snipsync.server.conflicts import ConflictStrategy
from snipsync.server.database import Database, as_utc
from snipsync.server.engine import GistSyncEngine, SnippetLocks
from snipsync.server.models import SnippetGistMapping, SyncConflict, SyncLogEntry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[GistConfig], GistClient]


class ConfigurationError(Exception):
    """Sync configuration is missing or invalid."""


@dataclass
class ConfigUpdate:
    """Requested sync configuration.

    An empty github_token keeps the stored token.
    """

    enabled: bool
    auto_sync_enabled: bool = True
    sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    conflict_strategy: str = ConflictStrategy.MANUAL.value
    github_token: str = ""


@dataclass
class ConfigView:
    """Sync configuration as shown to users (token never exposed)."""

    enabled: bool = False
    github_username: str = ""
    has_token: bool = False
    auto_sync_enabled: bool = True
    sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    conflict_strategy: str = ConflictStrategy.MANUAL.value
    last_full_sync_at: datetime | None = None


class SyncService:
    """Validates configuration and runs sync operations."""

    def __init__(
        self,
        db: Database,
        secret_key: str,
        client_factory: ClientFactory | None = None,
        api_url: str = GITHUB_API_URL,
    ) -> None:
        """Initialize the service.

        Args:
            db: Database holding sync state and snippets.
            secret_key: Application secret used to encrypt the token.
            client_factory: Builds a gist client from connection settings.
            api_url: Base URL of the GitHub API.
        """
        self._db = db
        self._secret_key = secret_key
        self._client_factory: ClientFactory = client_factory or GistClient
        self._api_url = api_url
        self._locks = SnippetLocks()

    @property
    def db(self) -> Database:
        return self._db

    # === Configuration ===

    def get_config_view(self) -> ConfigView:
        """Return the current configuration, or defaults when unset."""
        config = self._db.get_config()
        if config is None:
            return ConfigView()
        return ConfigView(
            enabled=config.enabled,
            github_username=config.github_username,
            has_token=config.has_token,
            auto_sync_enabled=config.auto_sync_enabled,
            sync_interval_minutes=config.sync_interval_minutes,
            conflict_strategy=config.conflict_strategy,
            last_full_sync_at=as_utc(config.last_full_sync_at),
        )

    def update_config(self, update: ConfigUpdate) -> ConfigView:
        """Validate and store a configuration change.

        A new token is checked against the API before it is stored. Storing
        a token requires an application secret.

        Raises:
            ConfigurationError: If the interval, strategy or token is invalid,
                or a token is given without an application secret.
        """
        if update.sync_interval_minutes < MIN_SYNC_INTERVAL_MINUTES:
            raise ConfigurationError(
                f"Sync interval must be at least {MIN_SYNC_INTERVAL_MINUTES} minutes"
            )
        try:
            strategy = ConflictStrategy.parse(update.conflict_strategy)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if update.github_token:
            if not self._secret_key:
                raise ConfigurationError(
                    "SNIPSYNC_SECRET_KEY must be set before storing a GitHub token"
                )
            username = self._validate_token(update.github_token)
            token_encrypted = encrypt_value(update.github_token, self._secret_key)
        else:
            existing = self._db.get_config()
            token_encrypted = existing.github_token_encrypted if existing else ""
            username = existing.github_username if existing else ""

        self._db.save_config(
            enabled=update.enabled,
            github_token_encrypted=token_encrypted,
            github_username=username,
            auto_sync_enabled=update.auto_sync_enabled,
            sync_interval_minutes=update.sync_interval_minutes,
            conflict_strategy=strategy.value,
        )
        logger.info(
            "Gist sync configuration updated (enabled=%s, interval=%d, strategy=%s)",
            update.enabled,
            update.sync_interval_minutes,
            strategy.value,
        )
        return self.get_config_view()

    def clear_config(self) -> bool:
        """Delete the configuration, which disables sync and forgets the token."""
        deleted = self._db.delete_config()
        if deleted:
            logger.info("Gist sync configuration cleared")
        return deleted

    def test_connection(self) -> str:
        """Check the stored token against the API.

        Returns:
            Login of the token's owner.

        Raises:
            ConfigurationError: If no token is stored or it is rejected.
        """
        token = self._stored_token()
        return self._validate_token(token)

    def _validate_token(self, token: str) -> str:
        client = self._client_factory(self._gist_config(token))
        try:
            return client.get_authenticated_user()
        except GistAPIError as e:
            logger.warning("GitHub token validation failed: %s", e)
            raise ConfigurationError(f"Failed to validate GitHub token: {e}") from e
        finally:
            client.close()

    def _stored_token(self) -> str:
        config = self._db.get_config()
        if config is None or not config.has_token:
            raise ConfigurationError("GitHub token not configured")
        try:
            return decrypt_value(config.github_token_encrypted, self._secret_key)
        except DecryptionError as e:
            raise ConfigurationError(f"Failed to decrypt GitHub token: {e}") from e

    def _gist_config(self, token: str) -> GistConfig:
        return GistConfig(token=token, api_url=self._api_url)

    # === Engine ===

    def create_engine(self) -> GistSyncEngine:
        """Build a sync engine with a client for the stored token.

        The caller owns the engine's client and must close it.

        Raises:
            ConfigurationError: If no usable token is stored.
        """
        client = self._client_factory(self._gist_config(self._stored_token()))
        return GistSyncEngine(self._db, client, locks=self._locks)

    @contextmanager
    def engine(self) -> Iterator[GistSyncEngine]:
        """Context manager yielding an engine whose client is closed on exit."""
        engine = self.create_engine()
        try:
            yield engine
        finally:
            engine.client.close()

    # === Sync operations ===

    def sync_snippet(self, snippet_id: str) -> SnippetGistMapping:
        """Sync one snippet now (creating its gist if unlinked)."""
        with self.engine() as engine:
            return engine.sync_snippet_to_gist(snippet_id)

    def sync_all(self) -> SyncResult:
        """Run one full pass with the configured strategy."""
        with self.engine() as engine:
            return engine.sync_all()

    def enable_sync(self, snippet_id: str) -> SnippetGistMapping:
        with self.engine() as engine:
            return engine.enable_sync(snippet_id)

    def disable_sync(self, snippet_id: str) -> SnippetGistMapping:
        with self.engine() as engine:
            return engine.disable_sync(snippet_id)

    def enable_sync_for_all(self) -> EnableAllResult:
        with self.engine() as engine:
            return engine.enable_sync_for_all()

    def resolve_conflict(self, conflict_id: int, strategy: str) -> SyncConflict:
        """Resolve a recorded conflict with local-wins or remote-wins.

        Raises:
            ConfigurationError: If no usable token is stored.
            InvalidResolutionError: If the strategy is not a manual choice.
        """
        with self.engine() as engine:
            return engine.resolve_conflict(conflict_id, strategy)

    # === State queries ===

    def list_mappings(self) -> list[SnippetGistMapping]:
        return self._db.list_mappings()

    def delete_mapping(self, mapping_id: int) -> bool:
        """Unlink a snippet from its gist. Neither side is deleted."""
        deleted = self._db.delete_mapping(mapping_id)
        if deleted:
            logger.info("Deleted mapping %d", mapping_id)
        return deleted

    def list_conflicts(self, resolved: bool = False) -> list[SyncConflict]:
        return self._db.list_conflicts(resolved=resolved)

    def list_logs(self, limit: int | None = None) -> list[SyncLogEntry]:
        return self._db.list_logs(limit)
