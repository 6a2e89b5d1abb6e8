"""Core module - Shared model, checksums, crypto and configuration."""

from snipsync.core.checksum import gist_checksum, snippet_checksum
from snipsync.core.config import (
    DEFAULT_SYNC_INTERVAL_MINUTES,
    MIN_SYNC_INTERVAL_MINUTES,
    GistConfig,
)
from snipsync.core.crypto import (
    DecryptionError,
    decrypt_value,
    derive_key,
    encrypt_value,
    generate_salt,
)
from snipsync.core.snippet import DEFAULT_LANGUAGE, Folder, Snippet, SnippetFile, Tag
from snipsync.core.types import (
    EnableAllResult,
    OperationStatus,
    SyncDirection,
    SyncOperation,
    SyncResult,
    SyncStatus,
)

__all__ = [
    # Checksums
    "gist_checksum",
    "snippet_checksum",
    # Config
    "DEFAULT_SYNC_INTERVAL_MINUTES",
    "GistConfig",
    "MIN_SYNC_INTERVAL_MINUTES",
    # Crypto
    "DecryptionError",
    "decrypt_value",
    "derive_key",
    "encrypt_value",
    "generate_salt",
    # Snippet model
    "DEFAULT_LANGUAGE",
    "Folder",
    "Snippet",
    "SnippetFile",
    "Tag",
    # Types
    "EnableAllResult",
    "OperationStatus",
    "SyncDirection",
    "SyncOperation",
    "SyncResult",
    "SyncStatus",
]
