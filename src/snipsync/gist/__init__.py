"""Gist module - API client and snippet/gist conversion."""

from snipsync.gist.client import (
    AuthenticationError,
    Gist,
    GistAPIError,
    GistClient,
    GistFile,
    GistRequest,
    NotFoundError,
    RateLimitError,
)
from snipsync.gist.converter import (
    GistMetadata,
    get_extension_for_language,
    get_language_from_filename,
    gist_to_snippet,
    sanitize_filename,
    snippet_to_gist_request,
)

__all__ = [
    # Client
    "AuthenticationError",
    "Gist",
    "GistAPIError",
    "GistClient",
    "GistFile",
    "GistRequest",
    "NotFoundError",
    "RateLimitError",
    # Converter
    "GistMetadata",
    "get_extension_for_language",
    "get_language_from_filename",
    "gist_to_snippet",
    "sanitize_filename",
    "snippet_to_gist_request",
]
