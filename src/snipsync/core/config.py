"""Shared configuration classes for snipsync.

This module defines connection settings for the gist API and the
limits enforced on the persisted sync configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

MIN_SYNC_INTERVAL_MINUTES = 5
DEFAULT_SYNC_INTERVAL_MINUTES = 15


@dataclass
class GistConfig:
    """Configuration for connecting to the gist API.

    Attributes:
        token: Bearer token of the GitHub account.
        api_url: Base URL of the API (default "https://api.github.com").
        timeout: Overall per-request timeout in seconds.
        api_version: Value of the X-GitHub-Api-Version header.
    """

    token: str
    api_url: str = GITHUB_API_URL
    timeout: float = 30.0
    api_version: str = GITHUB_API_VERSION

    def __post_init__(self) -> None:
        """Normalize API URL."""
        self.api_url = self.api_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the API is reached over HTTPS.
        """
        return self.api_url.startswith("https://")
