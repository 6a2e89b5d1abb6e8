"""Tests for core configuration classes."""

from __future__ import annotations

from snipsync.core.config import GITHUB_API_URL, GITHUB_API_VERSION, GistConfig


class TestGistConfig:
    """Tests for GistConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with defaults for everything but the token."""
        config = GistConfig(token="ghp_test")
        assert config.token == "ghp_test"
        assert config.api_url == GITHUB_API_URL
        assert config.timeout == 30.0
        assert config.api_version == GITHUB_API_VERSION

    def test_init_custom_timeout(self) -> None:
        """Should accept custom timeout."""
        config = GistConfig(token="t", timeout=5.0)
        assert config.timeout == 5.0

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from API URL."""
        config = GistConfig(token="t", api_url="https://ghe.example.com/api/v3/")
        assert config.api_url == "https://ghe.example.com/api/v3"

    def test_is_secure(self) -> None:
        """HTTPS URLs are secure, HTTP ones are not."""
        assert GistConfig(token="t").is_secure is True
        assert GistConfig(token="t", api_url="http://localhost:8080").is_secure is False
