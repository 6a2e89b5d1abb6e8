"""HTTP client for the GitHub Gist API.

This module provides:
- GistClient: HTTP client for gist CRUD operations and account lookup
- Gist, GistFile, GistRequest: Gist payload types
- GistAPIError and subclasses: the single failure type surfaced to callers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from snipsync.core.config import GistConfig

logger = logging.getLogger(__name__)


class GistAPIError(Exception):
    """Base exception for gist API errors.

    Transport failures, non-2xx responses and undecodable bodies are all
    reported as this type (or a subclass).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GistAPIError):
    """Token is missing, invalid or expired."""


class NotFoundError(GistAPIError):
    """Gist not found (or not visible to the token)."""


class RateLimitError(GistAPIError):
    """Request budget exhausted."""


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class GistFile:
    """A file of a gist."""

    content: str
    filename: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GistFile:
        """Create from API response dictionary."""
        return cls(content=data.get("content") or "", filename=data.get("filename"))


@dataclass
class Gist:
    """Gist as returned by the API."""

    id: str
    description: str
    public: bool
    files: dict[str, GistFile]
    url: str = ""
    html_url: str = ""
    owner: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Gist:
        """Create from API response dictionary."""
        owner = data.get("owner") or {}
        return cls(
            id=data["id"],
            description=data.get("description") or "",
            public=bool(data.get("public", False)),
            files={
                name: GistFile.from_dict(f or {})
                for name, f in (data.get("files") or {}).items()
            },
            url=data.get("url", ""),
            html_url=data.get("html_url", ""),
            owner=owner.get("login"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary (used for conflict snapshots)."""
        return {
            "id": self.id,
            "url": self.url,
            "html_url": self.html_url,
            "description": self.description,
            "public": self.public,
            "files": {
                name: {"filename": name, "content": f.content}
                for name, f in self.files.items()
            },
            "owner": {"login": self.owner} if self.owner else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class GistRequest:
    """Body of a create or update request.

    Attributes:
        description: Gist description.
        public: Visibility (only honored on create by the API).
        files: Mapping of filename to content.
        deleted_files: Filenames to remove on update.
    """

    description: str
    public: bool
    files: dict[str, str]
    deleted_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON request body."""
        files: dict[str, Any] = {
            name: {"content": content} for name, content in self.files.items()
        }
        for name in self.deleted_files:
            if name not in files:
                files[name] = None
        return {"description": self.description, "public": self.public, "files": files}


class GistClient:
    """HTTP client for the GitHub Gist API."""

    def __init__(self, config: GistConfig) -> None:
        """Initialize the gist client.

        Args:
            config: Connection settings (token, base URL, timeout).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.api_url,
            timeout=config.timeout,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": config.api_version,
            },
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> GistClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping transport failures to GistAPIError."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Gist API %s %s failed: %s", method, url, e)
            raise GistAPIError(f"Request failed: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        status = response.status_code
        if status < 400:
            return response

        detail = self._error_detail(response)
        if status == 401:
            raise AuthenticationError(f"Invalid or expired token: {detail}", status)
        if status == 404:
            raise NotFoundError(f"Gist not found: {detail}", status)
        if status == 429 or (
            status == 403 and response.headers.get("x-ratelimit-remaining") == "0"
        ):
            raise RateLimitError(f"Rate limit exceeded: {detail}", status)
        raise GistAPIError(f"Unexpected status code {status}: {detail}", status)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "no details"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text or "no details"

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GistAPIError("Failed to decode response", response.status_code) from e

    def _gist(self, response: httpx.Response) -> Gist:
        data = self._json(response)
        try:
            return Gist.from_dict(data)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise GistAPIError("Unexpected gist payload", response.status_code) from e

    # === Gist operations ===

    def create_gist(self, request: GistRequest) -> Gist:
        """Create a new gist.

        Args:
            request: Description, visibility and files.

        Returns:
            The created gist.
        """
        response = self._request("POST", "/gists", json=request.to_dict())
        gist = self._gist(response)
        logger.debug("Created gist %s", gist.id)
        return gist

    def get_gist(self, gist_id: str) -> Gist:
        """Get a gist by ID.

        Raises:
            NotFoundError: If gist not found.
        """
        return self._gist(self._request("GET", f"/gists/{gist_id}"))

    def update_gist(self, gist_id: str, request: GistRequest) -> Gist:
        """Update an existing gist.

        Args:
            gist_id: Gist ID.
            request: New description and files. Filenames listed in
                request.deleted_files are removed.

        Returns:
            The updated gist.
        """
        response = self._request("PATCH", f"/gists/{gist_id}", json=request.to_dict())
        return self._gist(response)

    def delete_gist(self, gist_id: str) -> None:
        """Delete a gist."""
        self._request("DELETE", f"/gists/{gist_id}")

    def list_gists(self) -> list[Gist]:
        """List gists of the authenticated user (first page)."""
        data = self._json(self._request("GET", "/gists"))
        if not isinstance(data, list):
            raise GistAPIError("Unexpected gist list payload")
        return [Gist.from_dict(g) for g in data]

    # === Account operations ===

    def get_authenticated_user(self) -> str:
        """Return the login of the token's owner."""
        data = self._json(self._request("GET", "/user"))
        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            raise GistAPIError("Response did not include a login")
        return str(login)
