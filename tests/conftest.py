"""Shared fixtures for snipsync tests."""

from __future__ import annotations

import copy
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from snipsync.core.snippet import Folder, Snippet, SnippetFile, Tag
from snipsync.gist.client import Gist, GistAPIError, GistFile, GistRequest, NotFoundError
from snipsync.server.database import Database
from snipsync.server.engine import GistSyncEngine


class FakeGistClient:
    """In-memory stand-in for GistClient.

    Records every call as (operation, gist_id) and can be told to fail.
    """

    def __init__(self, username: str = "octocat") -> None:
        self.username = username
        self.gists: dict[str, Gist] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.fail_with: GistAPIError | None = None
        self.closed = False
        self._counter = 0
        self._clock = datetime(2025, 1, 1, tzinfo=UTC)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _record(self, operation: str, gist_id: str | None = None) -> None:
        self.calls.append((operation, gist_id))
        if self.fail_with is not None:
            raise self.fail_with

    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]

    def create_gist(self, request: GistRequest) -> Gist:
        self._record("create")
        self._counter += 1
        gist_id = f"gist{self._counter}"
        now = self._tick()
        gist = Gist(
            id=gist_id,
            description=request.description,
            public=request.public,
            files={name: GistFile(content=c, filename=name) for name, c in request.files.items()},
            url=f"https://api.github.com/gists/{gist_id}",
            html_url=f"https://gist.github.com/{self.username}/{gist_id}",
            owner=self.username,
            created_at=now,
            updated_at=now,
        )
        self.gists[gist_id] = gist
        return copy.deepcopy(gist)

    def get_gist(self, gist_id: str) -> Gist:
        self._record("get", gist_id)
        if gist_id not in self.gists:
            raise NotFoundError("Gist not found: Not Found", 404)
        return copy.deepcopy(self.gists[gist_id])

    def update_gist(self, gist_id: str, request: GistRequest) -> Gist:
        self._record("update", gist_id)
        if gist_id not in self.gists:
            raise NotFoundError("Gist not found: Not Found", 404)
        gist = self.gists[gist_id]
        files = dict(gist.files)
        for name in request.deleted_files:
            files.pop(name, None)
        for name, content in request.files.items():
            files[name] = GistFile(content=content, filename=name)
        gist.description = request.description
        gist.files = files
        gist.updated_at = self._tick()
        return copy.deepcopy(gist)

    def delete_gist(self, gist_id: str) -> None:
        self._record("delete", gist_id)
        self.gists.pop(gist_id, None)

    def list_gists(self) -> list[Gist]:
        self._record("list")
        return [copy.deepcopy(g) for g in self.gists.values()]

    def get_authenticated_user(self) -> str:
        self._record("user")
        return self.username

    def close(self) -> None:
        self.closed = True

    def edit_remote(
        self,
        gist_id: str,
        *,
        files: dict[str, str] | None = None,
        description: str | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        """Simulate an edit made on github.com."""
        gist = self.gists[gist_id]
        if files is not None:
            gist.files = {name: GistFile(content=c, filename=name) for name, c in files.items()}
        if description is not None:
            gist.description = description
        gist.updated_at = updated_at or self._tick()


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def gist_client() -> FakeGistClient:
    """Create an in-memory gist client."""
    return FakeGistClient()


@pytest.fixture
def engine(db: Database, gist_client: FakeGistClient) -> GistSyncEngine:
    """Create a sync engine over the test database and fake client."""
    return GistSyncEngine(db, gist_client)  # type: ignore[arg-type]


@pytest.fixture
def sync_enabled(db: Database) -> None:
    """Store an enabled configuration with manual conflict handling."""
    db.save_config(
        enabled=True,
        github_token_encrypted="encrypted-token",
        github_username="octocat",
        auto_sync_enabled=True,
        sync_interval_minutes=15,
        conflict_strategy="manual",
    )


@pytest.fixture
def make_snippet(db: Database) -> Callable[..., Snippet]:
    """Factory that stores a snippet and returns it."""
    counter = {"n": 0}

    def _make(
        title: str = "Hello",
        files: list[SnippetFile] | None = None,
        **kwargs: object,
    ) -> Snippet:
        counter["n"] += 1
        snippet = Snippet(
            id=str(kwargs.pop("id", f"snip-{counter['n']}")),
            title=title,
            description=str(kwargs.pop("description", "A test snippet")),
            files=files
            if files is not None
            else [SnippetFile(filename="hello.py", content="print('hi')\n", language="python")],
            tags=[Tag(name="demo", id=1)],
            folders=[Folder(name="Work", id=7)],
            **kwargs,  # type: ignore[arg-type]
        )
        return db.create_snippet(snippet)

    return _make


def edit_local(db: Database, snippet_id: str, **changes: object) -> Snippet:
    """Apply changes to a stored snippet through the snippet store."""
    snippet = db.get_snippet(snippet_id)
    for name, value in changes.items():
        setattr(snippet, name, value)
    return db.update_snippet(snippet_id, snippet)


@pytest.fixture
def local_edit() -> Callable[..., Snippet]:
    """Helper fixture exposing edit_local."""
    return edit_local
