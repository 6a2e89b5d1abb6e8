"""Local snippet model.

These dataclasses describe the shape of a snippet as exposed by the
snippet store. The sync engine reads and writes snippets only through
this model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

DEFAULT_LANGUAGE = "plaintext"


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class SnippetFile:
    """A single named file of a snippet."""

    filename: str
    content: str
    language: str = DEFAULT_LANGUAGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "content": self.content,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnippetFile:
        return cls(
            filename=data["filename"],
            content=data.get("content", ""),
            language=data.get("language") or DEFAULT_LANGUAGE,
        )


@dataclass
class Tag:
    """A tag attached to a snippet."""

    name: str
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        return cls(name=data["name"], id=data.get("id"))


@dataclass
class Folder:
    """A folder a snippet belongs to."""

    name: str
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Folder:
        return cls(name=data["name"], id=data.get("id"))


@dataclass
class Snippet:
    """A locally owned code snippet.

    Attributes:
        id: Stable local identifier.
        title: Snippet title.
        description: Free-form description (local only).
        content: Content of the primary file (legacy single-file snippets).
        language: Language of the primary file.
        is_public: Whether the snippet (and its gist) is public.
        is_favorite: Favorite flag.
        is_archived: Archived flag.
        files: Named files of the snippet.
        tags: Tags attached to the snippet.
        folders: Folders containing the snippet.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    id: str
    title: str
    description: str = ""
    content: str = ""
    language: str = DEFAULT_LANGUAGE
    is_public: bool = False
    is_favorite: bool = False
    is_archived: bool = False
    files: list[SnippetFile] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    folders: list[Folder] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "language": self.language,
            "is_public": self.is_public,
            "is_favorite": self.is_favorite,
            "is_archived": self.is_archived,
            "files": [f.to_dict() for f in self.files],
            "tags": [t.to_dict() for t in self.tags],
            "folders": [f.to_dict() for f in self.folders],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snippet:
        """Create from a dictionary produced by to_dict()."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            content=data.get("content", ""),
            language=data.get("language") or DEFAULT_LANGUAGE,
            is_public=bool(data.get("is_public", False)),
            is_favorite=bool(data.get("is_favorite", False)),
            is_archived=bool(data.get("is_archived", False)),
            files=[SnippetFile.from_dict(f) for f in data.get("files", [])],
            tags=[Tag.from_dict(t) for t in data.get("tags", [])],
            folders=[Folder.from_dict(f) for f in data.get("folders", [])],
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )
