"""Conversion between local snippets and gists.

A gist only carries a description and a set of named text files. The
snippet fields the gist cannot hold natively (id, folders, flags and tags
beyond the topic limit) travel in a versioned metadata block appended to
the description:

    My snippet title
    [snipo:{"version":"1.0","snipo_id":"...","is_favorite":false,...}]

Gists created outside snipsync have no block; their metadata then
defaults to empty values.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any

from snipsync.core.snippet import DEFAULT_LANGUAGE, Folder, Snippet, SnippetFile
from snipsync.gist.client import Gist, GistRequest

logger = logging.getLogger(__name__)

METADATA_VERSION = "1.0"
METADATA_PREFIX = "\n[snipo:"
METADATA_SUFFIX = "]"
# Written by older releases as a separate gist file
LEGACY_METADATA_FILENAME = ".snipo-metadata.json"
MAX_GIST_TOPICS = 20

DEFAULT_BASENAME = "snippet"

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|\x00-\x1f\x7f]')

LANGUAGE_EXTENSIONS: dict[str, str] = {
    "go": "go",
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "csharp": "cs",
    "ruby": "rb",
    "php": "php",
    "rust": "rs",
    "swift": "swift",
    "kotlin": "kt",
    "scala": "scala",
    "shell": "sh",
    "bash": "sh",
    "sql": "sql",
    "html": "html",
    "css": "css",
    "json": "json",
    "yaml": "yaml",
    "xml": "xml",
    "markdown": "md",
}

EXTENSION_LANGUAGES: dict[str, str] = {
    "go": "go",
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "cs": "csharp",
    "rb": "ruby",
    "php": "php",
    "rs": "rust",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "sh": "shell",
    "bash": "bash",
    "sql": "sql",
    "html": "html",
    "css": "css",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "xml": "xml",
    "md": "markdown",
    "txt": "plaintext",
}


@dataclass
class GistMetadata:
    """Snippet fields embedded in a gist description."""

    snipo_id: str = ""
    version: str = METADATA_VERSION
    folders: list[Folder] = field(default_factory=list)
    tags_overflow: list[str] = field(default_factory=list)
    is_favorite: bool = False
    is_archived: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "snipo_id": self.snipo_id,
            "is_favorite": self.is_favorite,
            "is_archived": self.is_archived,
        }
        if self.folders:
            data["folders"] = [f.to_dict() for f in self.folders]
        if self.tags_overflow:
            data["tags_overflow"] = list(self.tags_overflow)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GistMetadata:
        """Create from a decoded block.

        Raises:
            ValueError: If the block does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError("metadata block is not an object")
        try:
            return cls(
                snipo_id=str(data.get("snipo_id") or ""),
                version=str(data.get("version") or METADATA_VERSION),
                folders=[Folder.from_dict(f) for f in data.get("folders") or []],
                tags_overflow=[str(t) for t in data.get("tags_overflow") or []],
                is_favorite=bool(data.get("is_favorite", False)),
                is_archived=bool(data.get("is_archived", False)),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed metadata block: {e}") from e

    def encode(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


def get_extension_for_language(language: str) -> str:
    """Return the file extension for a language (unknown -> "txt")."""
    return LANGUAGE_EXTENSIONS.get(language.lower(), "txt")


def get_language_from_filename(filename: str) -> str:
    """Infer a language from a filename extension (unknown -> "plaintext")."""
    ext = posixpath.splitext(filename)[1].lower().lstrip(".")
    if not ext:
        return DEFAULT_LANGUAGE
    return EXTENSION_LANGUAGES.get(ext, DEFAULT_LANGUAGE)


def sanitize_filename(name: str) -> str:
    """Strip characters that are unsafe in a file name.

    Args:
        name: Candidate name (typically a snippet title).

    Returns:
        The sanitized name, possibly empty.
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", name)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip(" .")


def _synthetic_filename(snippet: Snippet) -> str:
    ext = get_extension_for_language(snippet.language or DEFAULT_LANGUAGE)
    base = sanitize_filename(snippet.title) or DEFAULT_BASENAME
    return f"{base}.{ext}"


def build_description(title: str, metadata: GistMetadata) -> str:
    """Compose a gist description from a title and a metadata block."""
    return f"{title}{METADATA_PREFIX}{metadata.encode()}{METADATA_SUFFIX}"


def parse_description(description: str) -> tuple[str, GistMetadata | None]:
    """Split a gist description into title and metadata.

    A missing or malformed block yields (description, None).
    """
    index = description.rfind(METADATA_PREFIX)
    if index < 0 or not description.endswith(METADATA_SUFFIX):
        return description, None

    encoded = description[index + len(METADATA_PREFIX) : -len(METADATA_SUFFIX)]
    try:
        metadata = GistMetadata.from_dict(json.loads(encoded))
    except ValueError as e:
        logger.warning("Ignoring malformed gist metadata: %s", e)
        return description, None
    return description[:index], metadata


def _parse_legacy_metadata(content: str) -> GistMetadata | None:
    try:
        return GistMetadata.from_dict(json.loads(content))
    except ValueError as e:
        logger.warning("Ignoring malformed legacy metadata file: %s", e)
        return None


def snippet_to_gist_request(snippet: Snippet) -> GistRequest:
    """Convert a snippet to a gist create/update request.

    Args:
        snippet: Local snippet.

    Returns:
        Request with embedded metadata and one file per snippet file (or a
        single synthetic file when the snippet has none).
    """
    if snippet.files:
        files = {f.filename: f.content for f in snippet.files}
    else:
        files = {_synthetic_filename(snippet): snippet.content}

    metadata = GistMetadata(
        snipo_id=snippet.id,
        folders=list(snippet.folders),
        is_favorite=snippet.is_favorite,
        is_archived=snippet.is_archived,
        tags_overflow=[t.name for t in snippet.tags[MAX_GIST_TOPICS:]],
    )

    return GistRequest(
        description=build_description(snippet.title, metadata),
        public=snippet.is_public,
        files=files,
    )


def gist_to_snippet(gist: Gist, existing: Snippet | None = None) -> Snippet:
    """Convert a gist to a snippet.

    Args:
        gist: Remote gist.
        existing: The linked local snippet, if any. Its identity, creation
            time, description and tags are preserved, and files that keep
            their name keep their language.

    Returns:
        The snippet as described by the gist.
    """
    title, metadata = parse_description(gist.description)

    known_languages = {}
    if existing is not None:
        known_languages = {f.filename: f.language for f in existing.files}

    files: list[SnippetFile] = []
    for filename in sorted(gist.files):
        content = gist.files[filename].content
        if filename == LEGACY_METADATA_FILENAME:
            if metadata is None:
                metadata = _parse_legacy_metadata(content)
            continue
        language = known_languages.get(filename) or get_language_from_filename(filename)
        files.append(SnippetFile(filename=filename, content=content, language=language))

    snippet = Snippet(
        id="",
        title=title,
        is_public=gist.public,
        files=files,
        updated_at=gist.updated_at,
    )

    if metadata is not None:
        snippet.folders = list(metadata.folders)
        snippet.is_favorite = metadata.is_favorite
        snippet.is_archived = metadata.is_archived
        snippet.id = metadata.snipo_id

    if existing is not None:
        snippet.id = existing.id
        snippet.created_at = existing.created_at
        snippet.description = existing.description
        snippet.tags = list(existing.tags)

    if files:
        snippet.content = files[0].content
        snippet.language = files[0].language
    else:
        snippet.content = ""
        snippet.language = DEFAULT_LANGUAGE

    return snippet
