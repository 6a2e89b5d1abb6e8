"""Tests for snippet/gist conversion."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from snipsync.core.snippet import Folder, Snippet, SnippetFile, Tag
from snipsync.gist.client import Gist, GistFile
from snipsync.gist.converter import (
    LEGACY_METADATA_FILENAME,
    GistMetadata,
    build_description,
    get_extension_for_language,
    get_language_from_filename,
    gist_to_snippet,
    parse_description,
    sanitize_filename,
    snippet_to_gist_request,
)


def make_snippet(**overrides: object) -> Snippet:
    """Create a snippet with two files, a tag and a folder."""
    fields: dict[str, object] = {
        "id": "snip-1",
        "title": "Deploy script",
        "description": "Local only",
        "is_public": True,
        "is_favorite": True,
        "files": [
            SnippetFile(filename="deploy.sh", content="echo deploy\n", language="shell"),
            SnippetFile(filename="README.md", content="# Deploy\n", language="markdown"),
        ],
        "tags": [Tag(name="ops", id=1)],
        "folders": [Folder(name="Work", id=3)],
        "created_at": datetime(2024, 5, 1, tzinfo=UTC),
        "updated_at": datetime(2024, 5, 2, tzinfo=UTC),
    }
    fields.update(overrides)
    return Snippet(**fields)  # type: ignore[arg-type]


def request_to_gist(request_description: str, files: dict[str, str], public: bool = False) -> Gist:
    """Build the gist the API would return for a request."""
    return Gist(
        id="g1",
        description=request_description,
        public=public,
        files={name: GistFile(content=c, filename=name) for name, c in files.items()},
        updated_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


class TestLanguageTables:
    """Tests for extension/language helpers."""

    def test_extension_for_known_language(self) -> None:
        """Known languages map to their usual extension."""
        assert get_extension_for_language("python") == "py"
        assert get_extension_for_language("Go") == "go"
        assert get_extension_for_language("markdown") == "md"

    def test_extension_for_unknown_language(self) -> None:
        """Unknown languages fall back to txt."""
        assert get_extension_for_language("brainfuck") == "txt"

    def test_language_from_filename(self) -> None:
        """Extensions map to languages, case-insensitively."""
        assert get_language_from_filename("main.go") == "go"
        assert get_language_from_filename("app.YML") == "yaml"
        assert get_language_from_filename("lib.cc") == "cpp"

    def test_language_from_unknown_or_missing_extension(self) -> None:
        """Unknown or missing extensions give plaintext."""
        assert get_language_from_filename("data.xyz") == "plaintext"
        assert get_language_from_filename("Makefile") == "plaintext"


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_strips_unsafe_characters(self) -> None:
        """Path separators and reserved characters are removed."""
        assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j') == "abcdefghij"

    def test_strips_control_characters_and_edges(self) -> None:
        """Control characters and surrounding spaces/dots are removed."""
        assert sanitize_filename("  ..My  scr\tipt\x00.. ") == "My script"

    def test_empty_result(self) -> None:
        """A title made only of unsafe characters sanitizes to empty."""
        assert sanitize_filename("///") == ""


class TestDescription:
    """Tests for the embedded metadata block."""

    def test_build_and_parse(self) -> None:
        """A built description should parse back to title and metadata."""
        metadata = GistMetadata(snipo_id="abc", is_archived=True, folders=[Folder(name="F", id=1)])
        title, parsed = parse_description(build_description("My title", metadata))
        assert title == "My title"
        assert parsed == metadata

    def test_block_carries_schema_version(self) -> None:
        """The block is versioned."""
        description = build_description("t", GistMetadata(snipo_id="abc"))
        block = description.split("\n[snipo:", 1)[1][:-1]
        assert json.loads(block)["version"] == "1.0"

    def test_no_block(self) -> None:
        """Descriptions from other tools have no metadata."""
        assert parse_description("Just a gist") == ("Just a gist", None)

    def test_malformed_block(self) -> None:
        """A malformed block degrades to no metadata."""
        description = "Title\n[snipo:{not json}]"
        assert parse_description(description) == (description, None)

    def test_title_containing_brackets(self) -> None:
        """Only the last marker splits the description."""
        metadata = GistMetadata(snipo_id="x")
        description = build_description("Use [snipo: tags] wisely", metadata)
        title, parsed = parse_description(description)
        assert title == "Use [snipo: tags] wisely"
        assert parsed is not None and parsed.snipo_id == "x"


class TestSnippetToGistRequest:
    """Tests for local to remote conversion."""

    def test_one_remote_file_per_local_file(self) -> None:
        """Every snippet file becomes a gist file."""
        request = snippet_to_gist_request(make_snippet())
        assert request.files == {"deploy.sh": "echo deploy\n", "README.md": "# Deploy\n"}
        assert request.public is True

    def test_description_embeds_metadata(self) -> None:
        """Title and metadata travel in the description."""
        request = snippet_to_gist_request(make_snippet())
        title, metadata = parse_description(request.description)
        assert title == "Deploy script"
        assert metadata is not None
        assert metadata.snipo_id == "snip-1"
        assert metadata.is_favorite is True
        assert metadata.folders == [Folder(name="Work", id=3)]
        assert metadata.tags_overflow == []

    def test_synthetic_file_from_title(self) -> None:
        """A snippet without files gets one file named after its title."""
        snippet = make_snippet(files=[], title="My: script?", content="x = 1", language="python")
        request = snippet_to_gist_request(snippet)
        assert request.files == {"My script.py": "x = 1"}

    def test_synthetic_file_fallback_name(self) -> None:
        """An unusable title falls back to a generic name."""
        snippet = make_snippet(files=[], title="???", content="", language="unknown")
        request = snippet_to_gist_request(snippet)
        assert list(request.files) == ["snippet.txt"]

    def test_tags_beyond_topic_limit_overflow(self) -> None:
        """Only tags past the first 20 are recorded in the block."""
        tags = [Tag(name=f"t{i}") for i in range(23)]
        request = snippet_to_gist_request(make_snippet(tags=tags))
        _, metadata = parse_description(request.description)
        assert metadata is not None
        assert metadata.tags_overflow == ["t20", "t21", "t22"]


class TestGistToSnippet:
    """Tests for remote to local conversion."""

    def test_gist_without_metadata(self) -> None:
        """Foreign gists convert with empty metadata."""
        gist = request_to_gist("Some gist", {"b.txt": "B", "a.js": "A"})
        snippet = gist_to_snippet(gist)

        assert snippet.id == ""
        assert snippet.title == "Some gist"
        assert [f.filename for f in snippet.files] == ["a.js", "b.txt"]
        assert [f.language for f in snippet.files] == ["javascript", "plaintext"]
        assert snippet.content == "A"
        assert snippet.language == "javascript"
        assert snippet.folders == []
        assert snippet.is_favorite is False

    def test_id_from_metadata(self) -> None:
        """Without an existing snippet the id comes from the block."""
        request = snippet_to_gist_request(make_snippet())
        snippet = gist_to_snippet(request_to_gist(request.description, request.files))
        assert snippet.id == "snip-1"
        assert snippet.is_favorite is True
        assert snippet.folders == [Folder(name="Work", id=3)]

    def test_zero_files(self) -> None:
        """A gist with no files gives empty content and plaintext."""
        snippet = gist_to_snippet(request_to_gist("Empty", {}))
        assert snippet.files == []
        assert snippet.content == ""
        assert snippet.language == "plaintext"

    def test_legacy_metadata_file(self) -> None:
        """The legacy metadata file is skipped but read when no block exists."""
        legacy = json.dumps({"version": "1.0", "snipo_id": "old-id", "is_archived": True})
        gist = request_to_gist("Old gist", {LEGACY_METADATA_FILENAME: legacy, "x.py": "x"})
        snippet = gist_to_snippet(gist)

        assert [f.filename for f in snippet.files] == ["x.py"]
        assert snippet.id == "old-id"
        assert snippet.is_archived is True

    def test_only_legacy_file_counts_as_zero_files(self) -> None:
        """Excluding the legacy file can leave no files."""
        gist = request_to_gist("Old gist", {LEGACY_METADATA_FILENAME: "{}"})
        snippet = gist_to_snippet(gist)
        assert snippet.files == []
        assert snippet.language == "plaintext"

    def test_existing_snippet_preserves_identity(self) -> None:
        """Identity, creation time, description and tags are kept."""
        existing = make_snippet()
        gist = request_to_gist("Renamed\n[snipo:{\"snipo_id\":\"other\"}]", {"deploy.sh": "new"})
        snippet = gist_to_snippet(gist, existing)

        assert snippet.id == "snip-1"
        assert snippet.created_at == existing.created_at
        assert snippet.description == "Local only"
        assert snippet.tags == existing.tags
        assert snippet.title == "Renamed"
        assert snippet.updated_at == gist.updated_at

    def test_existing_file_keeps_language(self) -> None:
        """A file that keeps its name keeps its language."""
        existing = make_snippet(
            files=[SnippetFile(filename="notes.txt", content="x", language="markdown")]
        )
        snippet = gist_to_snippet(request_to_gist("t", {"notes.txt": "y"}), existing)
        assert snippet.files[0].language == "markdown"


class TestRoundTrip:
    """Tests for local -> remote -> local conversion."""

    def test_round_trip_preserves_id_title_and_files(self) -> None:
        """Converting out and back keeps id, title and file set."""
        original = make_snippet()
        request = snippet_to_gist_request(original)
        gist = request_to_gist(request.description, request.files, request.public)

        result = gist_to_snippet(gist, original)

        assert result.id == original.id
        assert result.title == original.title
        assert sorted((f.filename, f.content, f.language) for f in result.files) == sorted(
            (f.filename, f.content, f.language) for f in original.files
        )
        assert result.is_public is original.is_public

    def test_round_trip_is_idempotent(self) -> None:
        """A second round trip changes nothing."""
        original = make_snippet()
        request = snippet_to_gist_request(original)
        once = gist_to_snippet(request_to_gist(request.description, request.files), original)

        request2 = snippet_to_gist_request(once)
        twice = gist_to_snippet(request_to_gist(request2.description, request2.files), once)

        assert request2.description == request.description
        assert request2.files == dict(sorted(request.files.items()))
        assert twice == once
