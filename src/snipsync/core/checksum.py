"""Content fingerprints for change detection.

Both sides of a mapping are fingerprinted with SHA-256 over a canonical
JSON document. Files are sorted by filename before hashing so that
storage order never changes the digest.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from snipsync.core.snippet import Snippet
    from snipsync.gist.client import Gist


def _digest(data: dict[str, Any]) -> str:
    payload = json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def snippet_checksum(snippet: Snippet) -> str:
    """Compute the fingerprint of a snippet's synchronizable content.

    Covers title, description, public flag and every file's
    filename, content and language.

    Args:
        snippet: Local snippet.

    Returns:
        Hex-encoded SHA-256 digest (64 characters).
    """
    files = sorted(snippet.files, key=lambda f: f.filename)
    return _digest(
        {
            "title": snippet.title,
            "description": snippet.description,
            "is_public": snippet.is_public,
            "files": [
                {"filename": f.filename, "content": f.content, "language": f.language}
                for f in files
            ],
        }
    )


def gist_checksum(gist: Gist) -> str:
    """Compute the fingerprint of a gist's synchronizable content.

    Covers description, public flag and every file's name and content.

    Args:
        gist: Remote gist.

    Returns:
        Hex-encoded SHA-256 digest (64 characters).
    """
    return _digest(
        {
            "description": gist.description,
            "public": gist.public,
            "files": [
                {"filename": name, "content": gist.files[name].content}
                for name in sorted(gist.files)
            ],
        }
    )
