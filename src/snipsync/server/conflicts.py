"""Conflict resolution strategies.

A conflict exists when both the snippet and its gist changed since the
last successful sync. The configured strategy decides what happens:

- manual: record the conflict and wait for an explicit choice
- local-wins: push the snippet over the gist
- remote-wins: pull the gist over the snippet
- newest-wins: keep whichever side was modified last (ties keep local)

Only local-wins and remote-wins can be chosen when resolving a recorded
conflict by hand. newest-wins needs both modification times, which are
only compared during an automatic pass.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum, auto


class ConflictSide(Enum):
    """Side whose content is kept."""

    LOCAL = auto()
    REMOTE = auto()


class ConflictStrategy(str, Enum):
    """Configured conflict resolution strategy."""

    MANUAL = "manual"
    LOCAL_WINS = "local-wins"
    REMOTE_WINS = "remote-wins"
    NEWEST_WINS = "newest-wins"

    @classmethod
    def parse(cls, value: str | ConflictStrategy) -> ConflictStrategy:
        """Parse a strategy name.

        Raises:
            ValueError: If the name is not a known strategy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as e:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown conflict strategy {value!r} (expected one of: {choices})") from e

    @property
    def is_automatic(self) -> bool:
        """Whether a pass resolves conflicts without user input."""
        return self is not ConflictStrategy.MANUAL

    @property
    def is_manual_choice(self) -> bool:
        """Whether the strategy can resolve a recorded conflict by hand."""
        return self in (ConflictStrategy.LOCAL_WINS, ConflictStrategy.REMOTE_WINS)


def _comparable(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def choose_side(
    strategy: ConflictStrategy,
    local_updated_at: datetime | None = None,
    remote_updated_at: datetime | None = None,
) -> ConflictSide | None:
    """Pick the side that wins a conflict.

    Args:
        strategy: Strategy to apply.
        local_updated_at: Modification time of the snippet.
        remote_updated_at: Modification time of the gist.

    Returns:
        The winning side, or None when the strategy is manual.
    """
    if strategy is ConflictStrategy.MANUAL:
        return None
    if strategy is ConflictStrategy.LOCAL_WINS:
        return ConflictSide.LOCAL
    if strategy is ConflictStrategy.REMOTE_WINS:
        return ConflictSide.REMOTE

    local = _comparable(local_updated_at)
    remote = _comparable(remote_updated_at)
    if remote is None:
        return ConflictSide.LOCAL
    if local is None:
        return ConflictSide.REMOTE
    return ConflictSide.REMOTE if remote > local else ConflictSide.LOCAL
