"""Tests for conflict resolution strategies."""

from datetime import UTC, datetime, timedelta

import pytest

from snipsync.server.conflicts import ConflictSide, ConflictStrategy, choose_side

EARLIER = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
LATER = EARLIER + timedelta(minutes=5)


class TestConflictStrategy:
    """Tests for strategy parsing and properties."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("manual", ConflictStrategy.MANUAL),
            ("local-wins", ConflictStrategy.LOCAL_WINS),
            ("remote-wins", ConflictStrategy.REMOTE_WINS),
            ("newest-wins", ConflictStrategy.NEWEST_WINS),
            (" Remote-Wins ", ConflictStrategy.REMOTE_WINS),
        ],
    )
    def test_parse(self, name: str, expected: ConflictStrategy) -> None:
        """Known names parse, ignoring case and surrounding spaces."""
        assert ConflictStrategy.parse(name) is expected

    def test_parse_member(self) -> None:
        """Members pass through unchanged."""
        assert ConflictStrategy.parse(ConflictStrategy.MANUAL) is ConflictStrategy.MANUAL

    def test_parse_unknown(self) -> None:
        """Unknown names are rejected."""
        with pytest.raises(ValueError, match="Unknown conflict strategy"):
            ConflictStrategy.parse("oldest-wins")

    def test_is_automatic(self) -> None:
        """Every strategy but manual resolves without user input."""
        assert not ConflictStrategy.MANUAL.is_automatic
        assert ConflictStrategy.NEWEST_WINS.is_automatic

    def test_is_manual_choice(self) -> None:
        """Only the two side choices can resolve a recorded conflict."""
        assert ConflictStrategy.LOCAL_WINS.is_manual_choice
        assert ConflictStrategy.REMOTE_WINS.is_manual_choice
        assert not ConflictStrategy.MANUAL.is_manual_choice
        assert not ConflictStrategy.NEWEST_WINS.is_manual_choice


class TestChooseSide:
    """Tests for choose_side."""

    def test_manual_picks_nothing(self) -> None:
        """Manual leaves the conflict open."""
        assert choose_side(ConflictStrategy.MANUAL, EARLIER, LATER) is None

    def test_fixed_sides(self) -> None:
        """local-wins and remote-wins ignore timestamps."""
        assert choose_side(ConflictStrategy.LOCAL_WINS, EARLIER, LATER) is ConflictSide.LOCAL
        assert choose_side(ConflictStrategy.REMOTE_WINS, LATER, EARLIER) is ConflictSide.REMOTE

    def test_newest_remote(self) -> None:
        """A newer gist wins."""
        assert choose_side(ConflictStrategy.NEWEST_WINS, EARLIER, LATER) is ConflictSide.REMOTE

    def test_newest_local(self) -> None:
        """A newer snippet wins."""
        assert choose_side(ConflictStrategy.NEWEST_WINS, LATER, EARLIER) is ConflictSide.LOCAL

    def test_newest_tie_keeps_local(self) -> None:
        """Equal timestamps keep the local side."""
        assert choose_side(ConflictStrategy.NEWEST_WINS, EARLIER, EARLIER) is ConflictSide.LOCAL

    def test_newest_missing_timestamps(self) -> None:
        """A missing timestamp loses to a present one."""
        assert choose_side(ConflictStrategy.NEWEST_WINS, EARLIER, None) is ConflictSide.LOCAL
        assert choose_side(ConflictStrategy.NEWEST_WINS, None, EARLIER) is ConflictSide.REMOTE
        assert choose_side(ConflictStrategy.NEWEST_WINS, None, None) is ConflictSide.LOCAL

    def test_naive_timestamps_are_utc(self) -> None:
        """Naive timestamps compare as UTC."""
        naive_later = LATER.replace(tzinfo=None)
        assert choose_side(ConflictStrategy.NEWEST_WINS, EARLIER, naive_later) is ConflictSide.REMOTE
