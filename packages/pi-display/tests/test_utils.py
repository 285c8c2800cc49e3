"""Tests for pi.display.utils -- column widths of rendered text."""

from __future__ import annotations

from pi.display.utils import cluster_width, pad_to_width, visible_width


# ---------------------------------------------------------------------------
# visible_width
# ---------------------------------------------------------------------------


class TestVisibleWidth:
    def test_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty(self) -> None:
        assert visible_width("") == 0

    def test_escape_sequences_take_no_columns(self) -> None:
        assert visible_width("\x1b[1mhi\x1b[0m") == 2
        assert visible_width("\x1b]8;;https://x.test\x07link\x1b]8;;\x07") == 4

    def test_wide_characters(self) -> None:
        assert visible_width("世界") == 4

    def test_combining_mark(self) -> None:
        assert visible_width("e\u0301") == 1

    def test_tab(self) -> None:
        assert visible_width("\t") == 3

    def test_zwj_emoji_sequence(self) -> None:
        assert visible_width("\U0001F468\u200d\U0001F469") == 2


# ---------------------------------------------------------------------------
# cluster_width / pad_to_width
# ---------------------------------------------------------------------------


class TestClusterWidth:
    def test_empty_cluster(self) -> None:
        assert cluster_width("") == 0

    def test_control_character(self) -> None:
        assert cluster_width("\x00") == 0

    def test_flag(self) -> None:
        assert cluster_width("\U0001F1EF\U0001F1F5") == 2


class TestPadToWidth:
    def test_pads_with_spaces(self) -> None:
        assert pad_to_width("a", 3) == "a  "

    def test_wide_text(self) -> None:
        assert pad_to_width("世", 3) == "世 "

    def test_already_wide_enough(self) -> None:
        assert pad_to_width("abcd", 2) == "abcd"
