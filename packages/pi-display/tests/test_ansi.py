"""Tests for pi.display.ansi and ANSI-aware plain text insertion."""

from __future__ import annotations

from pi.display.ansi import ANSI_INVISIBLE, AnsiState, apply_ansi, handle_control_codes
from pi.display.document import FACE, INVISIBLE, Document
from pi.display.renderers.text import insert_ansi_text


# ---------------------------------------------------------------------------
# AnsiState
# ---------------------------------------------------------------------------


class TestAnsiState:
    def test_attributes(self) -> None:
        state = AnsiState()
        state.process("\x1b[1;4m")
        assert state.faces() == ("bold", "underline")
        state.process("\x1b[22m")
        assert state.faces() == ("underline",)

    def test_reset(self) -> None:
        state = AnsiState()
        state.process("\x1b[3;31m")
        state.process("\x1b[m")
        assert state.faces() == ()

    def test_basic_and_bright_colors(self) -> None:
        state = AnsiState()
        state.process("\x1b[31;44m")
        assert state.faces() == ("fg:red", "bg:blue")
        state.process("\x1b[92;39m")
        assert state.faces() == ("bg:blue",)
        state.process("\x1b[103m")
        assert state.faces() == ("bg:bright-yellow",)

    def test_extended_colors(self) -> None:
        state = AnsiState()
        state.process("\x1b[38;5;208m")
        assert state.faces() == ("fg:color-208",)
        state.process("\x1b[48;2;255;0;16m")
        assert state.faces() == ("fg:color-208", "bg:#ff0010")

    def test_non_sgr_sequences_are_ignored(self) -> None:
        state = AnsiState()
        state.process("\x1b[1m")
        state.process("\x1b[2J")
        assert state.faces() == ("bold",)


# ---------------------------------------------------------------------------
# Escape sequences in a document
# ---------------------------------------------------------------------------


class TestApplyAnsi:
    def test_escapes_hidden_and_faces_applied(self) -> None:
        raw = "\x1b[1mbold\x1b[0m plain"
        doc = Document()
        insert_ansi_text(doc, raw)
        assert doc.text == raw
        assert doc.visible_text() == "bold plain"
        assert doc.get(0, INVISIBLE) == ANSI_INVISIBLE
        assert doc.get(4, FACE) == ("bold",)
        assert doc.get(12, FACE) is None

    def test_faces_are_prepended_to_existing(self) -> None:
        doc = Document()
        doc.insert("\x1b[3mx", {FACE: ("output",)})
        apply_ansi(doc, 0, len(doc))
        assert doc.get(4, FACE) == ("italic", "output")

    def test_state_carries_across_chunks(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "\x1b[3mit")
        insert_ansi_text(doc, "more")
        assert doc.visible_text() == "itmore"
        assert doc.get(len(doc) - 1, FACE) == ("italic",)

    def test_escape_split_across_chunks(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "a\x1b[3")
        insert_ansi_text(doc, "1mred")
        assert doc.text == "a\x1b[31mred"
        assert doc.visible_text() == "ared"
        assert doc.get(len(doc) - 1, FACE) == ("fg:red",)

    def test_osc_sequences_are_hidden(self) -> None:
        rings = []
        raw = "\x1b]0;title\x07text"
        doc = Document()
        insert_ansi_text(doc, raw, bell=lambda: rings.append(True))
        assert doc.visible_text() == "text"
        assert doc.text == raw
        assert rings == []

    def test_color_survives_line_overwrite(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "\x1b[31mred\rblue")
        assert doc.text == "blue"
        assert doc.get(0, FACE) == ("fg:red",)


# ---------------------------------------------------------------------------
# Control codes
# ---------------------------------------------------------------------------


class TestControlCodes:
    def test_carriage_return_overwrites_line(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "abc\rdef")
        assert doc.text == "def"

    def test_carriage_return_only_affects_current_line(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "keep\nabc\rxy")
        assert doc.text == "keep\nxy"

    def test_crlf_within_chunk(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "a\r\nb")
        assert doc.text == "a\nb"

    def test_trailing_carriage_return_waits_for_next_chunk(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "abc\r")
        assert doc.text == "abc\r"
        assert doc.visible_text() == "abc"
        insert_ansi_text(doc, "\ndef")
        assert doc.text == "abc\ndef"

    def test_trailing_carriage_return_then_text(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "10%\r")
        insert_ansi_text(doc, "20%")
        assert doc.text == "20%"

    def test_backspace(self) -> None:
        doc = Document()
        insert_ansi_text(doc, "abc\bd")
        assert doc.text == "abd"

    def test_bell(self) -> None:
        rings = []
        doc = Document()
        insert_ansi_text(doc, "a\x07b", bell=lambda: rings.append(True))
        assert doc.text == "ab"
        assert rings == [True]

    def test_returns_new_end(self) -> None:
        doc = Document("xx\n")
        doc.insert("abc\rd")
        assert handle_control_codes(doc, 3, 8) == 4
        assert doc.text == "xx\nd"
