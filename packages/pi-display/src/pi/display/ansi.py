"""Control characters and ANSI escape sequences as document attributes.

Escape sequences are never removed from the document: they are marked
invisible and the SGR state they set becomes faces on the text in between, so
the raw bytes can still be copied out. Control characters (CR, BEL, BS) are
applied the way a terminal would.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from pi.display.document import INVISIBLE, Document, Marker

logger = logging.getLogger(__name__)

# Complete escape sequences
ESCAPE_RE = re.compile(
    r"\x1b\[[0-9;?]*[ -/]*[@-~]"  # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"  # APC
)

# Escape sequence cut off by the end of the text
_FRAGMENT_RE = re.compile(r"\x1b(?:\[[0-9;?]*[ -/]*|\][^\x07]*|_[^\x07]*)?\Z")

_CONTROL_RE = re.compile(r"[\r\x07\b]")

ANSI_INVISIBLE = "ansi"
CONTROL_INVISIBLE = "control"

_COLOR_NAMES = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")


# ---------------------------------------------------------------------------
# SGR state
# ---------------------------------------------------------------------------


class AnsiState:
    """Active SGR (Select Graphic Rendition) attributes, expressed as face names."""

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        """Reset all attributes to off."""
        self.bold = False
        self.faint = False
        self.italic = False
        self.underline = False
        self.blink = False
        self.inverse = False
        self.conceal = False
        self.strike = False
        self.fg_color: str | None = None
        self.bg_color: str | None = None

    def process(self, code: str) -> None:
        """Update state from an escape sequence; anything but SGR is ignored."""
        if not code.startswith("\x1b[") or not code.endswith("m"):
            return

        params_str = code[2:-1]
        if not params_str:
            self.clear()
            return

        params = params_str.split(";")
        i = 0
        while i < len(params):
            p = params[i]
            val = int(p) if p.isdigit() else 0

            if val == 0:
                self.clear()
            elif val == 1:
                self.bold = True
            elif val == 2:
                self.faint = True
            elif val == 3:
                self.italic = True
            elif val == 4:
                self.underline = True
            elif val == 5:
                self.blink = True
            elif val == 7:
                self.inverse = True
            elif val == 8:
                self.conceal = True
            elif val == 9:
                self.strike = True
            elif val == 22:
                self.bold = False
                self.faint = False
            elif val == 23:
                self.italic = False
            elif val == 24:
                self.underline = False
            elif val == 25:
                self.blink = False
            elif val == 27:
                self.inverse = False
            elif val == 28:
                self.conceal = False
            elif val == 29:
                self.strike = False
            elif 30 <= val <= 37:
                self.fg_color = _COLOR_NAMES[val - 30]
            elif val in (38, 48):
                color, consumed = _extended_color(params, i)
                if color is not None:
                    if val == 38:
                        self.fg_color = color
                    else:
                        self.bg_color = color
                i += consumed
            elif val == 39:
                self.fg_color = None
            elif 40 <= val <= 47:
                self.bg_color = _COLOR_NAMES[val - 40]
            elif val == 49:
                self.bg_color = None
            elif 90 <= val <= 97:
                self.fg_color = f"bright-{_COLOR_NAMES[val - 90]}"
            elif 100 <= val <= 107:
                self.bg_color = f"bright-{_COLOR_NAMES[val - 100]}"

            i += 1

    def faces(self) -> tuple[str, ...]:
        faces: list[str] = []
        for name in ("bold", "faint", "italic", "underline", "blink", "inverse", "conceal", "strike"):
            if getattr(self, name):
                faces.append(name)
        if self.fg_color is not None:
            faces.append(f"fg:{self.fg_color}")
        if self.bg_color is not None:
            faces.append(f"bg:{self.bg_color}")
        return tuple(faces)


def _extended_color(params: list[str], i: int) -> tuple[str | None, int]:
    """Parse ``38;5;N`` / ``38;2;R;G;B`` at *i*; return the color and extra params consumed."""
    if i + 1 >= len(params):
        return None, 0
    mode = params[i + 1]
    if mode == "5" and i + 2 < len(params):
        return f"color-{params[i + 2]}", 2
    if mode == "2" and i + 4 < len(params):
        try:
            r, g, b = (int(params[i + k]) for k in (2, 3, 4))
        except ValueError:
            return None, 4
        return f"#{r:02x}{g:02x}{b:02x}", 4
    return None, 1


# ---------------------------------------------------------------------------
# ANSI pass
# ---------------------------------------------------------------------------


@dataclass
class AnsiContext:
    """State carried from one ANSI pass to the next in the same document.

    ``fragment`` marks the start of an escape sequence that the previous
    chunk ended in the middle of.
    """

    state: AnsiState = field(default_factory=AnsiState)
    fragment: Marker | None = None


def apply_ansi(
    document: Document,
    begin: int,
    end: int,
    context: AnsiContext | None = None,
) -> AnsiContext:
    """Hide escape sequences in ``[begin, end)`` and face the text between them.

    Returns the context to pass to the next call.
    """
    if context is None:
        context = AnsiContext()
    state = context.state
    text = document.text
    start = begin
    fragment = context.fragment
    if fragment is not None and fragment.position < begin and _FRAGMENT_RE.fullmatch(text, fragment.position, begin):
        start = fragment.position
    context.fragment = None

    segment = start
    for match in ESCAPE_RE.finditer(text, start, end):
        _face_segment(document, segment, match.start(), state)
        document.put(match.start(), match.end(), INVISIBLE, ANSI_INVISIBLE)
        state.process(match.group())
        segment = match.end()

    tail = _FRAGMENT_RE.search(text, segment, end)
    if tail is not None:
        context.fragment = document.marker(tail.start())
        _face_segment(document, segment, tail.start(), state)
    else:
        _face_segment(document, segment, end, state)
    return context


def _face_segment(document: Document, start: int, end: int, state: AnsiState) -> None:
    faces = state.faces()
    if start < end and faces:
        document.add_face(start, end, faces)


# ---------------------------------------------------------------------------
# Control-code pass
# ---------------------------------------------------------------------------


def _log_bell() -> None:
    logger.debug("Bell")


def handle_control_codes(
    document: Document,
    begin: int,
    end: int,
    bell: Callable[[], None] | None = None,
) -> int:
    """Apply CR, BEL and BS in ``[begin, end)`` as a terminal would; return the new end.

    A CR at the end of the range is only hidden, since the next chunk may
    start with the LF that completes it. A CR just before *begin* is
    therefore rescanned.
    """
    bell = bell or _log_bell
    stop = document.marker(end)
    pos = begin - 1 if begin > 0 and document.char_at(begin - 1) == "\r" else begin
    while True:
        found = _CONTROL_RE.search(document.text, pos, stop.position)
        if found is None:
            break
        i = found.start()
        ch = found.group()
        if document.get(i, INVISIBLE) == ANSI_INVISIBLE:
            # Terminator of an OSC or APC sequence
            pos = i + 1
        elif ch == "\b":
            start = max(i - 1, 0)
            document.delete(start, i + 1)
            pos = start
        elif ch == "\x07":
            document.delete(i, i + 1)
            bell()
            pos = i
        elif i + 1 == stop.position:
            document.put(i, i + 1, INVISIBLE, CONTROL_INVISIBLE)
            pos = i + 1
        elif document.char_at(i + 1) in ("\r", "\n"):
            document.delete(i, i + 1)
            pos = i
        else:
            line_start = document.line_beginning(i)
            document.delete(line_start, i + 1)
            pos = line_start
    return stop.position
