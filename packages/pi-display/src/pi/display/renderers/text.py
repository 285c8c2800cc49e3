"""Plain text rendering with ANSI colors and terminal control codes."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pi.display.ansi import AnsiContext, apply_ansi, handle_control_codes
from pi.display.document import Document

ANSI_CONTEXT = "ansi-context"


def insert_ansi_text(
    document: Document,
    text: str,
    bell: Callable[[], None] | None = None,
) -> tuple[int, int]:
    """Insert *text* at point, applying ANSI escapes and then control codes.

    ANSI state carries over between calls on the same document, so output
    can arrive in arbitrary chunks.
    """
    begin, end = document.insert(text)
    start = document.marker(begin)
    context = document.locals.get(ANSI_CONTEXT)
    document.locals[ANSI_CONTEXT] = apply_ansi(document, begin, end, context)
    end = handle_control_codes(document, begin, end, bell)
    return start.position, end


class PlainTextRenderer:
    """Strategy for ``text/plain``."""

    def __init__(self, bell: Callable[[], None] | None = None) -> None:
        self.bell = bell

    def __call__(
        self,
        document: Document,
        mime_type: str,
        content: Any,
        metadata: Mapping[str, Any],
    ) -> bool:
        insert_ansi_text(document, str(content), self.bell)
        return True
