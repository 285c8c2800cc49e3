"""Locate, bound and delete display regions in a document.

Every function takes an explicit position rather than moving the document's
point; the ``DisplayManager`` facade decides when point follows.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from pi.display.document import DISPLAY, DISPLAY_BEGIN, Document
from pi.display.regions import DisplayId


@dataclass(frozen=True)
class Region:
    """One physical occurrence of a named display."""

    token: DisplayId
    begin: int
    end: int


def current_display(document: Document, pos: int) -> DisplayId | None:
    return document.get(pos, DISPLAY)


def beginning_of_display(document: Document, pos: int) -> int:
    if document.get(pos, DISPLAY_BEGIN):
        return pos
    found = document.previous_set(pos, DISPLAY_BEGIN)
    return 0 if found is None else found


def end_of_display(document: Document, pos: int) -> int:
    """End of the region at *pos*.

    Bounded both by a change of display id and by the next region-begin
    marker, so two adjacent regions never run together.
    """
    limit = len(document)
    by_id = document.next_change(pos, DISPLAY, limit)
    next_begin = _next_begin(document, pos)
    return min(by_id, limit if next_begin is None else next_begin)


def _next_begin(document: Document, pos: int) -> int | None:
    return document.next_set(pos + 1, DISPLAY_BEGIN)


def next_display_with_id(document: Document, pos: int, token: DisplayId) -> int | None:
    """Position of the next region tagged *token* after *pos*, or ``None``.

    At the very start of the document a region beginning at 0 counts.
    """
    if pos == 0 and document.get(0, DISPLAY) is token:
        return 0
    found = _next_begin(document, pos)
    while found is not None:
        if document.get(found, DISPLAY) is token:
            return found
        found = _next_begin(document, found)
    return None


def delete_current_display(document: Document, pos: int) -> tuple[int, int] | None:
    """Delete the region at *pos*; return the deleted bounds, or ``None`` outside a region."""
    if current_display(document, pos) is None:
        return None
    begin = beginning_of_display(document, pos)
    end = end_of_display(document, pos)
    document.delete(begin, end)
    return begin, end


def display_regions(document: Document, token: DisplayId | None = None) -> Iterator[Region]:
    """Yield regions in document order, optionally only those tagged *token*."""
    pos = document.next_set(0, DISPLAY_BEGIN)
    while pos is not None:
        found = current_display(document, pos)
        if found is not None and (token is None or found is token):
            yield Region(found, pos, end_of_display(document, pos))
        pos = _next_begin(document, pos)
