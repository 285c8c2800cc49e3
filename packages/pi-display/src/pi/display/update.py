"""Replace every occurrence of a named display with new content."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pi.display.bundle import MimeBundle
from pi.display.document import DISPLAY, DISPLAY_BEGIN, Document, Marker
from pi.display.errors import DisplayNotFoundError, UnknownDisplayIdError
from pi.display.navigation import delete_current_display, next_display_with_id
from pi.display.regions import DisplayIdTable, tag_region
from pi.display.registry import RendererRegistry

logger = logging.getLogger(__name__)

ReplaceCallback = Callable[[int, int], None]


def update_display(
    document: Document,
    registry: RendererRegistry,
    ids: DisplayIdTable,
    raw_id: str,
    bundle: MimeBundle,
    mime_types: Iterable[str],
    on_replace: ReplaceCallback | None = None,
) -> int:
    """Replace each region tagged *raw_id* with *bundle*; return how many were replaced.

    The bundle is rendered once, into the first occurrence. Later occurrences
    receive a verbatim copy of that rendering, so every occurrence is
    identical.
    """
    token = ids.get(raw_id)
    if token is None:
        if ids.seen(raw_id):
            raise DisplayNotFoundError(raw_id)
        raise UnknownDisplayIdError(raw_id)
    mime_types = list(mime_types)

    first: tuple[Marker, Marker] | None = None
    replaced = 0
    pos = 0
    saved_point = document.marker(document.point)
    try:
        while True:
            if document.get(pos, DISPLAY_BEGIN) and document.get(pos, DISPLAY) is token:
                # Adjacent occurrence starting right where the last replacement ended
                found: int | None = pos
            else:
                found = next_display_with_id(document, pos, token)
            if found is None:
                break
            deleted = delete_current_display(document, found)
            assert deleted is not None
            document.point = deleted[0]
            if first is None:
                begin, end = tag_region(
                    document, token, lambda: registry.render(document, bundle, mime_types)
                )
                first = (document.marker(begin), document.marker(end))
            else:
                span = document.span(first[0].position, first[1].position)
                begin, end = document.insert_span(span)
            replaced += 1
            logger.debug("Replaced display %s at [%d, %d)", raw_id, begin, end)
            if on_replace is not None:
                on_replace(begin, end)
            pos = end
    finally:
        document.point = saved_point.position

    if replaced == 0:
        raise DisplayNotFoundError(raw_id)
    return replaced
