"""Display identities and region tagging."""

from __future__ import annotations

import weakref
from collections.abc import Callable

from pi.display.bundle import UNTAGGED_MIME_TYPES
from pi.display.document import DISPLAY, DISPLAY_BEGIN, Document


class DisplayId:
    """Canonical token for a named display. Compared by identity."""

    __slots__ = ("name", "__weakref__")

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"DisplayId({self.name!r})"


class DisplayIdTable:
    """Interns display-id strings to ``DisplayId`` tokens.

    Tokens are held weakly: once no attribute run and no caller references a
    token it is dropped from the table. The id strings themselves are
    remembered, so an id whose displays are all gone is still known.
    """

    def __init__(self) -> None:
        self._ids: weakref.WeakValueDictionary[str, DisplayId] = weakref.WeakValueDictionary()
        self._seen: set[str] = set()

    def __contains__(self, raw_id: object) -> bool:
        return raw_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def intern(self, raw_id: str) -> DisplayId:
        token = self._ids.get(raw_id)
        if token is None:
            token = DisplayId(raw_id)
            self._ids[raw_id] = token
            self._seen.add(raw_id)
        return token

    def get(self, raw_id: str) -> DisplayId | None:
        return self._ids.get(raw_id)

    def seen(self, raw_id: str) -> bool:
        """Whether *raw_id* was ever interned, live or not."""
        return raw_id in self._seen


def tag_region(
    document: Document,
    token: DisplayId,
    insert: Callable[[], str | None],
) -> tuple[int, int]:
    """Run *insert* at point and tag what it inserted with *token*.

    *insert* returns the MIME type it rendered. Widget views are drawn by an
    external viewer and are left untagged, as are empty insertions.
    """
    begin = document.marker(document.point)
    mime_type = insert()
    start, end = begin.position, document.point
    if end > start and mime_type not in UNTAGGED_MIME_TYPES:
        document.put(start, start + 1, DISPLAY_BEGIN, True)
        document.put(start, end, DISPLAY, token)
    return start, end
