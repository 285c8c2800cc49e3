"""Mutable rich-text document with an explicit attribute layer.

The document is a string plus, for every attribute key, a sorted list of
non-overlapping half-open runs ``[start, end)``. Adjacent runs of one key that
hold equal values are merged, so run boundaries are exactly the positions
where a key's value changes. Lookups bisect over run starts.

Text inserted into the document never inherits attributes from its
neighbours; inserting inside a run splits it.
"""

from __future__ import annotations

import weakref
from bisect import bisect_left, bisect_right
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

# Attribute keys shared across the package
DISPLAY = "display"
DISPLAY_BEGIN = "display-begin"
INVISIBLE = "invisible"
FACE = "face"
LINK = "link"
FOLLOW_LINK = "follow-link"
IMAGE = "image"

Run = tuple[int, int, Any]


class AttributeRuns:
    """Runs of a single attribute key.

    ``None`` is never stored: putting ``None`` over a range removes the key
    there.
    """

    def __init__(self) -> None:
        self._starts: list[int] = []
        self._ends: list[int] = []
        self._values: list[Any] = []

    def __len__(self) -> int:
        return len(self._starts)

    def __iter__(self) -> Iterator[Run]:
        return iter(zip(self._starts, self._ends, self._values))

    # -- queries ------------------------------------------------------------

    def _index_at(self, pos: int) -> int | None:
        i = bisect_right(self._starts, pos) - 1
        if i >= 0 and pos < self._ends[i]:
            return i
        return None

    def get(self, pos: int, default: Any = None) -> Any:
        i = self._index_at(pos)
        return self._values[i] if i is not None else default

    def next_change(self, pos: int) -> int | None:
        """First position after *pos* where the value differs from the value at *pos*."""
        i = self._index_at(pos)
        if i is not None:
            return self._ends[i]
        j = bisect_right(self._starts, pos)
        if j < len(self._starts):
            return self._starts[j]
        return None

    def next_set(self, pos: int) -> int | None:
        """First position ``>= pos`` that carries a value."""
        if self._index_at(pos) is not None:
            return pos
        j = bisect_right(self._starts, pos)
        if j < len(self._starts):
            return self._starts[j]
        return None

    def previous_set(self, pos: int) -> int | None:
        """Last position ``< pos`` that carries a value."""
        i = bisect_right(self._starts, pos - 1) - 1
        if i < 0:
            return None
        return min(self._ends[i], pos) - 1

    def slice(self, start: int, end: int) -> list[Run]:
        """Runs clipped to ``[start, end)``, relative to *start*."""
        out: list[Run] = []
        lo = max(bisect_right(self._starts, start) - 1, 0)
        for i in range(lo, len(self._starts)):
            s, e, v = self._starts[i], self._ends[i], self._values[i]
            if s >= end:
                break
            if e <= start:
                continue
            out.append((max(s, start) - start, min(e, end) - start, v))
        return out

    # -- mutation -----------------------------------------------------------

    def _splice(self, lo: int, hi: int, runs: list[Run]) -> None:
        self._starts[lo:hi] = [r[0] for r in runs]
        self._ends[lo:hi] = [r[1] for r in runs]
        self._values[lo:hi] = [r[2] for r in runs]

    def _merge_at(self, i: int) -> None:
        """Merge run *i* into run ``i - 1`` when they touch and hold equal values."""
        if 0 < i < len(self._starts):
            if self._ends[i - 1] == self._starts[i] and self._values[i - 1] == self._values[i]:
                self._ends[i - 1] = self._ends[i]
                del self._starts[i], self._ends[i], self._values[i]

    def clear(self, start: int, end: int) -> None:
        if start >= end:
            return
        lo = max(bisect_right(self._starts, start) - 1, 0)
        hi = bisect_left(self._starts, end)
        kept: list[Run] = []
        for i in range(lo, hi):
            s, e, v = self._starts[i], self._ends[i], self._values[i]
            if e <= start:
                kept.append((s, e, v))
                continue
            if s < start:
                kept.append((s, start, v))
            if e > end:
                kept.append((end, e, v))
        self._splice(lo, hi, kept)

    def put(self, start: int, end: int, value: Any) -> None:
        if start >= end:
            return
        self.clear(start, end)
        if value is None:
            return
        i = bisect_left(self._starts, start)
        self._starts.insert(i, start)
        self._ends.insert(i, end)
        self._values.insert(i, value)
        self._merge_at(i + 1)
        self._merge_at(i)

    def shift_for_insert(self, pos: int, length: int) -> None:
        i = bisect_left(self._starts, pos)
        for j in range(i, len(self._starts)):
            self._starts[j] += length
            self._ends[j] += length
        if i > 0 and self._ends[i - 1] > pos:
            tail_end = self._ends[i - 1] + length
            self._ends[i - 1] = pos
            self._starts.insert(i, pos + length)
            self._ends.insert(i, tail_end)
            self._values.insert(i, self._values[i - 1])

    def shift_for_delete(self, start: int, end: int) -> None:
        self.clear(start, end)
        length = end - start
        i = bisect_left(self._starts, end)
        for j in range(i, len(self._starts)):
            self._starts[j] -= length
            self._ends[j] -= length
        self._merge_at(bisect_left(self._starts, start))


class Marker:
    """A position that follows insertions and deletions in its document.

    Text inserted exactly at the marker goes after it unless *advances* is set.
    """

    __slots__ = ("position", "advances", "__weakref__")

    def __init__(self, position: int, advances: bool = False) -> None:
        self.position = position
        self.advances = advances

    def __int__(self) -> int:
        return self.position

    def __repr__(self) -> str:
        return f"Marker({self.position})"


@dataclass(frozen=True)
class Span:
    """Detached copy of a document range: text plus attribute runs relative to its start."""

    text: str
    runs: dict[str, list[Run]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.text)


class Document:
    """Rich-text document: text, attribute runs, markers and a point."""

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._attributes: dict[str, AttributeRuns] = {}
        self._markers: weakref.WeakSet[Marker] = weakref.WeakSet()
        self._point = Marker(len(text), advances=True)
        self._markers.add(self._point)
        self.modified_tick = 0
        self.locals: dict[str, Any] = {}

    def __len__(self) -> int:
        return len(self._text)

    def __repr__(self) -> str:
        return f"Document({self._text!r})"

    @property
    def text(self) -> str:
        return self._text

    @property
    def point(self) -> int:
        return self._point.position

    @point.setter
    def point(self, pos: int) -> None:
        self._point.position = self._clamp(pos)

    def _clamp(self, pos: int) -> int:
        return max(0, min(pos, len(self._text)))

    def _bump(self) -> None:
        self.modified_tick += 1

    def _runs(self, key: str) -> AttributeRuns:
        runs = self._attributes.get(key)
        if runs is None:
            runs = self._attributes[key] = AttributeRuns()
        return runs

    def marker(self, pos: int, *, advances: bool = False) -> Marker:
        m = Marker(self._clamp(pos), advances)
        self._markers.add(m)
        return m

    # -- text ---------------------------------------------------------------

    def substring(self, start: int, end: int) -> str:
        return self._text[start:end]

    def char_at(self, pos: int) -> str | None:
        if 0 <= pos < len(self._text):
            return self._text[pos]
        return None

    def line_beginning(self, pos: int) -> int:
        return self._text.rfind("\n", 0, pos) + 1

    def insert(
        self,
        text: str,
        attributes: Mapping[str, Any] | None = None,
        *,
        at: int | None = None,
    ) -> tuple[int, int]:
        """Insert *text* at *at* (default: point) and return its bounds."""
        pos = self.point if at is None else self._clamp(at)
        if not text:
            return pos, pos
        length = len(text)
        self._text = self._text[:pos] + text + self._text[pos:]
        for runs in self._attributes.values():
            runs.shift_for_insert(pos, length)
        for m in self._markers:
            if m.position > pos or (m.position == pos and m.advances):
                m.position += length
        end = pos + length
        if attributes:
            for key, value in attributes.items():
                self._runs(key).put(pos, end, value)
        self._bump()
        return pos, end

    def delete(self, start: int, end: int) -> None:
        start, end = self._clamp(start), self._clamp(end)
        if start >= end:
            return
        self._text = self._text[:start] + self._text[end:]
        for runs in self._attributes.values():
            runs.shift_for_delete(start, end)
        length = end - start
        for m in self._markers:
            if m.position >= end:
                m.position -= length
            elif m.position > start:
                m.position = start
        self._bump()

    # -- spans --------------------------------------------------------------

    def span(self, start: int, end: int) -> Span:
        runs = {}
        for key, key_runs in self._attributes.items():
            sliced = key_runs.slice(start, end)
            if sliced:
                runs[key] = sliced
        return Span(self._text[start:end], runs)

    def insert_span(self, span: Span, *, at: int | None = None) -> tuple[int, int]:
        """Insert a copy of *span*, text and attributes, at *at* (default: point)."""
        begin, end = self.insert(span.text, at=at)
        for key, runs in span.runs.items():
            key_runs = self._runs(key)
            for s, e, v in runs:
                key_runs.put(begin + s, begin + e, v)
        return begin, end

    # -- attributes ---------------------------------------------------------

    def get(self, pos: int, key: str, default: Any = None) -> Any:
        runs = self._attributes.get(key)
        if runs is None:
            return default
        return runs.get(pos, default)

    def put(self, start: int, end: int, key: str, value: Any) -> None:
        self._runs(key).put(self._clamp(start), self._clamp(end), value)
        self._bump()

    def remove(self, start: int, end: int, key: str) -> None:
        self.put(start, end, key, None)

    def runs(self, key: str, start: int = 0, end: int | None = None) -> list[Run]:
        """Absolute runs of *key* intersecting ``[start, end)``."""
        runs = self._attributes.get(key)
        if runs is None:
            return []
        end = len(self._text) if end is None else end
        return [(s + start, e + start, v) for s, e, v in runs.slice(start, end)]

    def add_face(self, start: int, end: int, faces: tuple[str, ...], *, append: bool = False) -> None:
        """Combine *faces* with the faces already present over ``[start, end)``.

        New faces are prepended (higher priority) unless *append* is set.
        """
        if start >= end or not faces:
            return
        runs = self._runs(FACE)
        pieces: list[Run] = []
        pos = start
        for s, e, v in runs.slice(start, end):
            if s + start > pos:
                pieces.append((pos, s + start, faces))
            pieces.append((s + start, e + start, (*v, *faces) if append else (*faces, *v)))
            pos = e + start
        if pos < end:
            pieces.append((pos, end, faces))
        for s, e, v in pieces:
            runs.put(s, e, v)
        self._bump()

    def next_change(self, pos: int, key: str, limit: int | None = None) -> int | None:
        """Next position after *pos* where *key* changes value, capped at *limit*."""
        runs = self._attributes.get(key)
        found = runs.next_change(pos) if runs is not None else None
        if limit is None:
            return found
        return limit if found is None else min(found, limit)

    def next_set(self, pos: int, key: str) -> int | None:
        runs = self._attributes.get(key)
        return runs.next_set(pos) if runs is not None else None

    def previous_set(self, pos: int, key: str) -> int | None:
        runs = self._attributes.get(key)
        return runs.previous_set(pos) if runs is not None else None

    # -- presentation -------------------------------------------------------

    def visible_text(self, start: int = 0, end: int | None = None) -> str:
        """Text as displayed: invisible characters dropped, images shown by their alt text."""
        end = len(self._text) if end is None else end
        hidden = [(s, e) for s, e, _ in self.runs(INVISIBLE, start, end)]
        images = {s: (e, v) for s, e, v in self.runs(IMAGE, start, end)}
        out: list[str] = []
        pos = start
        h = 0
        while pos < end:
            if pos in images:
                img_end, image = images[pos]
                # Equal images inserted back to back share one run
                out.append(image.alt * max((img_end - pos) // max(len(image.alt), 1), 1))
                pos = img_end
                continue
            while h < len(hidden) and hidden[h][1] <= pos:
                h += 1
            if h < len(hidden) and hidden[h][0] <= pos:
                pos = hidden[h][1]
                continue
            out.append(self._text[pos])
            pos += 1
        return "".join(out)
