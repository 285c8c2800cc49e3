"""Tests for pi.display.update -- replacing every occurrence of a display."""

from __future__ import annotations

import gc

import pytest

from pi.display.bundle import TEXT_PLAIN, MimeBundle
from pi.display.document import Document
from pi.display.errors import DisplayNotFoundError, UnknownDisplayIdError
from pi.display.navigation import display_regions
from pi.display.regions import DisplayIdTable, tag_region
from pi.display.registry import RendererRegistry
from pi.display.update import update_display


class CountingRenderer:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, document, mime_type, content, metadata):
        self.calls += 1
        document.insert(str(content), {"face": ("output",)})
        return True


@pytest.fixture
def setup():
    registry = RendererRegistry()
    renderer = CountingRenderer()
    registry.register(TEXT_PLAIN, renderer)
    ids = DisplayIdTable()
    doc = Document()
    return doc, registry, renderer, ids


def _show(doc, registry, ids, raw_id, content):
    bundle = MimeBundle({TEXT_PLAIN: content})
    return tag_region(doc, ids.intern(raw_id), lambda: registry.render(doc, bundle, [TEXT_PLAIN]))


def _update(doc, registry, ids, raw_id, content, on_replace=None):
    return update_display(doc, registry, ids, raw_id, MimeBundle({TEXT_PLAIN: content}), [TEXT_PLAIN], on_replace)


class TestUpdateDisplay:
    def test_replaces_every_occurrence_rendering_once(self, setup) -> None:
        doc, registry, renderer, ids = setup
        doc.insert("> ")
        _show(doc, registry, ids, "out", "old")
        doc.insert("\n")
        _show(doc, registry, ids, "other", "keep")
        doc.insert("\n")
        _show(doc, registry, ids, "out", "old")
        doc.insert("\n")
        _show(doc, registry, ids, "out", "old")
        renderer.calls = 0

        assert _update(doc, registry, ids, "out", "new!") == 3
        assert renderer.calls == 1
        assert doc.text == "> new!\nkeep\nnew!\nnew!"

        regions = [r for r in display_regions(doc) if r.token is ids.get("out")]
        assert len(regions) == 3
        spans = [doc.span(r.begin, r.end) for r in regions]
        assert spans[0] == spans[1] == spans[2]

    def test_adjacent_occurrences(self, setup) -> None:
        doc, registry, renderer, ids = setup
        _show(doc, registry, ids, "out", "a")
        _show(doc, registry, ids, "out", "b")
        assert _update(doc, registry, ids, "out", "xy") == 2
        assert doc.text == "xyxy"
        assert [(r.begin, r.end) for r in display_regions(doc)] == [(0, 2), (2, 4)]

    def test_repeated_updates(self, setup) -> None:
        doc, registry, _, ids = setup
        _show(doc, registry, ids, "out", "1")
        doc.insert(" | ")
        _show(doc, registry, ids, "out", "1")
        _update(doc, registry, ids, "out", "22")
        _update(doc, registry, ids, "out", "333")
        assert doc.text == "333 | 333"

    def test_point_is_preserved(self, setup) -> None:
        doc, registry, _, ids = setup
        doc.insert("prompt ")
        _show(doc, registry, ids, "out", "old")
        doc.point = 3
        _update(doc, registry, ids, "out", "newer")
        assert doc.point == 3

    def test_on_replace_receives_bounds(self, setup) -> None:
        doc, registry, _, ids = setup
        _show(doc, registry, ids, "out", "o")
        doc.insert("-")
        _show(doc, registry, ids, "out", "o")
        seen = []
        _update(doc, registry, ids, "out", "ab", on_replace=lambda b, e: seen.append((b, e)))
        assert seen == [(0, 2), (3, 5)]

    def test_unknown_id(self, setup) -> None:
        doc, registry, _, ids = setup
        with pytest.raises(UnknownDisplayIdError) as excinfo:
            _update(doc, registry, ids, "nope", "x")
        assert str(excinfo.value) == "Display ID not found (nope)"
        assert isinstance(excinfo.value, KeyError)

    def test_known_id_without_occurrences(self, setup) -> None:
        doc, registry, _, ids = setup
        token = ids.intern("gone")
        with pytest.raises(DisplayNotFoundError, match="No display matching id"):
            _update(doc, registry, ids, "gone", "x")
        assert ids.get("gone") is token

    def test_id_whose_displays_were_all_deleted(self, setup) -> None:
        doc, registry, _, ids = setup
        _show(doc, registry, ids, "gone", "x")
        doc.delete(0, len(doc.text))
        gc.collect()
        assert "gone" not in ids
        with pytest.raises(DisplayNotFoundError):
            _update(doc, registry, ids, "gone", "y")

    def test_other_displays_untouched(self, setup) -> None:
        doc, registry, _, ids = setup
        _show(doc, registry, ids, "a", "A")
        _show(doc, registry, ids, "b", "B")
        _update(doc, registry, ids, "a", "AA")
        assert doc.text == "AAB"
        assert [r.token.name for r in display_regions(doc)] == ["a", "b"]
