"""Tests for pi.display.display -- the DisplayManager facade."""

from __future__ import annotations

import logging

import pytest

from pi.display import (
    DisplayManager,
    DisplayNotFoundError,
    DisplaySettings,
    ExternalConverter,
    Region,
    UnknownDisplayIdError,
)
from pi.display.bundle import TEXT_HTML, TEXT_MARKDOWN, TEXT_PLAIN, WIDGET_VIEW, MimeBundle


@pytest.fixture
def manager():
    return DisplayManager(settings=DisplaySettings(graphics=False))


class TestInsert:
    def test_preferred_type_is_rendered(self, manager) -> None:
        assert manager.insert({TEXT_PLAIN: "hi", TEXT_HTML: "<b>hi</b>"}) == TEXT_HTML

    def test_mime_types_follow_graphics_setting(self) -> None:
        assert TEXT_PLAIN in DisplayManager(settings=DisplaySettings(graphics=False)).mime_types
        assert "image/png" not in DisplayManager(settings=DisplaySettings(graphics=False)).mime_types
        assert "image/png" in DisplayManager(settings=DisplaySettings(graphics=True)).mime_types

    def test_plain_text_with_ansi(self, manager) -> None:
        manager.insert({TEXT_PLAIN: "\x1b[1mB\x1b[0m"})
        assert manager.document.visible_text() == "B"

    def test_nothing_renderable(self, manager, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            assert manager.insert({"application/x-unknown": "?"}) is None
        assert manager.document.text == ""
        assert "No valid mimetype found" in caplog.text

    def test_accepts_bundle_objects(self, manager) -> None:
        bundle = MimeBundle({TEXT_PLAIN: "x"})
        assert manager.insert(bundle) == TEXT_PLAIN


class TestIdentity:
    def test_insert_and_update(self, manager) -> None:
        assert manager.insert_with_identity("out", {TEXT_PLAIN: "one"}) == (0, 3)
        manager.document.insert("\n")
        assert manager.insert_with_identity("out", {TEXT_PLAIN: "one"}) == (4, 7)
        assert manager.update_display("out", {TEXT_PLAIN: "two!"}) == 2
        assert manager.document.text == "two!\ntwo!"
        assert [(r.begin, r.end) for r in manager.displays("out")] == [(0, 4), (5, 9)]

    def test_update_unknown_id(self, manager) -> None:
        with pytest.raises(UnknownDisplayIdError):
            manager.update_display("missing", {TEXT_PLAIN: "x"})

    def test_on_replace(self) -> None:
        replaced = []
        manager = DisplayManager(
            settings=DisplaySettings(graphics=False),
            on_replace=lambda begin, end: replaced.append((begin, end)),
        )
        manager.insert_with_identity("out", {TEXT_PLAIN: "a"})
        manager.update_display("out", {TEXT_PLAIN: "bcd"})
        assert replaced == [(0, 3)]

    def test_widget_view_is_not_tagged(self, manager) -> None:
        manager.registry.register(WIDGET_VIEW, lambda document, mime_type, content, metadata: document.insert("[widget]"))
        assert manager.insert_with_identity("w", {WIDGET_VIEW: {"model_id": "m"}}) is None
        assert manager.document.text == "[widget]"
        assert manager.current_display(0) is None

    def test_ids_are_created_lazily(self, manager) -> None:
        assert manager._ids is None
        manager.insert_with_identity("x", {TEXT_PLAIN: "x"})
        assert "x" in manager.ids

    def test_update_after_last_occurrence_deleted(self, manager) -> None:
        manager.insert_with_identity("out", {TEXT_PLAIN: "old"})
        assert manager.delete_current_display(0) == (0, 3)
        with pytest.raises(DisplayNotFoundError):
            manager.update_display("out", {TEXT_PLAIN: "new"})
        assert manager.document.text == ""

    def test_next_display_after_last_occurrence_deleted(self, manager) -> None:
        manager.insert_with_identity("out", {TEXT_PLAIN: "old"})
        manager.delete_current_display(0)
        assert manager.next_display_with_id("out", 0) is None


class TestNavigation:
    @pytest.fixture
    def shown(self, manager):
        manager.document.insert("> ")
        manager.insert_with_identity("a", {TEXT_PLAIN: "AAA"})  # [2, 5)
        manager.document.insert(" ")
        manager.insert_with_identity("b", {TEXT_PLAIN: "BB"})  # [6, 8)
        manager.document.insert(" ")
        manager.insert_with_identity("a", {TEXT_PLAIN: "AAA"})  # [9, 12)
        return manager

    def test_next_display_moves_point(self, shown) -> None:
        assert shown.next_display_with_id("a", 0) == 2
        assert shown.document.point == 2
        assert shown.next_display_with_id("a") == 9
        assert shown.document.point == 9

    def test_no_further_display_leaves_point(self, shown) -> None:
        shown.document.point = 9
        assert shown.next_display_with_id("a") is None
        assert shown.document.point == 9

    def test_next_display_unknown_id(self, shown) -> None:
        with pytest.raises(UnknownDisplayIdError):
            shown.next_display_with_id("zzz")

    def test_bounds_move_point(self, shown) -> None:
        assert shown.end_of_display(7) == 8
        assert shown.document.point == 8
        assert shown.beginning_of_display(10) == 9
        assert shown.document.point == 9

    def test_beginning_outside_display_leaves_point(self, manager) -> None:
        manager.insert({TEXT_PLAIN: "plain"})
        manager.document.point = 5
        assert manager.beginning_of_display(3) == 0
        assert manager.document.point == 5

    def test_current_display(self, shown) -> None:
        assert shown.current_display(3).name == "a"
        assert shown.current_display(7).name == "b"
        assert shown.current_display(0) is None

    def test_displays(self, shown) -> None:
        assert [r.token.name for r in shown.displays()] == ["a", "b", "a"]
        assert list(shown.displays("missing")) == []
        assert isinstance(next(shown.displays("b")), Region)

    def test_delete_current_display(self, shown) -> None:
        assert shown.delete_current_display(6) == (6, 8)
        assert shown.document.text == "> AAA  AAA"
        assert [r.token.name for r in shown.displays()] == ["a", "a"]


class TestLinks:
    def test_html_link_uses_link_handler(self) -> None:
        followed = []
        manager = DisplayManager(settings=DisplaySettings(graphics=False), link_handler=followed.append)
        manager.insert({TEXT_HTML: '<a href="https://x.test">go</a>'})
        manager.follow_link(manager.document.text.index("go"))
        assert followed == ["https://x.test"]

    def test_markdown_link_uses_its_own_handler(self) -> None:
        html_links, md_links = [], []
        manager = DisplayManager(
            settings=DisplaySettings(graphics=False),
            link_handler=html_links.append,
            markdown_link_handler=md_links.append,
        )
        manager.insert({TEXT_MARKDOWN: "[md](u)"})
        manager.follow_link(1)
        assert md_links == ["u"]
        assert html_links == []

    def test_no_link_at_point(self, manager) -> None:
        manager.insert({TEXT_PLAIN: "plain"})
        assert manager.follow_link(0) is None


class TestConverter:
    def test_default_program(self, manager) -> None:
        assert isinstance(manager.converter, ExternalConverter)
        assert manager.converter.program == "pandoc"

    def test_program_from_settings(self) -> None:
        manager = DisplayManager(settings=DisplaySettings(graphics=False, converter_program="cat"))
        assert manager.converter.program == "cat"
