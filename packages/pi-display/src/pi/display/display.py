"""Host-facing entry points for rendering and updating displays."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pi.display import navigation
from pi.display.bundle import MimeBundle
from pi.display.convert import ExternalConverter
from pi.display.document import DISPLAY, DISPLAY_BEGIN, FOLLOW_LINK, LINK, Document
from pi.display.errors import UnknownDisplayIdError
from pi.display.navigation import Region
from pi.display.regions import DisplayId, DisplayIdTable, tag_region
from pi.display.registry import RendererRegistry
from pi.display.renderers import LinkHandler, register_builtin_renderers
from pi.display.settings import DisplaySettings
from pi.display.update import ReplaceCallback, update_display

logger = logging.getLogger(__name__)

BundleData = MimeBundle | Mapping[str, Any]


class DisplayManager:
    """Renders MIME bundles into the active document and tracks named displays.

    Positions default to the document's point. Navigation that finds a
    position moves point there.
    """

    def __init__(
        self,
        document: Document | None = None,
        registry: RendererRegistry | None = None,
        settings: DisplaySettings | None = None,
        *,
        link_handler: LinkHandler | None = None,
        markdown_link_handler: LinkHandler | None = None,
        on_replace: ReplaceCallback | None = None,
        bell: Callable[[], None] | None = None,
    ) -> None:
        self.document = document if document is not None else Document()
        self.settings = settings or DisplaySettings()
        if registry is None:
            registry = register_builtin_renderers(
                RendererRegistry(),
                self.settings,
                link_handler=link_handler,
                markdown_link_handler=markdown_link_handler,
                bell=bell,
            )
        self.registry = registry
        self.on_replace = on_replace
        self.converter = ExternalConverter(self.settings.converter_program)
        self._ids: DisplayIdTable | None = None

    @property
    def ids(self) -> DisplayIdTable:
        if self._ids is None:
            self._ids = DisplayIdTable()
        return self._ids

    @property
    def mime_types(self) -> list[str]:
        return self.settings.preferred_mime_types()

    def _pos(self, pos: int | None) -> int:
        return self.document.point if pos is None else pos

    # -- rendering ----------------------------------------------------------

    def insert(
        self,
        data: BundleData,
        metadata: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> str | None:
        """Render *data* at point; return the MIME type rendered, or ``None``."""
        bundle = MimeBundle.coerce(data, metadata)
        return self.registry.render(self.document, bundle, self.mime_types)

    def insert_with_identity(
        self,
        raw_id: str,
        data: BundleData,
        metadata: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> tuple[int, int] | None:
        """Render *data* at point as an occurrence of display *raw_id*.

        Returns the bounds of the tagged region, or ``None`` if nothing was
        rendered or the content cannot be tagged.
        """
        token = self.ids.intern(raw_id)
        bundle = MimeBundle.coerce(data, metadata)
        begin, end = tag_region(
            self.document, token, lambda: self.registry.render(self.document, bundle, self.mime_types)
        )
        if self.document.get(begin, DISPLAY) is not token:
            return None
        return begin, end

    def update_display(
        self,
        raw_id: str,
        data: BundleData,
        metadata: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> int:
        """Replace every occurrence of display *raw_id*; return how many were replaced."""
        bundle = MimeBundle.coerce(data, metadata)
        return update_display(
            self.document,
            self.registry,
            self.ids,
            raw_id,
            bundle,
            self.mime_types,
            self.on_replace,
        )

    # -- navigation ---------------------------------------------------------

    def current_display(self, pos: int | None = None) -> DisplayId | None:
        return navigation.current_display(self.document, self._pos(pos))

    def beginning_of_display(self, pos: int | None = None) -> int:
        """Start of the display at *pos*, or 0 when there is none before it.

        Point moves only when a display start was found.
        """
        found = navigation.beginning_of_display(self.document, self._pos(pos))
        if self.document.get(found, DISPLAY_BEGIN):
            self.document.point = found
        return found

    def end_of_display(self, pos: int | None = None) -> int:
        found = navigation.end_of_display(self.document, self._pos(pos))
        self.document.point = found
        return found

    def next_display_with_id(self, raw_id: str, pos: int | None = None) -> int | None:
        """Move point to the next occurrence of *raw_id*; point stays put if there is none."""
        token = self.ids.get(raw_id)
        if token is None:
            if self.ids.seen(raw_id):
                return None
            raise UnknownDisplayIdError(raw_id)
        found = navigation.next_display_with_id(self.document, self._pos(pos), token)
        if found is not None:
            self.document.point = found
        return found

    def delete_current_display(self, pos: int | None = None) -> tuple[int, int] | None:
        return navigation.delete_current_display(self.document, self._pos(pos))

    def displays(self, raw_id: str | None = None) -> Iterator[Region]:
        """Regions in document order, optionally only those of display *raw_id*."""
        if raw_id is None:
            return navigation.display_regions(self.document)
        token = self.ids.get(raw_id)
        if token is None:
            return iter(())
        return navigation.display_regions(self.document, token)

    # -- links --------------------------------------------------------------

    def follow_link(self, pos: int | None = None) -> Any:
        """Activate the link at *pos* through the handler of the renderer that made it."""
        pos = self._pos(pos)
        handler = self.document.get(pos, FOLLOW_LINK)
        url = self.document.get(pos, LINK)
        if handler is None or url is None:
            return None
        logger.debug("Following link %s", url)
        return handler(url)
