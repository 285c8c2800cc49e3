"""Renderer registry: dispatch MIME bundles to rendering strategies."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pi.display.bundle import MimeBundle
from pi.display.document import Document

logger = logging.getLogger(__name__)

# (document, mime_type, content, metadata) -> truthy when handled.
# A strategy that inserts into the document counts as handled even if it returns None.
RenderStrategy = Callable[[Document, str, Any, Mapping[str, Any]], Any]


@dataclass
class Renderer:
    """A rendering strategy registered for one MIME type."""

    mime_type: str
    render: RenderStrategy
    source_id: str | None = None


class RendererRegistry:
    """Table from MIME type to rendering strategy."""

    def __init__(self) -> None:
        self._renderers: dict[str, Renderer] = {}

    def __contains__(self, mime_type: object) -> bool:
        return mime_type in self._renderers

    def register(
        self,
        mime_type: str,
        render: RenderStrategy,
        *,
        when: Callable[[], bool] | None = None,
        source_id: str | None = None,
    ) -> bool:
        """Register *render* for *mime_type*.

        *when* is a capability predicate checked now; if it is false the
        strategy is not registered and any previous strategy stays in place.
        Returns whether the strategy was registered.
        """
        if when is not None and not when():
            logger.debug("Renderer for %s unavailable, not registered", mime_type)
            return False
        self._renderers[mime_type] = Renderer(mime_type=mime_type, render=render, source_id=source_id)
        return True

    def unregister(self, mime_type: str) -> None:
        self._renderers.pop(mime_type, None)

    def unregister_source(self, source_id: str) -> None:
        """Remove all strategies registered with a given source ID."""
        for mime_type in [m for m, r in self._renderers.items() if r.source_id == source_id]:
            del self._renderers[mime_type]

    def get(self, mime_type: str) -> Renderer | None:
        return self._renderers.get(mime_type)

    def mime_types(self) -> list[str]:
        return list(self._renderers)

    def render(
        self,
        document: Document,
        bundle: MimeBundle,
        mime_types: Iterable[str],
    ) -> str | None:
        """Render the first type in *mime_types* that *bundle* has and a strategy handles.

        Returns the MIME type that was rendered, or ``None``. Strategy
        exceptions propagate; anything already inserted stays.
        """
        for mime_type in mime_types:
            if mime_type not in bundle:
                continue
            renderer = self._renderers.get(mime_type)
            if renderer is None:
                continue
            tick = document.modified_tick
            handled = renderer.render(document, mime_type, bundle.data[mime_type], bundle.metadata_for(mime_type))
            if handled or document.modified_tick != tick:
                return mime_type
        logger.warning("No valid mimetype found for %s", bundle.mime_types())
        return None
