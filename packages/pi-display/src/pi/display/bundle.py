"""MIME bundles and the default MIME type preference orders."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

WIDGET_VIEW = "application/vnd.jupyter.widget-view+json"
TEXT_HTML = "text/html"
TEXT_MARKDOWN = "text/markdown"
TEXT_LATEX = "text/latex"
TEXT_PLAIN = "text/plain"
IMAGE_SVG = "image/svg+xml"
IMAGE_JPEG = "image/jpeg"
IMAGE_PNG = "image/png"
IMAGE_GIF = "image/gif"
IMAGE_WEBP = "image/webp"

# Richer types first, plain text last
GRAPHIC_MIME_TYPES: tuple[str, ...] = (
    WIDGET_VIEW,
    TEXT_HTML,
    TEXT_MARKDOWN,
    IMAGE_SVG,
    IMAGE_JPEG,
    IMAGE_PNG,
    TEXT_LATEX,
    TEXT_PLAIN,
)

NONGRAPHIC_MIME_TYPES: tuple[str, ...] = (
    WIDGET_VIEW,
    TEXT_HTML,
    TEXT_MARKDOWN,
    TEXT_PLAIN,
)

# Rendered outside the document by an external viewer; never tagged with a display id
UNTAGGED_MIME_TYPES = frozenset({WIDGET_VIEW})


@dataclass(frozen=True)
class MimeBundle:
    """Alternative representations of one piece of content, keyed by MIME type.

    ``metadata`` is keyed by MIME type as well, e.g.
    ``{"image/png": {"width": 320, "needs_background": "light"}}``.
    """

    data: Mapping[str, Any]
    metadata: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def coerce(
        cls,
        data: MimeBundle | Mapping[str, Any],
        metadata: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> MimeBundle:
        if isinstance(data, MimeBundle):
            if metadata is None:
                return data
            return cls(data.data, metadata)
        return cls(dict(data), dict(metadata or {}))

    def __contains__(self, mime_type: object) -> bool:
        return mime_type in self.data

    def metadata_for(self, mime_type: str) -> Mapping[str, Any]:
        meta = self.metadata.get(mime_type)
        return meta if isinstance(meta, Mapping) else {}

    def mime_types(self) -> list[str]:
        return list(self.data)
