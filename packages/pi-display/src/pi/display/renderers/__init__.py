"""Built-in rendering strategies and their registration."""

from __future__ import annotations

import webbrowser
from collections.abc import Callable

from pi.display.bundle import (
    IMAGE_GIF,
    IMAGE_JPEG,
    IMAGE_PNG,
    IMAGE_SVG,
    IMAGE_WEBP,
    TEXT_HTML,
    TEXT_LATEX,
    TEXT_MARKDOWN,
    TEXT_PLAIN,
)
from pi.display.registry import RendererRegistry
from pi.display.renderers.html import HtmlRenderer, libxml_available, parse_html, strip_scripts
from pi.display.renderers.image import (
    ImageDimensions,
    ImageRenderer,
    InlineImage,
    decode_image_data,
    get_image_dimensions,
    image_fallback,
    insert_image,
)
from pi.display.renderers.latex import DvipngPipeline, LatexPipeline, LatexRenderer
from pi.display.renderers.markdown import LinkHandler, MarkdownRenderer, fontify_markdown
from pi.display.renderers.text import PlainTextRenderer, insert_ansi_text
from pi.display.settings import DisplaySettings

BUILTIN_SOURCE = "builtin"


def open_in_browser(url: str) -> bool:
    return webbrowser.open(url)


def register_builtin_renderers(
    registry: RendererRegistry,
    settings: DisplaySettings | None = None,
    *,
    link_handler: LinkHandler | None = None,
    markdown_link_handler: LinkHandler | None = None,
    latex_pipeline: LatexPipeline | None = None,
    bell: Callable[[], None] | None = None,
) -> RendererRegistry:
    """Register the built-in strategies on *registry*.

    HTML needs lxml. The default LaTeX pipeline needs ``latex`` and
    ``dvipng`` on ``PATH``; a caller-supplied pipeline is always registered.
    """
    settings = settings or DisplaySettings()
    link_handler = link_handler or open_in_browser
    markdown_link_handler = markdown_link_handler or link_handler

    registry.register(
        TEXT_HTML,
        HtmlRenderer(link_handler, ascent=settings.image_ascent),
        when=libxml_available,
        source_id=BUILTIN_SOURCE,
    )
    registry.register(TEXT_MARKDOWN, MarkdownRenderer(markdown_link_handler), source_id=BUILTIN_SOURCE)

    if latex_pipeline is None:
        pipeline = DvipngPipeline(settings.latex_program, settings.dvipng_program, settings.latex_dpi)
        registry.register(
            TEXT_LATEX,
            LatexRenderer(pipeline, ascent=settings.image_ascent),
            when=pipeline.available,
            source_id=BUILTIN_SOURCE,
        )
    else:
        registry.register(TEXT_LATEX, LatexRenderer(latex_pipeline, ascent=settings.image_ascent), source_id=BUILTIN_SOURCE)

    image_renderer = ImageRenderer(ascent=settings.image_ascent)
    for mime_type in (IMAGE_SVG, IMAGE_JPEG, IMAGE_PNG, IMAGE_GIF, IMAGE_WEBP):
        registry.register(mime_type, image_renderer, source_id=BUILTIN_SOURCE)

    registry.register(TEXT_PLAIN, PlainTextRenderer(bell), source_id=BUILTIN_SOURCE)
    return registry


__all__ = [
    "BUILTIN_SOURCE",
    "DvipngPipeline",
    "HtmlRenderer",
    "ImageDimensions",
    "ImageRenderer",
    "InlineImage",
    "LatexPipeline",
    "LatexRenderer",
    "LinkHandler",
    "MarkdownRenderer",
    "PlainTextRenderer",
    "decode_image_data",
    "fontify_markdown",
    "get_image_dimensions",
    "image_fallback",
    "insert_ansi_text",
    "insert_image",
    "libxml_available",
    "open_in_browser",
    "parse_html",
    "register_builtin_renderers",
    "strip_scripts",
]
