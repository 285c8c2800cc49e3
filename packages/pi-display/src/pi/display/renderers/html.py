"""HTML rendering into styled document text.

Scripts are stripped before parsing. Content that starts with an XML
declaration is parsed strictly as XML, anything else as HTML; both go
through lxml, so the renderer is only registered when lxml is installed.
"""

from __future__ import annotations

import importlib.util
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag
from lxml import etree

from pi.display.document import FACE, FOLLOW_LINK, LINK, Document
from pi.display.errors import RenderError
from pi.display.renderers.image import decode_image_data, insert_image
from pi.display.settings import DEFAULT_IMAGE_ASCENT
from pi.display.utils import pad_to_width, visible_width

logger = logging.getLogger(__name__)

LinkHandler = Callable[[str], Any]

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?(?:</script\s*>|\Z)", re.IGNORECASE | re.DOTALL)
_XML_DECL_RE = re.compile(r"\A\s*<\?xml\b")
_WHITESPACE_RE = re.compile(r"\s+")
_DATA_URI_RE = re.compile(r"\Adata:(image/[\w.+-]+);base64,(.*)\Z", re.DOTALL)

_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
        "figcaption", "figure", "footer", "form", "header", "li", "main", "nav",
        "ol", "p", "pre", "section", "ul",
    }
)
_SKIP_TAGS = frozenset({"head", "script", "style", "template", "title"})
_INLINE_FACES = {
    "b": "bold",
    "strong": "bold",
    "i": "italic",
    "em": "italic",
    "cite": "italic",
    "u": "underline",
    "ins": "underline",
    "s": "strike",
    "strike": "strike",
    "del": "strike",
    "code": "html-code",
    "kbd": "html-code",
    "samp": "html-code",
    "tt": "html-code",
}
_HEADINGS = {f"h{n}": n for n in range(1, 7)}


def libxml_available() -> bool:
    return importlib.util.find_spec("lxml") is not None


def strip_scripts(html: str) -> str:
    """Remove ``<script>`` elements; an unclosed one runs to the end of the content."""
    return _SCRIPT_RE.sub("", html)


def parse_html(html: str) -> BeautifulSoup:
    """Parse *html* after stripping scripts.

    Content with an XML declaration must be well-formed; malformed XML raises
    ``RenderError``. Anything else goes through the forgiving HTML parser.
    """
    html = strip_scripts(html)
    if _XML_DECL_RE.match(html):
        html = html.lstrip()
        try:
            etree.fromstring(html.encode("utf-8"))
        except etree.XMLSyntaxError as exc:
            raise RenderError(f"Malformed XML: {exc}") from exc
        return BeautifulSoup(html, "xml")
    return BeautifulSoup(html, "lxml")


class _HtmlWriter:
    """Walks a parsed tree, inserting text at the document's point."""

    def __init__(self, document: Document, follow_link: LinkHandler, ascent: int) -> None:
        self.document = document
        self.follow_link = follow_link
        self.ascent = ascent
        self.start = document.point
        self.faces: list[str] = []
        self.link: str | None = None
        self.preformatted = 0
        self.lists: list[list[Any]] = []

    # -- output -------------------------------------------------------------

    def _at_line_start(self) -> bool:
        point = self.document.point
        return point == self.start or self.document.char_at(point - 1) == "\n"

    def newline(self) -> None:
        if not self._at_line_start():
            self.document.insert("\n")

    def write(self, text: str) -> None:
        if not text:
            return
        attributes: dict[str, Any] = {}
        if self.faces:
            attributes[FACE] = tuple(reversed(self.faces))
        if self.link is not None:
            attributes[LINK] = self.link
            attributes[FOLLOW_LINK] = self.follow_link
        self.document.insert(text, attributes)

    def text(self, text: str) -> None:
        if self.preformatted:
            self.write(text)
            return
        text = _WHITESPACE_RE.sub(" ", text)
        if self._at_line_start() or self.document.char_at(self.document.point - 1) == " ":
            text = text.lstrip(" ")
        self.write(text)

    # -- tree walk ----------------------------------------------------------

    def walk(self, node: Any) -> None:
        if isinstance(node, PreformattedString):
            return
        if isinstance(node, NavigableString):
            self.text(str(node))
            return
        if not isinstance(node, Tag):
            return

        name = (node.name or "").lower()
        if name in _SKIP_TAGS:
            return
        if name == "br":
            self.document.insert("\n")
            return
        if name == "hr":
            self.newline()
            self.write("─" * 20)
            self.document.insert("\n")
            return
        if name == "img":
            self.image(node)
            return
        if name == "table":
            self.table(node)
            return

        pushed: str | None = None
        saved_link = self.link
        if name in _HEADINGS:
            pushed = f"html-heading-{_HEADINGS[name]}"
        elif name in _INLINE_FACES:
            pushed = _INLINE_FACES[name]
        elif name == "a" and node.get("href"):
            self.link = str(node["href"])
            pushed = "html-link"

        block = name in _BLOCK_TAGS or name in _HEADINGS
        if block:
            self.newline()
        if name == "pre":
            self.preformatted += 1
        if name in ("ul", "ol"):
            self.lists.append([name, 0])
        if name == "li":
            self.bullet()
        if pushed is not None:
            self.faces.append(pushed)

        for child in node.children:
            self.walk(child)

        if pushed is not None:
            self.faces.pop()
        if name in ("ul", "ol"):
            self.lists.pop()
        if name == "pre":
            self.preformatted -= 1
        self.link = saved_link
        if block:
            self.newline()
            if name in ("p", "pre", "blockquote") or name in _HEADINGS:
                self.document.insert("\n")

    def bullet(self) -> None:
        indent = "  " * max(len(self.lists) - 1, 0)
        if self.lists and self.lists[-1][0] == "ol":
            self.lists[-1][1] += 1
            self.write(f"{indent}{self.lists[-1][1]}. ")
        else:
            self.write(f"{indent}• ")

    def image(self, node: Tag) -> None:
        src = str(node.get("src") or "")
        match = _DATA_URI_RE.match(src)
        if match is None:
            alt = str(node.get("alt") or "image")
            self.write(f"[{alt}]")
            return
        mime_type = match.group(1)
        metadata = {key: node.get(key) for key in ("width", "height") if node.get(key)}
        data = decode_image_data(match.group(2), mime_type)
        insert_image(self.document, data, mime_type, metadata, ascent=self.ascent)

    def table(self, node: Tag) -> None:
        rows: list[list[tuple[str, bool]]] = []
        for tr in node.find_all("tr"):
            cells = [
                (cell.get_text(" ", strip=True), cell.name == "th")
                for cell in tr.find_all(["td", "th"], recursive=False)
            ]
            if cells:
                rows.append(cells)
        if not rows:
            return
        columns = max(len(row) for row in rows)
        widths = [0] * columns
        for row in rows:
            for i, (cell, _) in enumerate(row):
                widths[i] = max(widths[i], visible_width(cell))

        self.newline()
        for row in rows:
            for i, (cell, header) in enumerate(row):
                if i:
                    self.write(" │ ")
                if header:
                    self.faces.append("bold")
                self.write(pad_to_width(cell, widths[i]) if i < len(row) - 1 else cell)
                if header:
                    self.faces.pop()
            self.document.insert("\n")


class HtmlRenderer:
    """Strategy for ``text/html``."""

    def __init__(
        self,
        link_handler: LinkHandler,
        ascent: int = DEFAULT_IMAGE_ASCENT,
    ) -> None:
        self.link_handler = link_handler
        self.ascent = ascent

    def __call__(
        self,
        document: Document,
        mime_type: str,
        content: Any,
        metadata: Mapping[str, Any],
    ) -> bool:
        soup = parse_html(str(content))
        writer = _HtmlWriter(document, self.link_handler, self.ascent)
        writer.walk(soup)
        # Trailing blank lines from block elements
        end = document.point
        trimmed = end
        while trimmed > writer.start + 1 and document.substring(trimmed - 2, trimmed) == "\n\n":
            trimmed -= 1
        if trimmed < end:
            document.delete(trimmed, end)
        return True
