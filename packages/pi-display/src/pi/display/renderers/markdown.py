"""Markdown fontification in place.

The raw markdown is inserted as-is and then decorated: markup characters are
made invisible rather than deleted, so copying the region gives back the
original source. Block structure (headings, code fences, block quotes) comes
from ``markdown-it-py``; inline markup is matched line by line inside the
inline blocks it reports. Math (``$...$``, ``$$...$$``) is passed through
untouched so that underscores and asterisks in it are not taken as emphasis.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token

from pi.display.document import FOLLOW_LINK, INVISIBLE, LINK, Document

LinkHandler = Callable[[str], Any]

MARKUP_INVISIBLE = "markdown-markup"

_md_parser = MarkdownIt("commonmark").enable(["table", "strikethrough"])

_HEADING_RE = re.compile(r"^( {0,3})(#{1,6})([ \t]+|$)")
_HEADING_CLOSE_RE = re.compile(r"[ \t]+#+[ \t]*$")
_FENCE_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})(.*)$")
_QUOTE_RE = re.compile(r"^(?: {0,3}> ?)+")

_MATH_RE = re.compile(r"\$\$.+?\$\$|(?<![\\$])\$(?=\S)[^$\n]+?(?<=\S)\$(?!\d)")
_CODE_RE = re.compile(r"(`+)(.+?)\1")
_LINK_RE = re.compile(r"(?<!!)\[([^\]\n]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_ITALIC_RE = re.compile(r"(?<![*\w])\*(?![*\s])(.+?)(?<![*\s])\*(?![*\w])|(?<![_\w])_(?![_\s])(.+?)(?<![_\s])_(?![_\w])")
_STRIKE_RE = re.compile(r"~~(?=\S)(.+?)(?<=\S)~~")


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            offsets.append(i + 1)
    return offsets


class _Fontifier:
    def __init__(self, document: Document, begin: int, end: int, follow_link: LinkHandler) -> None:
        self.document = document
        self.begin = begin
        self.text = document.substring(begin, end)
        self.offsets = _line_offsets(self.text)
        self.follow_link = follow_link
        self.protected: list[tuple[int, int]] = []
        self.inline_lines: set[int] = set()
        self.quote_lines: set[int] = set()

    # -- helpers ------------------------------------------------------------

    def line(self, n: int) -> tuple[int, int]:
        """Bounds of line *n* relative to the fontified text, newline excluded."""
        start = self.offsets[n]
        end = self.offsets[n + 1] - 1 if n + 1 < len(self.offsets) else len(self.text)
        return start, end

    def hide(self, start: int, end: int) -> None:
        if start < end:
            self.document.put(self.begin + start, self.begin + end, INVISIBLE, MARKUP_INVISIBLE)

    def face(self, start: int, end: int, face: str) -> None:
        if start < end:
            self.document.add_face(self.begin + start, self.begin + end, (face,), append=True)

    def is_protected(self, start: int, end: int) -> bool:
        return any(start < p_end and p_start < end for p_start, p_end in self.protected)

    # -- blocks -------------------------------------------------------------

    def run(self) -> None:
        tokens = _md_parser.parse(self.text)
        for token in tokens:
            if token.type == "heading_open":
                self.heading(token, int(token.tag[1]))
            elif token.type in ("fence", "code_block"):
                self.code_block(token)
            elif token.type == "blockquote_open":
                self.blockquote(token)
            elif token.type == "inline" and token.map is not None:
                # Table cells share a line; fontify each line once
                for n in range(*token.map):
                    if n not in self.inline_lines:
                        self.inline_lines.add(n)
                        self.inline(*self.line(n))

    def heading(self, token: Token, level: int) -> None:
        if token.map is None:
            return
        first, last = token.map
        face = f"markdown-header-{level}"
        if token.markup.startswith("#"):
            start, end = self.line(first)
            line = self.text[start:end]
            match = _HEADING_RE.match(line)
            if match is not None:
                self.hide(start, start + match.end())
                closing = _HEADING_CLOSE_RE.search(line, match.end())
                content_end = start + closing.start() if closing else end
                if closing:
                    self.hide(content_end, end)
                self.face(start + match.end(), content_end, face)
        else:
            # Setext: the underline is markup
            for n in range(first, last - 1):
                self.face(*self.line(n), face)
            self.hide(*self.line(last - 1))

    def code_block(self, token: Token) -> None:
        if token.map is None:
            return
        first, last = token.map
        body_first, body_last = first, last
        if token.type == "fence":
            open_start, open_end = self.line(first)
            if _FENCE_RE.match(self.text[open_start:open_end]):
                self.hide(open_start, open_end)
                body_first += 1
            close_start, close_end = self.line(last - 1)
            if last - 1 > first and _FENCE_RE.match(self.text[close_start:close_end]):
                self.hide(close_start, close_end)
                body_last -= 1
        for n in range(body_first, body_last):
            self.face(*self.line(n), "markdown-code")
        if body_first < body_last:
            self.protected.append((self.line(body_first)[0], self.line(body_last - 1)[1]))

    def blockquote(self, token: Token) -> None:
        if token.map is None:
            return
        for n in range(*token.map):
            if n in self.quote_lines:
                continue
            self.quote_lines.add(n)
            start, end = self.line(n)
            match = _QUOTE_RE.match(self.text[start:end])
            if match is not None:
                self.hide(start, start + match.end())
            self.face(start, end, "markdown-blockquote")

    # -- inline -------------------------------------------------------------

    def inline(self, start: int, end: int) -> None:
        line = self.text[:end]

        for match in _MATH_RE.finditer(line, start, end):
            self.face(match.start(), match.end(), "markdown-math")
            self.protected.append(match.span())

        for match in _CODE_RE.finditer(line, start, end):
            if self.is_protected(*match.span()):
                continue
            ticks = len(match.group(1))
            self.hide(match.start(), match.start() + ticks)
            self.hide(match.end() - ticks, match.end())
            self.face(match.start() + ticks, match.end() - ticks, "markdown-inline-code")
            self.protected.append(match.span())

        for match in _LINK_RE.finditer(line, start, end):
            if self.is_protected(match.start(), match.start() + 1):
                continue
            text_start, text_end = match.span(1)
            self.hide(match.start(), text_start)
            self.hide(text_end, match.end())
            self.face(text_start, text_end, "markdown-link")
            self.document.put(self.begin + text_start, self.begin + text_end, LINK, match.group(2))
            self.document.put(self.begin + text_start, self.begin + text_end, FOLLOW_LINK, self.follow_link)

        self.delimited(_BOLD_RE, line, start, end, "markdown-bold", lambda m: len(m.group(1)))
        self.delimited(_STRIKE_RE, line, start, end, "markdown-strike", lambda m: 2)
        self.delimited(_ITALIC_RE, line, start, end, "markdown-italic", lambda m: 1)

    def delimited(
        self,
        pattern: re.Pattern[str],
        line: str,
        start: int,
        end: int,
        face: str,
        width: Callable[[re.Match[str]], int],
    ) -> None:
        for match in pattern.finditer(line, start, end):
            size = width(match)
            if self.is_protected(match.start(), match.start() + size) or self.is_protected(match.end() - size, match.end()):
                continue
            self.hide(match.start(), match.start() + size)
            self.hide(match.end() - size, match.end())
            self.face(match.start() + size, match.end() - size, face)


def fontify_markdown(document: Document, begin: int, end: int, follow_link: LinkHandler) -> None:
    """Fontify the markdown source in ``[begin, end)`` of *document*."""
    _Fontifier(document, begin, end, follow_link).run()


class MarkdownRenderer:
    """Strategy for ``text/markdown``.

    Links are followed through *link_handler*, separately from the HTML
    renderer's handler.
    """

    def __init__(self, link_handler: LinkHandler) -> None:
        self.link_handler = link_handler

    def __call__(
        self,
        document: Document,
        mime_type: str,
        content: Any,
        metadata: Mapping[str, Any],
    ) -> bool:
        begin, end = document.insert(str(content))
        fontify_markdown(document, begin, end, self.link_handler)
        return True
