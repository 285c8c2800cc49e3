"""Inline image rendering.

An image is inserted as a short alt-text placeholder carrying an
``InlineImage`` in the ``image`` attribute; a front end draws the image in
place of the placeholder text.
"""

from __future__ import annotations

import base64
import binascii
import re
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pi.display.bundle import IMAGE_GIF, IMAGE_JPEG, IMAGE_PNG, IMAGE_SVG, IMAGE_WEBP
from pi.display.document import IMAGE, Document
from pi.display.errors import RenderError
from pi.display.settings import DEFAULT_IMAGE_ASCENT


@dataclass(frozen=True)
class ImageDimensions:
    width_px: int
    height_px: int


@dataclass(frozen=True)
class InlineImage:
    """Image shown in place of the document text it is attached to.

    ``data`` is raw bytes for raster images and markup for SVG. ``mask`` is
    ``"heuristic"`` when the image needs a background to be legible.
    """

    data: bytes | str
    mime_type: str
    width: int | None = None
    height: int | None = None
    mask: str | None = None
    ascent: int = DEFAULT_IMAGE_ASCENT
    alt: str = ""


# ---------------------------------------------------------------------------
# Header sniffing
# ---------------------------------------------------------------------------


def get_png_dimensions(data: bytes) -> ImageDimensions | None:
    if len(data) < 24 or data[0:4] != b"\x89PNG":
        return None
    width, height = struct.unpack(">II", data[16:24])
    return ImageDimensions(width_px=width, height_px=height)


def get_jpeg_dimensions(data: bytes) -> ImageDimensions | None:
    if len(data) < 2 or data[0:2] != b"\xff\xd8":
        return None
    offset = 2
    while offset < len(data) - 9:
        if data[offset] != 0xFF:
            offset += 1
            continue
        marker = data[offset + 1]
        if 0xC0 <= marker <= 0xC2:
            height, width = struct.unpack(">HH", data[offset + 5 : offset + 9])
            return ImageDimensions(width_px=width, height_px=height)
        length = struct.unpack(">H", data[offset + 2 : offset + 4])[0]
        if length < 2:
            return None
        offset += 2 + length
    return None


def get_gif_dimensions(data: bytes) -> ImageDimensions | None:
    if len(data) < 10 or data[0:6] not in (b"GIF87a", b"GIF89a"):
        return None
    width, height = struct.unpack("<HH", data[6:10])
    return ImageDimensions(width_px=width, height_px=height)


def get_webp_dimensions(data: bytes) -> ImageDimensions | None:
    if len(data) < 30 or data[0:4] != b"RIFF" or data[8:12] != b"WEBP":
        return None
    chunk = data[12:16]
    if chunk == b"VP8 ":
        width = struct.unpack("<H", data[26:28])[0] & 0x3FFF
        height = struct.unpack("<H", data[28:30])[0] & 0x3FFF
        return ImageDimensions(width_px=width, height_px=height)
    if chunk == b"VP8L":
        bits = struct.unpack("<I", data[21:25])[0]
        return ImageDimensions(width_px=(bits & 0x3FFF) + 1, height_px=((bits >> 14) & 0x3FFF) + 1)
    if chunk == b"VP8X":
        width = (data[24] | (data[25] << 8) | (data[26] << 16)) + 1
        height = (data[27] | (data[28] << 8) | (data[29] << 16)) + 1
        return ImageDimensions(width_px=width, height_px=height)
    return None


def get_svg_dimensions(markup: str) -> ImageDimensions | None:
    head = markup[: markup.find(">", markup.find("<svg")) + 1] if "<svg" in markup else ""
    sizes: dict[str, int] = {}
    for attr in ("width", "height"):
        match = re.search(rf"\b{attr}\s*=\s*[\"']\s*([0-9.]+)", head)
        if match:
            sizes[attr] = int(float(match.group(1)))
    if len(sizes) < 2:
        return None
    return ImageDimensions(width_px=sizes["width"], height_px=sizes["height"])


def get_image_dimensions(data: bytes | str, mime_type: str) -> ImageDimensions | None:
    if mime_type == IMAGE_SVG:
        return get_svg_dimensions(data if isinstance(data, str) else data.decode("utf-8", "replace"))
    if isinstance(data, str):
        return None
    if mime_type == IMAGE_PNG:
        return get_png_dimensions(data)
    if mime_type == IMAGE_JPEG:
        return get_jpeg_dimensions(data)
    if mime_type == IMAGE_GIF:
        return get_gif_dimensions(data)
    if mime_type == IMAGE_WEBP:
        return get_webp_dimensions(data)
    return None


def image_fallback(
    mime_type: str,
    dimensions: ImageDimensions | None = None,
    filename: str | None = None,
) -> str:
    parts: list[str] = []
    if filename:
        parts.append(filename)
    parts.append(f"[{mime_type}]")
    if dimensions:
        parts.append(f"{dimensions.width_px}x{dimensions.height_px}")
    return f"[Image: {' '.join(parts)}]"


# ---------------------------------------------------------------------------
# Insertion
# ---------------------------------------------------------------------------


def decode_image_data(content: Any, mime_type: str) -> bytes | str:
    """Raster content arrives base64 encoded; SVG arrives as markup."""
    if mime_type == IMAGE_SVG:
        return content.decode("utf-8") if isinstance(content, bytes) else str(content)
    if isinstance(content, bytes):
        return content
    try:
        return base64.b64decode("".join(str(content).split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise RenderError(f"Invalid base64 data for {mime_type}: {exc}") from exc


def _int_or_none(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def insert_image(
    document: Document,
    data: bytes | str,
    mime_type: str,
    metadata: Mapping[str, Any] | None = None,
    *,
    ascent: int = DEFAULT_IMAGE_ASCENT,
) -> tuple[int, int]:
    """Insert decoded image *data* at point and return the placeholder bounds."""
    metadata = metadata or {}
    width = _int_or_none(metadata.get("width"))
    height = _int_or_none(metadata.get("height"))
    if width is None or height is None:
        sniffed = get_image_dimensions(data, mime_type)
        if sniffed is not None:
            width = sniffed.width_px if width is None else width
            height = sniffed.height_px if height is None else height
    dimensions = ImageDimensions(width, height) if width is not None and height is not None else None
    alt = image_fallback(mime_type, dimensions, metadata.get("filename"))
    image = InlineImage(
        data=data,
        mime_type=mime_type,
        width=width,
        height=height,
        mask="heuristic" if metadata.get("needs_background") else None,
        ascent=ascent,
        alt=alt,
    )
    return document.insert(alt, {IMAGE: image})


class ImageRenderer:
    """Strategy for ``image/*`` MIME types."""

    def __init__(self, ascent: int = DEFAULT_IMAGE_ASCENT) -> None:
        self.ascent = ascent

    def __call__(
        self,
        document: Document,
        mime_type: str,
        content: Any,
        metadata: Mapping[str, Any],
    ) -> bool:
        data = decode_image_data(content, mime_type)
        insert_image(document, data, mime_type, metadata, ascent=self.ascent)
        return True
