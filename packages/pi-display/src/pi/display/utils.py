"""Column widths for laying out rendered text, such as table cells.

Widths count terminal columns: wide East Asian characters and emoji take two,
combining marks and control characters none, escape sequences nothing at all.
"""

from __future__ import annotations

import unicodedata
from functools import lru_cache

import grapheme
import wcwidth

from pi.display.ansi import ESCAPE_RE

# VS16 and ZWJ force emoji presentation of the cluster they appear in
_EMOJI_JOINERS = frozenset({0xFE0F, 0x200D})
# Regional indicators, skin tone modifiers
_EMOJI_RANGES = ((0x1F1E6, 0x1F1FF), (0x1F3FB, 0x1F3FF))


def _is_emoji_cluster(cluster: str) -> bool:
    for ch in cluster:
        cp = ord(ch)
        if cp in _EMOJI_JOINERS or any(lo <= cp <= hi for lo, hi in _EMOJI_RANGES):
            return True
    base = ord(cluster[0])
    return base >= 0x1F000 or 0x2600 <= base <= 0x27BF


def cluster_width(cluster: str) -> int:
    """Columns taken by one grapheme cluster."""
    if not cluster:
        return 0
    if len(cluster) > 1 and _is_emoji_cluster(cluster):
        return 2
    base = cluster[0]
    if unicodedata.category(base) in ("Cc", "Cf") or unicodedata.combining(base):
        return 0
    return max(wcwidth.wcwidth(base), 0)


@lru_cache(maxsize=512)
def _clusters_width(text: str) -> int:
    return sum(cluster_width(cluster) for cluster in grapheme.graphemes(text))


def visible_width(text: str) -> int:
    """Columns *text* takes once escape sequences are dropped; a tab counts as three."""
    text = ESCAPE_RE.sub("", text).replace("\t", "   ")
    if text.isascii() and text.isprintable():
        return len(text)
    return _clusters_width(text)


def pad_to_width(text: str, width: int) -> str:
    """Right-pad *text* with spaces to *width* columns."""
    return text + " " * max(width - visible_width(text), 0)
