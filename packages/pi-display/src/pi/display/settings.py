"""Display settings with JSON persistence.

Settings live in ``~/.pi/display.json`` with camelCase keys, matching the
other pi settings files. Missing keys keep their defaults.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from pi.display.bundle import GRAPHIC_MIME_TYPES, NONGRAPHIC_MIME_TYPES

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".pi"
SETTINGS_FILE_NAME = "display.json"

# Percentage of an inline image's height above the text baseline
DEFAULT_IMAGE_ASCENT = 50


@dataclass
class DisplaySettings:
    """Controls MIME preference, graphics and the external programs used by renderers."""

    mime_types: list[str] = field(default_factory=lambda: list(GRAPHIC_MIME_TYPES))
    nongraphic_mime_types: list[str] = field(default_factory=lambda: list(NONGRAPHIC_MIME_TYPES))
    graphics: bool | None = None
    image_ascent: int = DEFAULT_IMAGE_ASCENT
    latex_program: str = "latex"
    dvipng_program: str = "dvipng"
    latex_dpi: int = 150
    converter_program: str = "pandoc"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DisplaySettings:
        known = {f.name: f.name for f in fields(cls)}
        known.update({_camel(f.name): f.name for f in fields(cls)})
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = known.get(key)
            if name is None or value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    def graphics_enabled(self) -> bool:
        if self.graphics is not None:
            return self.graphics
        return detect_graphics()

    def preferred_mime_types(self) -> list[str]:
        return self.mime_types if self.graphics_enabled() else self.nongraphic_mime_types


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def detect_graphics() -> bool:
    """Whether the current terminal can show inline images."""
    term_program = os.environ.get("TERM_PROGRAM", "").lower()
    term = os.environ.get("TERM", "").lower()

    if os.environ.get("KITTY_WINDOW_ID") or term_program == "kitty":
        return True
    if term_program == "ghostty" or "ghostty" in term or os.environ.get("GHOSTTY_RESOURCES_DIR"):
        return True
    if os.environ.get("WEZTERM_PANE") or term_program == "wezterm":
        return True
    if os.environ.get("ITERM_SESSION_ID") or term_program == "iterm.app":
        return True
    return False


def default_settings_path() -> Path:
    return Path.home() / CONFIG_DIR_NAME / SETTINGS_FILE_NAME


def load_settings(path: Path | str | None = None) -> DisplaySettings:
    """Load settings from *path* (default ``~/.pi/display.json``).

    A missing file gives the defaults. Malformed JSON raises ``ValueError``.
    """
    settings_path = Path(path) if path is not None else default_settings_path()
    if not settings_path.exists():
        logger.debug("No display settings at %s, using defaults", settings_path)
        return DisplaySettings()
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid display settings in {settings_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Display settings in {settings_path} must be a JSON object")
    return DisplaySettings.from_dict(data)


def save_settings(settings: DisplaySettings, path: Path | str | None = None) -> None:
    settings_path = Path(path) if path is not None else default_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
