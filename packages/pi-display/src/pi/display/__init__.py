"""pi-display: MIME bundle rendering with named, updatable display regions."""

# ANSI escapes and terminal control codes
from pi.display.ansi import AnsiContext, AnsiState, apply_ansi, handle_control_codes

# MIME bundles
from pi.display.bundle import (
    GRAPHIC_MIME_TYPES,
    NONGRAPHIC_MIME_TYPES,
    UNTAGGED_MIME_TYPES,
    MimeBundle,
)

# External format conversion
from pi.display.convert import ExternalConverter, pandoc_args

# Facade
from pi.display.display import DisplayManager

# Rich-text document model
from pi.display.document import Document, Marker, Span

# Errors
from pi.display.errors import (
    ConversionError,
    DisplayError,
    DisplayNotFoundError,
    RenderError,
    UnknownDisplayIdError,
)

# Region navigation
from pi.display.navigation import (
    Region,
    beginning_of_display,
    current_display,
    delete_current_display,
    display_regions,
    end_of_display,
    next_display_with_id,
)

# Display identities
from pi.display.regions import DisplayId, DisplayIdTable, tag_region

# Renderer registry
from pi.display.registry import Renderer, RendererRegistry, RenderStrategy

# Built-in renderers
from pi.display.renderers import register_builtin_renderers

# Settings
from pi.display.settings import DisplaySettings, load_settings, save_settings

# Updates
from pi.display.update import update_display

__all__ = [
    # ANSI
    "AnsiContext",
    "AnsiState",
    "apply_ansi",
    "handle_control_codes",
    # Bundles
    "GRAPHIC_MIME_TYPES",
    "NONGRAPHIC_MIME_TYPES",
    "UNTAGGED_MIME_TYPES",
    "MimeBundle",
    # Conversion
    "ExternalConverter",
    "pandoc_args",
    # Facade
    "DisplayManager",
    # Document
    "Document",
    "Marker",
    "Span",
    # Errors
    "ConversionError",
    "DisplayError",
    "DisplayNotFoundError",
    "RenderError",
    "UnknownDisplayIdError",
    # Navigation
    "Region",
    "beginning_of_display",
    "current_display",
    "delete_current_display",
    "display_regions",
    "end_of_display",
    "next_display_with_id",
    # Identities
    "DisplayId",
    "DisplayIdTable",
    "tag_region",
    # Registry
    "Renderer",
    "RendererRegistry",
    "RenderStrategy",
    "register_builtin_renderers",
    # Settings
    "DisplaySettings",
    "load_settings",
    "save_settings",
    # Updates
    "update_display",
]
