"""Custom exception hierarchy for mvt_renderer."""

from __future__ import annotations


class MVTRendererError(Exception):
    """Base class for all custom errors raised by mvt_renderer."""


# --- Style errors ---

class StyleError(MVTRendererError):
    """Base class for style document failures."""


class StyleParseError(StyleError):
    """Raised when a style document is not valid JSON or not a valid style."""


class NotLoadedError(StyleError):
    """Raised when a style-dependent call happens before a successful load."""


class StyleCompileError(StyleError):
    """Raised when a single style layer cannot be compiled."""


# --- Tile errors ---

class TileError(MVTRendererError):
    """Base class for tile payload failures."""


class DecodeError(TileError):
    """Raised when the tile payload cannot be decompressed or parsed."""


class LayerDecodeError(TileError):
    """Raised when one source layer cannot be converted into features."""


# --- Settings errors ---

class SettingsValidationError(MVTRendererError):
    """Raised when render options fail schema validation."""
