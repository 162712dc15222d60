"""Default configuration values for mvt_renderer."""

from __future__ import annotations

from typing import Final

# Tile grid size assumed when a layer omits its extent.
DEFAULT_TILE_EXTENT: Final[int] = 4096

# Zoom levels are clamped to this magnitude before scale conversion.
ZOOM_CLAMP: Final[float] = 25.0

# OGC scale denominator at zoom 0 for 256px web mercator tiles rendered at
# the standard 0.28mm pixel size.
SCALE_DENOMINATOR_ZOOM_0: Final[float] = 559_082_264.028717

# OGC standardised rendering pixel size in metres.
STANDARD_PIXEL_SIZE: Final[float] = 0.00028

GZIP_MAGIC: Final[bytes] = b"\x1f\x8b"

# Family substrings searched (in order) when a style references a font that is
# not installed.
FONT_FAMILY_PRIORITY: Final[tuple[str, ...]] = ("Noto", "DejaVu", "Liberation")

# ---------------------------------------------------------------------------
# Label defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_LABEL_WIDTH: Final[float] = 200.0
DEFAULT_MAX_TEXT_SIZE: Final[float] = 64.0
DEFAULT_TEXT_SIZE: Final[float] = 16.0
DEFAULT_TEXT_FONT: Final[tuple[str, ...]] = ("Open Sans Regular", "Arial Unicode MS Regular")

TILE_LIMITS_COLOR: Final[str] = "#ff0000"
