"""Conversions between Mapbox zoom levels and OGC scale denominators."""

from __future__ import annotations

import math

from .config import SCALE_DENOMINATOR_ZOOM_0, ZOOM_CLAMP


def clamp_zoom(zoom: float) -> float:
    """Clamp ``zoom`` to ``[-ZOOM_CLAMP, ZOOM_CLAMP]``."""

    return max(-ZOOM_CLAMP, min(ZOOM_CLAMP, float(zoom)))


def zoom_to_scale_denominator(zoom: float) -> float:
    """Return the scale denominator matching ``zoom``.

    Callers are expected to clamp ``zoom`` first; the function itself does not
    so the conversion stays a pure formula.
    """

    return SCALE_DENOMINATOR_ZOOM_0 / math.pow(2.0, zoom)


def scale_denominator_to_zoom(scale_denominator: float) -> float:
    """Inverse of :func:`zoom_to_scale_denominator`."""

    if scale_denominator <= 0:
        raise ValueError("scale denominator must be positive")
    return math.log2(SCALE_DENOMINATOR_ZOOM_0 / scale_denominator)


__all__ = ["clamp_zoom", "scale_denominator_to_zoom", "zoom_to_scale_denominator"]
