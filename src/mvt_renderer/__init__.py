"""Render Mapbox vector tiles with Mapbox GL style documents.

The package exposes the tile-to-paint pipeline: :class:`TileDecoder` turns
tile bytes into map-space :class:`SourceLayer` records, :class:`StyleResolver`
turns a style document into cached :class:`CompiledStyle` objects and
:class:`LayerCompositor` pairs both in paint order for a renderer such as
:class:`~mvt_renderer.qt_renderer.QtTileRenderer`.
"""

from .compositor import LayerCompositor, current_scale_denominator, scale_denominator_context
from .errors import (
    DecodeError,
    LayerDecodeError,
    MVTRendererError,
    NotLoadedError,
    StyleCompileError,
    StyleParseError,
)
from .model import Envelope, Feature, PaintEntry, SourceLayer, TileContext
from .settings import RenderOptions
from .style import CompiledStyle, StyleResolver, extract_attributes
from .tile import VectorTile
from .tile_decoder import TileDecoder

__all__ = [
    "CompiledStyle",
    "DecodeError",
    "Envelope",
    "Feature",
    "LayerCompositor",
    "LayerDecodeError",
    "MVTRendererError",
    "NotLoadedError",
    "PaintEntry",
    "RenderOptions",
    "SourceLayer",
    "StyleCompileError",
    "StyleParseError",
    "StyleResolver",
    "TileContext",
    "TileDecoder",
    "VectorTile",
    "current_scale_denominator",
    "extract_attributes",
    "scale_denominator_context",
]
