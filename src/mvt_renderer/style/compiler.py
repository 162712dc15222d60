"""Compile style layers into renderer-ready styles."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..config import DEFAULT_TEXT_FONT, DEFAULT_TEXT_SIZE
from ..errors import StyleCompileError
from ..scale import clamp_zoom, zoom_to_scale_denominator
from .document import StyleLayerSpec


@dataclass(frozen=True)
class BackgroundSymbolizer:
    color: Any = "#000000"
    opacity: Any = 1.0


@dataclass(frozen=True)
class FillSymbolizer:
    color: Any = "#000000"
    opacity: Any = 1.0
    outline_color: Any = None


@dataclass(frozen=True)
class LineSymbolizer:
    color: Any = "#000000"
    width: Any = 1.0
    opacity: Any = 1.0
    dasharray: Any = None
    cap: Any = "butt"
    join: Any = "miter"


@dataclass(frozen=True)
class CircleSymbolizer:
    color: Any = "#000000"
    radius: Any = 5.0
    opacity: Any = 1.0
    stroke_color: Any = None
    stroke_width: Any = 0.0


@dataclass(frozen=True)
class TextSymbolizer:
    field: Any
    size: Any = DEFAULT_TEXT_SIZE
    font: Any = DEFAULT_TEXT_FONT
    color: Any = "#000000"
    halo_color: Any = None
    halo_width: Any = 0.0
    transform: Any = None
    max_width: Any = 10.0
    padding: Any = 2.0
    placement: Any = "point"
    allow_partials: bool = False


Symbolizer = Union[BackgroundSymbolizer, FillSymbolizer, LineSymbolizer, CircleSymbolizer, TextSymbolizer]


@dataclass(frozen=True)
class Rule:
    """Symbolizers applied to the features matching ``filter``."""

    symbolizers: tuple[Symbolizer, ...]
    filter: Any = None
    min_scale: Optional[float] = None
    max_scale: Optional[float] = None


@dataclass(frozen=True)
class CompiledStyle:
    """Renderer-ready form of one style layer."""

    layer_id: str
    layer_type: str
    rules: tuple[Rule, ...]
    min_scale: Optional[float] = None
    max_scale: Optional[float] = None

    def applies_to_scale(self, scale_denominator: float) -> bool:
        """Mirror ``minzoom <= zoom < maxzoom`` in scale denominator terms."""

        if self.min_scale is not None and scale_denominator <= self.min_scale:
            return False
        if self.max_scale is not None and scale_denominator > self.max_scale:
            return False
        return True

    def with_partial_labels(self) -> "CompiledStyle":
        """Allow clipped labels when the style is a single text-only rule."""

        if len(self.rules) != 1:
            return self
        rule = self.rules[0]
        if len(rule.symbolizers) != 1 or not isinstance(rule.symbolizers[0], TextSymbolizer):
            return self
        symbolizer = dataclasses.replace(rule.symbolizers[0], allow_partials=True)
        return dataclasses.replace(self, rules=(dataclasses.replace(rule, symbolizers=(symbolizer,)),))


def scale_range(spec: StyleLayerSpec) -> tuple[Optional[float], Optional[float]]:
    """Return ``(min_scale, max_scale)`` for the layer's zoom bounds.

    The maximum zoom defines the finest (smallest) scale and the minimum zoom
    the coarsest one.
    """

    min_scale = zoom_to_scale_denominator(clamp_zoom(spec.maxzoom)) if spec.maxzoom is not None else None
    max_scale = zoom_to_scale_denominator(clamp_zoom(spec.minzoom)) if spec.minzoom is not None else None
    return min_scale, max_scale


def _props(section: Mapping[str, Any], prefix: str, names: Mapping[str, str]) -> dict[str, Any]:
    return {attribute: section[f"{prefix}-{key}"] for attribute, key in names.items() if f"{prefix}-{key}" in section}


def _symbolizers(spec: StyleLayerSpec) -> tuple[Symbolizer, ...]:
    paint, layout = spec.paint, spec.layout
    if spec.type == "background":
        return (BackgroundSymbolizer(**_props(paint, "background", {"color": "color", "opacity": "opacity"})),)
    if spec.type == "fill":
        names = {"color": "color", "opacity": "opacity", "outline_color": "outline-color"}
        return (FillSymbolizer(**_props(paint, "fill", names)),)
    if spec.type == "line":
        values = _props(paint, "line", {"color": "color", "width": "width", "opacity": "opacity", "dasharray": "dasharray"})
        values.update(_props(layout, "line", {"cap": "cap", "join": "join"}))
        return (LineSymbolizer(**values),)
    if spec.type == "circle":
        names = {
            "color": "color",
            "radius": "radius",
            "opacity": "opacity",
            "stroke_color": "stroke-color",
            "stroke_width": "stroke-width",
        }
        return (CircleSymbolizer(**_props(paint, "circle", names)),)
    if spec.type == "symbol":
        if "text-field" not in layout:
            # Icon-only symbols need sprites, which are not rendered.
            return ()
        values = _props(
            layout,
            "text",
            {
                "field": "field",
                "size": "size",
                "font": "font",
                "transform": "transform",
                "max_width": "max-width",
                "padding": "padding",
            },
        )
        values.update(_props(paint, "text", {"color": "color", "halo_color": "halo-color", "halo_width": "halo-width"}))
        if "symbol-placement" in layout:
            values["placement"] = layout["symbol-placement"]
        return (TextSymbolizer(**values),)
    raise StyleCompileError(f"Unsupported layer type '{spec.type}' in layer '{spec.id}'")


def compile_layer(spec: StyleLayerSpec) -> CompiledStyle:
    """Compile ``spec`` into a :class:`CompiledStyle` bounded by its zoom range."""

    min_scale, max_scale = scale_range(spec)
    symbolizers = _symbolizers(spec)
    rules: tuple[Rule, ...] = ()
    if symbolizers:
        rules = (Rule(symbolizers=symbolizers, filter=spec.filter, min_scale=min_scale, max_scale=max_scale),)
    return CompiledStyle(
        layer_id=spec.id,
        layer_type=spec.type,
        rules=rules,
        min_scale=min_scale,
        max_scale=max_scale,
    )


__all__ = [
    "BackgroundSymbolizer",
    "CircleSymbolizer",
    "CompiledStyle",
    "FillSymbolizer",
    "LineSymbolizer",
    "Rule",
    "Symbolizer",
    "TextSymbolizer",
    "compile_layer",
    "scale_range",
]
