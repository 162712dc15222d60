from __future__ import annotations

import pytest

from mvt_renderer.errors import StyleCompileError
from mvt_renderer.scale import clamp_zoom, scale_denominator_to_zoom, zoom_to_scale_denominator
from mvt_renderer.style.compiler import (
    BackgroundSymbolizer,
    CircleSymbolizer,
    FillSymbolizer,
    LineSymbolizer,
    TextSymbolizer,
    compile_layer,
)
from mvt_renderer.style.document import StyleLayerSpec


def _spec(**data: object) -> StyleLayerSpec:
    return StyleLayerSpec.from_json({"id": "layer", **data})


def test_zoom_to_scale_denominator() -> None:
    assert zoom_to_scale_denominator(0) == pytest.approx(559082264.028717)
    assert zoom_to_scale_denominator(1) == pytest.approx(279541132.0143585)
    assert scale_denominator_to_zoom(zoom_to_scale_denominator(13.5)) == pytest.approx(13.5)
    assert clamp_zoom(40) == 25.0
    assert clamp_zoom(-40) == -25.0
    with pytest.raises(ValueError):
        scale_denominator_to_zoom(0)


def test_zoom_bounds_map_to_scale_range() -> None:
    style = compile_layer(_spec(type="fill", minzoom=10, maxzoom=14))

    assert style.min_scale == pytest.approx(zoom_to_scale_denominator(14))
    assert style.max_scale == pytest.approx(zoom_to_scale_denominator(10))
    assert style.rules[0].min_scale == style.min_scale
    assert style.rules[0].max_scale == style.max_scale


def test_unbounded_layer_applies_everywhere() -> None:
    style = compile_layer(_spec(type="fill"))
    assert style.min_scale is None
    assert style.max_scale is None
    assert style.applies_to_scale(1.0)
    assert style.applies_to_scale(1e12)


def test_applies_to_scale_mirrors_zoom_range() -> None:
    style = compile_layer(_spec(type="line", minzoom=10, maxzoom=14))

    assert style.applies_to_scale(zoom_to_scale_denominator(10))
    assert style.applies_to_scale(zoom_to_scale_denominator(12))
    assert not style.applies_to_scale(zoom_to_scale_denominator(14))
    assert not style.applies_to_scale(zoom_to_scale_denominator(9))


def test_zoom_bounds_are_clamped() -> None:
    style = compile_layer(_spec(type="fill", maxzoom=30))
    assert style.min_scale == pytest.approx(zoom_to_scale_denominator(25))


def test_symbolizers_follow_layer_type() -> None:
    background = compile_layer(_spec(type="background", paint={"background-color": "#eee"}))
    fill = compile_layer(_spec(type="fill", paint={"fill-color": "#00f", "fill-outline-color": "#000"}))
    line = compile_layer(
        _spec(type="line", paint={"line-width": 3, "line-dasharray": [2, 1]}, layout={"line-cap": "round"})
    )
    circle = compile_layer(_spec(type="circle", paint={"circle-radius": 4}))

    assert background.rules[0].symbolizers == (BackgroundSymbolizer(color="#eee"),)
    assert fill.rules[0].symbolizers == (FillSymbolizer(color="#00f", outline_color="#000"),)
    assert line.rules[0].symbolizers == (LineSymbolizer(width=3, dasharray=[2, 1], cap="round"),)
    assert circle.rules[0].symbolizers == (CircleSymbolizer(radius=4),)


def test_filter_is_carried_on_rule() -> None:
    style = compile_layer(_spec(type="fill", filter=["==", "class", "lake"]))
    assert style.rules[0].filter == ["==", "class", "lake"]


def test_symbol_layer_without_text_has_no_rules() -> None:
    style = compile_layer(_spec(type="symbol", layout={"icon-image": "marker"}))
    assert style.rules == ()


def test_unsupported_layer_type_raises() -> None:
    with pytest.raises(StyleCompileError):
        compile_layer(_spec(type="fill-extrusion"))


def test_with_partial_labels_only_touches_single_text_rule() -> None:
    labels = compile_layer(
        _spec(
            type="symbol",
            layout={"text-field": "{name}", "text-size": 12, "symbol-placement": "line"},
            paint={"text-halo-width": 1},
        )
    )
    partial = labels.with_partial_labels()

    symbolizer = partial.rules[0].symbolizers[0]
    assert isinstance(symbolizer, TextSymbolizer)
    assert symbolizer.allow_partials is True
    assert symbolizer.placement == "line"
    assert symbolizer.halo_width == 1
    assert labels.rules[0].symbolizers[0].allow_partials is False

    fill = compile_layer(_spec(type="fill"))
    assert fill.with_partial_labels() is fill
