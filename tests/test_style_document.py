from __future__ import annotations

import json

import pytest

from mvt_renderer.errors import StyleParseError
from mvt_renderer.settings import RenderOptions
from mvt_renderer.style.compiler import TextSymbolizer, compile_layer
from mvt_renderer.style.document import parse_style_document


def _style(*layers: dict, **top_level: object) -> str:
    document = {"version": 8, "name": "Test", "layers": list(layers)}
    document.update(top_level)
    return json.dumps(document)


def _label_layer(**layout: object) -> dict:
    return {
        "id": "labels",
        "type": "symbol",
        "source-layer": "place",
        "layout": {"text-field": "{name}", **layout},
    }


def test_parse_keeps_document_order() -> None:
    document = parse_style_document(
        _style(
            {"id": "bg", "type": "background"},
            {"id": "water", "type": "fill", "source-layer": "water"},
            {"id": "roads", "type": "line", "source-layer": "transportation", "minzoom": 5},
        )
    )

    assert document.layer_ids() == ["bg", "water", "roads"]
    assert document.name == "Test"
    roads = document.layer("roads")
    assert roads is not None
    assert roads.source_layer == "transportation"
    assert roads.minzoom == 5.0
    assert document.layer("missing") is None


def test_layer_sections_are_read_only() -> None:
    document = parse_style_document(_style({"id": "water", "type": "fill", "paint": {"fill-color": "#00f"}}))
    with pytest.raises(TypeError):
        document.layers[0].paint["fill-color"] = "#f00"  # type: ignore[index]


@pytest.mark.parametrize(
    "raw",
    [
        b"{not json",
        b"\xff\xfe\x00",
        json.dumps({"version": 8}),
        json.dumps({"layers": {}}),
        json.dumps({"layers": [{"type": "fill"}]}),
        json.dumps({"layers": [{"id": "a", "type": "fill", "minzoom": "low"}]}),
        json.dumps([]),
    ],
)
def test_invalid_documents_raise(raw: bytes | str) -> None:
    with pytest.raises(StyleParseError):
        parse_style_document(raw)


def test_duplicate_layer_ids_raise() -> None:
    raw = _style({"id": "a", "type": "fill"}, {"id": "a", "type": "line"})
    with pytest.raises(StyleParseError, match="Duplicate"):
        parse_style_document(raw)


def test_relative_resource_urls_are_resolved_against_base() -> None:
    raw = _style(
        {"id": "bg", "type": "background"},
        sprite="sprites/basic",
        glyphs="fonts/{fontstack}/{range}.pbf",
    )
    document = parse_style_document(raw, "https://tiles.example.com/styles/basic/style.json")

    assert document.sprite == "https://tiles.example.com/styles/basic/sprites/basic"
    assert document.glyphs == "https://tiles.example.com/styles/basic/fonts/{fontstack}/{range}.pbf"


def test_absolute_resource_urls_are_untouched() -> None:
    raw = _style(
        {"id": "bg", "type": "background"},
        sprite="https://cdn.example.com/sprite",
        glyphs="mapbox://fonts/{fontstack}/{range}.pbf",
    )
    document = parse_style_document(raw, "https://tiles.example.com/style.json")

    assert document.sprite == "https://cdn.example.com/sprite"
    assert document.glyphs == "mapbox://fonts/{fontstack}/{range}.pbf"


def test_resource_urls_without_base_stay_relative() -> None:
    document = parse_style_document(_style({"id": "bg", "type": "background"}, sprite="sprite"))
    assert document.sprite == "sprite"


def test_non_numeric_text_padding_is_removed_and_layer_compiles() -> None:
    document = parse_style_document(_style(_label_layer(**{"text-padding": "2px"})))
    spec = document.layer("labels")
    assert spec is not None
    assert "text-padding" not in spec.layout

    style = compile_layer(spec)
    symbolizer = style.rules[0].symbolizers[0]
    assert isinstance(symbolizer, TextSymbolizer)
    assert symbolizer.padding == 2.0


def test_numeric_text_padding_is_kept() -> None:
    document = parse_style_document(_style(_label_layer(**{"text-padding": 4})))
    assert document.layers[0].layout["text-padding"] == 4


def test_text_size_is_clamped() -> None:
    options = RenderOptions(max_text_size=20, max_label_width=None)
    document = parse_style_document(_style(_label_layer(**{"text-size": 48})), options=options)
    assert document.layers[0].layout["text-size"] == 20


def test_text_max_width_is_synthesized_from_label_width() -> None:
    options = RenderOptions(max_label_width=100, max_text_size=None)
    document = parse_style_document(_style(_label_layer(**{"text-size": 20})), options=options)
    assert document.layers[0].layout["text-max-width"] == pytest.approx(5.0)


def test_text_max_width_only_shrinks() -> None:
    options = RenderOptions(max_label_width=100, max_text_size=None)
    narrow = parse_style_document(_style(_label_layer(**{"text-size": 20, "text-max-width": 3})), options=options)
    wide = parse_style_document(_style(_label_layer(**{"text-size": 20, "text-max-width": 12})), options=options)

    assert narrow.layers[0].layout["text-max-width"] == 3
    assert wide.layers[0].layout["text-max-width"] == pytest.approx(5.0)


@pytest.mark.parametrize(
    "layout",
    [
        {"text-size": ["interpolate", ["linear"], ["zoom"], 10, 12, 16, 20]},
        {"text-size": 20, "symbol-placement": "line"},
        {},
    ],
)
def test_text_max_width_is_not_synthesized(layout: dict) -> None:
    options = RenderOptions(max_label_width=100)
    document = parse_style_document(_style(_label_layer(**layout)), options=options)
    assert "text-max-width" not in document.layers[0].layout


def test_fonts_are_collected_without_substitution() -> None:
    raw = _style(_label_layer(**{"text-font": ["Open Sans Bold", "Arial Unicode MS Bold"]}))
    document = parse_style_document(raw)

    assert document.fonts == frozenset({"Open Sans Bold", "Arial Unicode MS Bold"})
    assert dict(document.font_substitutions) == {}
    assert document.layers[0].layout["text-font"] == ["Open Sans Bold", "Arial Unicode MS Bold"]


def test_fonts_are_substituted_from_installed_families() -> None:
    raw = _style(_label_layer(**{"text-font": ["Open Sans Bold", "DejaVu Sans"]}))
    document = parse_style_document(raw, font_families=["DejaVu Sans", "Noto Sans"])

    assert dict(document.font_substitutions) == {"Open Sans Bold": "Noto Sans Bold"}
    assert document.layers[0].layout["text-font"] == ["Noto Sans Bold", "DejaVu Sans"]
