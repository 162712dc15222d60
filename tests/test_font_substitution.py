from __future__ import annotations

import pytest

from mvt_renderer.style.fonts import (
    apply_font_substitutions,
    build_font_substitutions,
    collect_fonts,
    substitute_font,
)


@pytest.mark.parametrize(
    ("font_name", "expected"),
    [
        ("Open Sans Regular", "Noto Sans Regular"),
        ("Open Sans Semibold", "Noto Sans Bold"),
        ("Open Sans Italic", "Noto Sans Italic"),
        ("Roboto Black Oblique", "Noto Sans Bold Italic"),
        ("Metropolis", "Noto Sans"),
    ],
)
def test_style_suffix_is_carried_over(font_name: str, expected: str) -> None:
    assert substitute_font(font_name, ["DejaVu Sans", "Noto Sans"]) == expected


def test_family_priority() -> None:
    assert substitute_font("Open Sans Regular", ["Liberation Sans", "DejaVu Sans"]) == "DejaVu Sans Regular"
    assert substitute_font("Open Sans Regular", ["Liberation Serif"]) == "Liberation Serif Regular"
    assert substitute_font("Open Sans Regular", ["Comic Sans"]) is None


def test_only_missing_fonts_are_substituted() -> None:
    substitutions = build_font_substitutions(
        {"Noto Sans", "Open Sans Bold", "Unknown Face"},
        ["Noto Sans"],
    )
    assert substitutions == {"Open Sans Bold": "Noto Sans Bold", "Unknown Face": "Noto Sans"}


def test_no_replacement_leaves_font_out() -> None:
    assert build_font_substitutions({"Open Sans Bold"}, ["Comic Sans"]) == {}


def test_collect_fonts_from_stacks_and_functions() -> None:
    layers = [
        {"id": "a", "layout": {"text-font": ["Open Sans Regular", "Arial Unicode MS Regular"]}},
        {"id": "b", "layout": {"text-font": {"stops": [[4, ["Open Sans Bold"]], [10, ["Open Sans Italic"]]]}}},
        {"id": "c", "layout": {"text-font": ["step", ["zoom"], ["literal", ["Roboto Regular"]], 8, ["literal", ["Roboto Bold"]]]}},
        {"id": "d", "layout": {}},
        {"id": "e"},
    ]

    assert collect_fonts(layers) == {
        "Open Sans Regular",
        "Arial Unicode MS Regular",
        "Open Sans Bold",
        "Open Sans Italic",
        "Roboto Regular",
        "Roboto Bold",
    }


def test_apply_substitutions_rewrites_every_shape() -> None:
    layers = [
        {"id": "a", "layout": {"text-font": ["Open Sans Regular", "Keep Me"]}},
        {"id": "b", "layout": {"text-font": {"stops": [[4, ["Open Sans Regular"]]]}}},
        {"id": "c", "layout": {"text-font": ["literal", ["Open Sans Regular"]]}},
    ]
    apply_font_substitutions(layers, {"Open Sans Regular": "Noto Sans Regular"})

    assert layers[0]["layout"]["text-font"] == ["Noto Sans Regular", "Keep Me"]
    assert layers[1]["layout"]["text-font"] == {"stops": [[4, ["Noto Sans Regular"]]]}
    assert layers[2]["layout"]["text-font"] == ["literal", ["Noto Sans Regular"]]
