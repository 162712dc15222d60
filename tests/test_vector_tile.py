from __future__ import annotations

import json
from typing import Optional

import mapbox_vector_tile
import pytest

from mvt_renderer.compositor import LayerCompositor
from mvt_renderer.errors import DecodeError
from mvt_renderer.model import PaintEntry, TileContext
from mvt_renderer.style.resolver import StyleResolver
from mvt_renderer.tile import VectorTile

STYLE = json.dumps(
    {
        "version": 8,
        "layers": [
            {"id": "bg", "type": "background"},
            {"id": "poi", "type": "circle", "source-layer": "poi", "filter": ["==", "kind", "cafe"]},
            {"id": "roads", "type": "line", "source-layer": "roads"},
        ],
    }
)


class ListRenderer:
    def __init__(self) -> None:
        self.entries: list[PaintEntry] = []

    def paint_layer(self, entry: PaintEntry, *, scale_denominator: Optional[float]) -> None:
        self.entries.append(entry)

    def draw_tile_limits(self) -> None:
        pass

    def finish(self) -> object:
        return [entry.layer_id for entry in self.entries]


def _payload() -> bytes:
    return mapbox_vector_tile.encode(
        [{"name": "poi", "features": [{"geometry": "POINT(2048 2048)", "properties": {"kind": "cafe"}}]}],
        default_options={"y_coord_down": True},
    )


def test_load_and_render() -> None:
    resolver = StyleResolver(font_provider=lambda: None)
    resolver.load(STYLE)
    tile = VectorTile(TileContext.web_mercator(1, 0, 0))

    layers = tile.load(_payload(), resolver.field_requirements())
    result = tile.render(LayerCompositor(resolver), renderer=ListRenderer())

    poi = layers["poi"]
    assert poi is not None
    assert "kind" in poi.fields
    x, y = poi.features[0].coordinates
    assert x == pytest.approx(-10018754.171394622)
    assert y == pytest.approx(10018754.171394622)
    assert result == ["bg", "poi"]


def test_failed_load_keeps_previous_layers() -> None:
    tile = VectorTile(TileContext.web_mercator(0, 0, 0))
    tile.load(_payload())
    before = tile.source_layers

    with pytest.raises(DecodeError):
        tile.load(b"\x1f\x8bbroken")

    assert tile.source_layers == before
    assert "poi" in tile.source_layers
