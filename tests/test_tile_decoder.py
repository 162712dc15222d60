from __future__ import annotations

import gzip

import mapbox_vector_tile
import pytest

from mvt_renderer.errors import DecodeError
from mvt_renderer.model import Envelope
from mvt_renderer.tile_decoder import TileDecoder, is_gzip_payload

ENVELOPE = Envelope(0.0, 0.0, 4096.0, 8192.0)


def _encode_tile() -> bytes:
    layers = [
        {
            "name": "water",
            "features": [
                {"geometry": "POINT(0 0)", "properties": {"name": "Origin", "rank": 3}, "id": 7},
                {"geometry": "POINT(1024 2048)", "properties": {"name": "Lake"}},
            ],
        },
        {
            "name": "roads",
            "features": [
                {"geometry": "LINESTRING(0 0, 4096 4096)", "properties": {"class": "primary"}},
            ],
        },
    ]
    return mapbox_vector_tile.encode(layers, default_options={"y_coord_down": True})


def test_tile_origin_maps_to_top_left_of_envelope() -> None:
    layers = TileDecoder().decode(_encode_tile(), ENVELOPE)

    water = layers["water"]
    assert water is not None
    origin, lake = water.features
    assert origin.geometry_type == "Point"
    assert origin.coordinates == pytest.approx((0.0, 8192.0))
    assert origin.id == 7
    assert lake.coordinates == pytest.approx((1024.0, 4096.0))
    assert water.extent == 4096
    assert water.envelope == ENVELOPE


def test_lines_are_scaled_into_envelope() -> None:
    envelope = Envelope(-1000.0, -1000.0, 0.0, 0.0)
    layers = TileDecoder().decode(_encode_tile(), envelope)

    roads = layers["roads"]
    assert roads is not None
    (road,) = roads.features
    assert road.geometry_type == "LineString"
    start, end = road.coordinates
    assert start == pytest.approx((-1000.0, 0.0))
    assert end == pytest.approx((0.0, -1000.0))


def test_fields_cover_observed_and_required_attributes() -> None:
    layers = TileDecoder().decode(_encode_tile(), ENVELOPE, {"water": {"class"}, "missing": {"x"}})

    water = layers["water"]
    roads = layers["roads"]
    assert water is not None and roads is not None
    assert water.fields == frozenset({"class", "name", "rank"})
    assert roads.fields == frozenset({"class"})
    assert "missing" not in layers


def test_gzip_and_raw_payloads_decode_identically() -> None:
    raw = _encode_tile()
    compressed = gzip.compress(raw)

    assert not is_gzip_payload(raw)
    assert is_gzip_payload(compressed)
    decoder = TileDecoder()
    assert decoder.decode(compressed, ENVELOPE) == decoder.decode(raw, ENVELOPE)


def test_broken_gzip_stream_raises() -> None:
    with pytest.raises(DecodeError):
        TileDecoder().decode(b"\x1f\x8b\x08\x00garbage", ENVELOPE)


def test_malformed_payload_raises() -> None:
    with pytest.raises(DecodeError):
        TileDecoder().decode(b"not a vector tile", ENVELOPE)


def test_layer_failure_is_isolated() -> None:
    decoded = {
        "good": {
            "extent": 4096,
            "features": [{"geometry": {"type": "Point", "coordinates": [2048, 2048]}, "properties": {"a": 1}}],
        },
        "negative_extent": {"extent": -1, "features": []},
        "not_a_layer": "oops",
    }

    layers = TileDecoder().convert_layers(decoded, ENVELOPE)

    assert layers["negative_extent"] is None
    assert layers["not_a_layer"] is None
    good = layers["good"]
    assert good is not None
    assert good.features[0].coordinates == pytest.approx((2048.0, 4096.0))


def test_empty_layer_is_kept_as_empty_source_layer() -> None:
    layers = TileDecoder().convert_layers({"empty": {"extent": 4096, "features": []}}, ENVELOPE)

    empty = layers["empty"]
    assert empty is not None
    assert empty.is_empty
    assert empty.name == "empty"


def test_features_without_geometry_type_are_skipped() -> None:
    layer = {
        "extent": 512,
        "features": [
            {"geometry": {"type": None, "coordinates": [1, 1]}, "properties": {}},
            {"geometry": {"type": 3, "coordinates": [[[0, 0], [512, 0], [512, 512], [0, 0]]]}, "properties": {"x": None}},
        ],
    }

    source = TileDecoder.convert_layer("parks", layer, ENVELOPE)

    (park,) = source.features
    assert park.geometry_type == "Polygon"
    assert park.properties == {}
    assert park.coordinates[0][1] == pytest.approx((4096.0, 8192.0))
    assert source.extent == 512
