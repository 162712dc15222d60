"""Decode Mapbox vector tile payloads into map-space source layers.

The decoder wraps :func:`mapbox_vector_tile.decode`.  Payloads may arrive gzip
framed (as served by most tile servers and stored in MBTiles archives); the
framing is detected from the magic bytes rather than trusted from a
content-type header.  Each decoded layer is then moved from its integer tile
grid into the caller's envelope.
"""

from __future__ import annotations

import gzip
import logging
import zlib
from typing import AbstractSet, Any, Mapping, Optional

import mapbox_vector_tile

from .config import DEFAULT_TILE_EXTENT, GZIP_MAGIC
from .errors import DecodeError, LayerDecodeError
from .geometry import AffineTransform, normalize_geometry_type, transform_coordinates
from .model import Envelope, Feature, SourceLayer

_LOGGER = logging.getLogger(__name__)

FieldRequirements = Mapping[str, AbstractSet[str]]


def is_gzip_payload(data: bytes) -> bool:
    """Return ``True`` when ``data`` starts with the gzip magic number."""

    return data[:2] == GZIP_MAGIC


class TileDecoder:
    """Turn tile bytes into :class:`~mvt_renderer.model.SourceLayer` records.

    The decoder keeps no state between calls, so one instance can serve any
    number of threads.
    """

    def decode(
        self,
        data: bytes,
        envelope: Envelope,
        required_fields: Optional[FieldRequirements] = None,
    ) -> dict[str, Optional[SourceLayer]]:
        """Decode ``data`` into source layers keyed by layer name.

        A layer that fails to convert maps to ``None`` while the remaining
        layers are still returned.  Malformed payloads raise
        :class:`~mvt_renderer.errors.DecodeError`.
        """

        decoded = self.parse(data)
        return self.convert_layers(decoded, envelope, required_fields)

    # ------------------------------------------------------------------
    def parse(self, data: bytes) -> dict[str, Any]:
        """Decompress when needed and decode the protobuf payload."""

        payload = bytes(data)
        if is_gzip_payload(payload):
            _LOGGER.debug("GZIP compression detected, decompressing %d bytes", len(payload))
            try:
                payload = gzip.decompress(payload)
            except (OSError, EOFError, zlib.error) as exc:
                raise DecodeError("Failed to decompress gzip framed tile") from exc

        try:
            return mapbox_vector_tile.decode(payload, default_options={"y_coord_down": True})
        except Exception as exc:
            raise DecodeError("Failed to decode vector tile payload") from exc

    # ------------------------------------------------------------------
    def convert_layers(
        self,
        decoded: Mapping[str, Any],
        envelope: Envelope,
        required_fields: Optional[FieldRequirements] = None,
    ) -> dict[str, Optional[SourceLayer]]:
        """Convert every decoded layer, isolating per-layer failures."""

        source_layers: dict[str, Optional[SourceLayer]] = {}
        for name, layer in decoded.items():
            required = (required_fields or {}).get(name) or frozenset()
            try:
                source_layers[name] = self.convert_layer(name, layer, envelope, required)
            except Exception as exc:
                error = exc if isinstance(exc, LayerDecodeError) else LayerDecodeError(str(exc))
                _LOGGER.error("Can't convert source layer '%s': %s", name, error)
                source_layers[name] = None
        return source_layers

    # ------------------------------------------------------------------
    @staticmethod
    def convert_layer(
        name: str,
        layer: Mapping[str, Any],
        envelope: Envelope,
        required_fields: AbstractSet[str] = frozenset(),
    ) -> SourceLayer:
        """Convert one decoded layer into a :class:`SourceLayer`."""

        if not isinstance(layer, Mapping):
            raise LayerDecodeError(f"Layer '{name}' is not a mapping")
        extent = layer.get("extent") or DEFAULT_TILE_EXTENT
        if not isinstance(extent, int) or extent <= 0:
            raise LayerDecodeError(f"Layer '{name}' has an invalid extent: {extent!r}")
        transform = AffineTransform.tile_to_envelope(extent, envelope)

        fields = set(required_fields)
        features: list[Feature] = []
        for raw_feature in layer.get("features") or []:
            geometry = raw_feature.get("geometry")
            if isinstance(geometry, Mapping):
                geom_type = normalize_geometry_type(geometry.get("type"))
                coordinates = geometry.get("coordinates", [])
            else:
                geom_type = normalize_geometry_type(raw_feature.get("type"))
                coordinates = geometry
            if geom_type is None:
                _LOGGER.debug("Skipping feature without geometry type in layer '%s'", name)
                continue

            properties = {
                key: value
                for key, value in (raw_feature.get("properties") or {}).items()
                if value is not None
            }
            fields.update(properties)
            features.append(
                Feature(
                    geometry_type=geom_type,
                    coordinates=transform_coordinates(coordinates, transform),
                    properties=properties,
                    id=raw_feature.get("id"),
                )
            )

        return SourceLayer(
            name=name,
            features=tuple(features),
            envelope=envelope,
            extent=extent,
            fields=frozenset(fields),
        )


__all__ = ["TileDecoder", "is_gzip_payload"]
