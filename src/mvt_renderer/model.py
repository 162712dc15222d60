"""Value objects passed between the decoder, the resolver and the compositor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .config import DEFAULT_TILE_EXTENT

if TYPE_CHECKING:  # pragma: no cover - imported for annotations only
    from .style.compiler import CompiledStyle

WEB_MERCATOR_HALF_WORLD = 20037508.342789244


@dataclass(frozen=True)
class Envelope:
    """Axis aligned target area in map units (Y grows upwards)."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    crs: str = "EPSG:3857"

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def polygon(self) -> tuple[tuple[tuple[float, float], ...], ...]:
        """Return the envelope as a closed, single ring polygon."""

        ring = (
            (self.min_x, self.min_y),
            (self.max_x, self.min_y),
            (self.max_x, self.max_y),
            (self.min_x, self.max_y),
            (self.min_x, self.min_y),
        )
        return (ring,)


@dataclass(frozen=True)
class TileContext:
    """The XYZ address of a tile together with the envelope it covers."""

    envelope: Envelope
    z: int
    x: int = 0
    y: int = 0

    @classmethod
    def web_mercator(cls, z: int, x: int, y: int) -> "TileContext":
        """Build the context for an XYZ tile in the EPSG:3857 grid."""

        tiles_across = 1 << z
        span = 2 * WEB_MERCATOR_HALF_WORLD / tiles_across
        min_x = -WEB_MERCATOR_HALF_WORLD + x * span
        max_y = WEB_MERCATOR_HALF_WORLD - y * span
        envelope = Envelope(min_x, max_y - span, min_x + span, max_y, "EPSG:3857")
        return cls(envelope=envelope, z=z, x=x, y=y)


@dataclass(frozen=True)
class Feature:
    """One decoded geometry and the attributes attached to it."""

    geometry_type: str
    coordinates: Any
    properties: Mapping[str, Any] = field(default_factory=dict)
    id: Optional[int] = None


@dataclass(frozen=True)
class SourceLayer:
    """All features of one named layer inside a tile."""

    name: str
    features: tuple[Feature, ...]
    envelope: Envelope
    extent: int = DEFAULT_TILE_EXTENT
    fields: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.features

    @classmethod
    def background(cls, envelope: Envelope) -> "SourceLayer":
        """A synthetic layer whose only feature covers the whole envelope."""

        feature = Feature(geometry_type="Polygon", coordinates=envelope.polygon())
        return cls(name="background", features=(feature,), envelope=envelope)


@dataclass(frozen=True)
class PaintEntry:
    """A style layer paired with the features it paints, in paint order."""

    layer_id: str
    source: SourceLayer
    style: "CompiledStyle"
    envelope: Envelope


__all__ = ["Envelope", "Feature", "PaintEntry", "SourceLayer", "TileContext"]
