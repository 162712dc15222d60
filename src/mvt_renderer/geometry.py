"""Utility helpers for manipulating decoded tile geometry."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

from .model import Envelope


@dataclass(frozen=True)
class AffineTransform:
    """Scale-then-translate transform without rotation or shear."""

    scale_x: float
    scale_y: float
    translate_x: float
    translate_y: float

    @classmethod
    def tile_to_envelope(cls, extent: int, envelope: Envelope) -> "AffineTransform":
        """Map the ``extent`` sized, Y-down tile grid onto ``envelope``.

        Tile coordinates grow downwards while map coordinates grow upwards, so
        the Y scale is negative and the origin lands on the envelope's top
        left corner.
        """

        if extent <= 0:
            raise ValueError(f"Tile extent must be positive, got {extent}")
        return cls(
            scale_x=envelope.width / extent,
            scale_y=-envelope.height / extent,
            translate_x=envelope.min_x,
            translate_y=envelope.max_y,
        )

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (
            float(x) * self.scale_x + self.translate_x,
            float(y) * self.scale_y + self.translate_y,
        )

    def apply_array(self, points: np.ndarray) -> np.ndarray:
        """Transform an ``(n, 2)`` array of points."""

        result = np.empty_like(points, dtype=np.float64)
        result[:, 0] = points[:, 0] * self.scale_x + self.translate_x
        result[:, 1] = points[:, 1] * self.scale_y + self.translate_y
        return result


def sequence_depth(value: object) -> int:
    """Return how many list/tuple levels ``value`` contains before scalars."""

    depth = 0
    current = value
    while isinstance(current, (list, tuple)) and current:
        depth += 1
        current = current[0]
    return depth


def normalize_geometry_type(raw_type: object) -> str | None:
    """Translate MVT geometry identifiers into GeoJSON-style names."""

    if isinstance(raw_type, str):
        return raw_type
    if raw_type == 1:
        return "Point"
    if raw_type == 2:
        return "LineString"
    if raw_type == 3:
        return "Polygon"
    return None


def is_number_pair(value: Sequence[object]) -> bool:
    """Return ``True`` when ``value`` looks like an ``(x, y)`` tuple."""

    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return False
    return all(isinstance(component, (int, float)) for component in value[:2])


def transform_coordinates(value: object, transform: AffineTransform) -> object:
    """Apply ``transform`` to every coordinate pair in ``value``.

    Runs of points (rings and line strings) are transformed as one numpy
    array.  The result uses tuples throughout so it can live in frozen
    records.
    """

    if not isinstance(value, (list, tuple)):
        return value
    if is_number_pair(value):
        return transform.apply(value[0], value[1])
    if value and all(is_number_pair(item) for item in value):
        points = np.asarray([item[:2] for item in value], dtype=np.float64)
        return tuple((x, y) for x, y in transform.apply_array(points).tolist())
    return tuple(transform_coordinates(item, transform) for item in value)


def normalize_polygons(geom_type: str | None, coordinates: object) -> list[Sequence[Sequence[Tuple[float, float]]]]:
    """Convert raw polygon coordinates into a list of polygons."""

    polygons: list[Sequence[Sequence[Tuple[float, float]]]] = []
    if geom_type == "Polygon":
        polygons = [coordinates] if isinstance(coordinates, (list, tuple)) else []
    elif geom_type == "MultiPolygon":
        polygons = list(coordinates) if isinstance(coordinates, (list, tuple)) else []
    else:
        depth = sequence_depth(coordinates)
        if depth == 3:
            polygons = [coordinates] if isinstance(coordinates, (list, tuple)) else []
        elif depth >= 4:
            polygons = list(coordinates) if isinstance(coordinates, (list, tuple)) else []

    return [polygon for polygon in polygons if polygon]


def normalize_lines(geom_type: str | None, coordinates: object) -> list[Sequence[Tuple[float, float]]]:
    """Convert raw line coordinates into a list of line strings."""

    if geom_type == "LineString":
        return [coordinates] if coordinates else []  # type: ignore[list-item]
    if geom_type == "MultiLineString":
        return [line for line in coordinates if line] if isinstance(coordinates, (list, tuple)) else []
    if geom_type in {"Polygon", "MultiPolygon"}:
        # Polygon outlines are stroked ring by ring.
        return [ring for polygon in normalize_polygons(geom_type, coordinates) for ring in polygon if ring]
    return []


def normalize_points(geom_type: str | None, coordinates: object) -> list[Tuple[float, float]]:
    """Convert raw point coordinates into a list of ``(x, y)`` tuples."""

    if geom_type == "Point" and is_number_pair(coordinates):  # type: ignore[arg-type]
        return [(float(coordinates[0]), float(coordinates[1]))]  # type: ignore[index]
    if geom_type == "MultiPoint" and isinstance(coordinates, (list, tuple)):
        return [(float(point[0]), float(point[1])) for point in coordinates if is_number_pair(point)]
    return []


def line_midpoint(line: Sequence[Tuple[float, float]]) -> Tuple[float, float] | None:
    """Return the coordinate located halfway along ``line``.

    ``None`` means the polyline did not provide enough distinct coordinates to
    compute a stable midpoint.
    """

    if not line:
        return None
    if len(line) == 1:
        return float(line[0][0]), float(line[0][1])

    segment_lengths: list[float] = []
    for index in range(1, len(line)):
        start = line[index - 1]
        end = line[index]
        segment_lengths.append(math.hypot(float(end[0]) - float(start[0]), float(end[1]) - float(start[1])))

    total_length = sum(segment_lengths)
    if total_length <= 0.0:
        return None

    halfway = total_length / 2.0
    distance_accumulated = 0.0
    for index, length in enumerate(segment_lengths, start=1):
        if distance_accumulated + length >= halfway:
            start = line[index - 1]
            end = line[index]
            if length <= 0.0:
                return float(start[0]), float(start[1])
            ratio = (halfway - distance_accumulated) / length
            return (
                float(start[0]) + (float(end[0]) - float(start[0])) * ratio,
                float(start[1]) + (float(end[1]) - float(start[1])) * ratio,
            )
        distance_accumulated += length

    last_point = line[-1]
    return float(last_point[0]), float(last_point[1])


def label_anchors(geom_type: str | None, coordinates: Any, placement: object) -> list[Tuple[float, float]]:
    """Return representative anchor points for a label.

    Line placement is approximated with a single label at the midpoint of
    every line (or outer ring) instead of text shaped along the path.
    """

    if geom_type in {"Point", "MultiPoint"}:
        return normalize_points(geom_type, coordinates)

    if geom_type in {"Polygon", "MultiPolygon"} and placement != "line":
        anchors = []
        for polygon in normalize_polygons(geom_type, coordinates):
            ring = np.asarray(polygon[0], dtype=np.float64)
            if len(ring):
                anchors.append((float(ring[:, 0].mean()), float(ring[:, 1].mean())))
        return anchors

    if geom_type in {"Polygon", "MultiPolygon"}:
        lines = [polygon[0] for polygon in normalize_polygons(geom_type, coordinates)]
    else:
        lines = normalize_lines(geom_type, coordinates)
    anchors = [line_midpoint(line) for line in lines]
    return [anchor for anchor in anchors if anchor is not None]


__all__ = [
    "AffineTransform",
    "is_number_pair",
    "label_anchors",
    "line_midpoint",
    "normalize_geometry_type",
    "normalize_lines",
    "normalize_points",
    "normalize_polygons",
    "sequence_depth",
    "transform_coordinates",
]
