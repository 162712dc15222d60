"""Paint composed tile layers onto a :class:`QImage` with :class:`QPainter`."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Mapping, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPainterPath, QPen

from .compositor import current_scale_denominator
from .config import DEFAULT_TEXT_SIZE, STANDARD_PIXEL_SIZE, TILE_LIMITS_COLOR
from .geometry import label_anchors, normalize_lines, normalize_points, normalize_polygons
from .model import Envelope, Feature, PaintEntry
from .scale import scale_denominator_to_zoom
from .style.compiler import (
    BackgroundSymbolizer,
    CircleSymbolizer,
    FillSymbolizer,
    LineSymbolizer,
    Rule,
    TextSymbolizer,
)
from .style.evaluator import evaluate, evaluate_filter, format_text, parse_color

_LOGGER = logging.getLogger(__name__)

_CAP_STYLES = {
    "butt": Qt.PenCapStyle.FlatCap,
    "round": Qt.PenCapStyle.RoundCap,
    "square": Qt.PenCapStyle.SquareCap,
}
_JOIN_STYLES = {
    "miter": Qt.PenJoinStyle.MiterJoin,
    "round": Qt.PenJoinStyle.RoundJoin,
    "bevel": Qt.PenJoinStyle.BevelJoin,
}
_FONT_STYLE_WORDS = {"regular", "bold", "italic", "oblique", "semibold", "medium", "light", "black", "heavy"}


class QtTileRenderer:
    """Render paint entries for one tile into an ARGB image.

    Map coordinates inside ``envelope`` are mapped onto the
    ``width`` x ``height`` pixel grid with the Y axis pointing down.
    """

    def __init__(self, width: int, height: int, envelope: Envelope) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Image dimensions must be positive")
        if envelope.width <= 0 or envelope.height <= 0:
            raise ValueError("Envelope must have a positive area")
        self._width = width
        self._height = height
        self._envelope = envelope
        self._scale_x = width / envelope.width
        self._scale_y = height / envelope.height
        self._image = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
        self._image.fill(Qt.GlobalColor.transparent)
        self._painter = QPainter(self._image)
        self._painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self._painter.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)

    @classmethod
    def factory(cls, width: int, height: int):
        """Return a renderer factory suitable for :class:`LayerCompositor`."""

        def build(envelope: Envelope) -> "QtTileRenderer":
            return cls(width, height, envelope)

        return build

    # ------------------------------------------------------------------
    @property
    def image(self) -> QImage:
        return self._image

    # ------------------------------------------------------------------
    def paint_layer(self, entry: PaintEntry, *, scale_denominator: Optional[float] = None) -> None:
        """Paint every rule of ``entry.style`` over ``entry.source``."""

        if scale_denominator is None:
            scale_denominator = current_scale_denominator()
        if scale_denominator is None:
            scale_denominator = self.canvas_scale_denominator()
        zoom = scale_denominator_to_zoom(scale_denominator)

        for rule in entry.style.rules:
            if not self._rule_applies(rule, scale_denominator):
                continue
            for feature in entry.source.features:
                if not evaluate_filter(rule.filter, feature.properties, zoom, feature.geometry_type):
                    continue
                for symbolizer in rule.symbolizers:
                    self._paint_symbolizer(symbolizer, feature, zoom)

    # ------------------------------------------------------------------
    def draw_tile_limits(self) -> None:
        """Stroke a one pixel border around the tile."""

        self._painter.save()
        self._painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
        pen = QPen(QColor(TILE_LIMITS_COLOR))
        pen.setWidth(1)
        self._painter.setPen(pen)
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawRect(0, 0, self._width - 1, self._height - 1)
        self._painter.restore()

    # ------------------------------------------------------------------
    def finish(self) -> QImage:
        """End painting and return the image.  Safe to call more than once."""

        if self._painter.isActive():
            self._painter.end()
        return self._image

    def canvas_scale_denominator(self) -> float:
        """Return the scale denominator implied by the envelope and canvas size."""

        metres_per_pixel = self._envelope.width / self._width
        return metres_per_pixel / STANDARD_PIXEL_SIZE

    # ------------------------------------------------------------------
    def to_pixel(self, x: float, y: float) -> QPointF:
        return QPointF(
            (float(x) - self._envelope.min_x) * self._scale_x,
            (self._envelope.max_y - float(y)) * self._scale_y,
        )

    # ------------------------------------------------------------------
    @staticmethod
    def _rule_applies(rule: Rule, scale_denominator: Optional[float]) -> bool:
        if scale_denominator is None:
            return True
        if rule.min_scale is not None and scale_denominator <= rule.min_scale:
            return False
        if rule.max_scale is not None and scale_denominator > rule.max_scale:
            return False
        return True

    # ------------------------------------------------------------------
    def _paint_symbolizer(self, symbolizer: object, feature: Feature, zoom: float) -> None:
        if isinstance(symbolizer, (BackgroundSymbolizer, FillSymbolizer)):
            self._draw_fill(symbolizer, feature, zoom)
        elif isinstance(symbolizer, LineSymbolizer):
            self._draw_line(symbolizer, feature, zoom)
        elif isinstance(symbolizer, CircleSymbolizer):
            self._draw_circles(symbolizer, feature, zoom)
        elif isinstance(symbolizer, TextSymbolizer):
            self._draw_text(symbolizer, feature, zoom)

    # ------------------------------------------------------------------
    def _color(self, value: Any, opacity: Any, zoom: float, properties: Mapping[str, Any], fallback: str) -> QColor:
        color = parse_color(evaluate(value, zoom, properties))
        color = QColor(color) if color is not None else QColor(fallback)
        alpha = evaluate(opacity, zoom, properties)
        if isinstance(alpha, (int, float)):
            color.setAlphaF(max(0.0, min(1.0, color.alphaF() * float(alpha))))
        return color

    # ------------------------------------------------------------------
    def _draw_fill(self, symbolizer: BackgroundSymbolizer | FillSymbolizer, feature: Feature, zoom: float) -> None:
        polygons = normalize_polygons(feature.geometry_type, feature.coordinates)
        if not polygons:
            return

        properties = feature.properties
        brush = QBrush(self._color(symbolizer.color, symbolizer.opacity, zoom, properties, "#000000"))

        path = QPainterPath()
        path.setFillRule(Qt.FillRule.OddEvenFill)
        for polygon in polygons:
            self._append_polygon(path, polygon)

        self._painter.save()
        self._painter.setBrush(brush)
        outline = getattr(symbolizer, "outline_color", None)
        if outline is not None:
            pen = QPen(self._color(outline, symbolizer.opacity, zoom, properties, "#000000"))
            pen.setCosmetic(True)
            self._painter.setPen(pen)
        else:
            self._painter.setPen(Qt.PenStyle.NoPen)
        self._painter.drawPath(path)
        self._painter.restore()

    # ------------------------------------------------------------------
    def _draw_line(self, symbolizer: LineSymbolizer, feature: Feature, zoom: float) -> None:
        lines = normalize_lines(feature.geometry_type, feature.coordinates)
        if not lines:
            return

        properties = feature.properties
        width = evaluate(symbolizer.width, zoom, properties)
        if not isinstance(width, (int, float)) or width <= 0:
            return

        pen = QPen(self._color(symbolizer.color, symbolizer.opacity, zoom, properties, "#000000"))
        pen.setWidthF(float(width))
        pen.setCapStyle(_CAP_STYLES.get(evaluate(symbolizer.cap, zoom, properties), Qt.PenCapStyle.FlatCap))
        pen.setJoinStyle(_JOIN_STYLES.get(evaluate(symbolizer.join, zoom, properties), Qt.PenJoinStyle.MiterJoin))
        dash_array = evaluate(symbolizer.dasharray, zoom, properties)
        if isinstance(dash_array, Sequence) and not isinstance(dash_array, str) and dash_array:
            values = [float(value) for value in dash_array if isinstance(value, (int, float))]
            if len(values) % 2 == 0 and any(values):
                pen.setDashPattern([max(value, 0.01) for value in values])

        path = QPainterPath()
        for line in lines:
            self._append_line(path, line)

        self._painter.save()
        self._painter.setPen(pen)
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawPath(path)
        self._painter.restore()

    # ------------------------------------------------------------------
    def _draw_circles(self, symbolizer: CircleSymbolizer, feature: Feature, zoom: float) -> None:
        points = normalize_points(feature.geometry_type, feature.coordinates)
        if not points:
            return

        properties = feature.properties
        radius = evaluate(symbolizer.radius, zoom, properties)
        if not isinstance(radius, (int, float)) or radius <= 0:
            return

        self._painter.save()
        self._painter.setBrush(QBrush(self._color(symbolizer.color, symbolizer.opacity, zoom, properties, "#000000")))
        stroke_width = evaluate(symbolizer.stroke_width, zoom, properties)
        if symbolizer.stroke_color is not None and isinstance(stroke_width, (int, float)) and stroke_width > 0:
            pen = QPen(self._color(symbolizer.stroke_color, 1.0, zoom, properties, "#000000"))
            pen.setWidthF(float(stroke_width))
            self._painter.setPen(pen)
        else:
            self._painter.setPen(Qt.PenStyle.NoPen)
        for x, y in points:
            self._painter.drawEllipse(self.to_pixel(x, y), float(radius), float(radius))
        self._painter.restore()

    # ------------------------------------------------------------------
    def _draw_text(self, symbolizer: TextSymbolizer, feature: Feature, zoom: float) -> None:
        properties = feature.properties
        text = self._label_text(symbolizer, zoom, properties)
        if not text:
            return

        placement = evaluate(symbolizer.placement, zoom, properties)
        anchors = label_anchors(feature.geometry_type, feature.coordinates, placement)
        if not anchors:
            return

        size = evaluate(symbolizer.size, zoom, properties)
        if not isinstance(size, (int, float)) or size <= 0:
            size = DEFAULT_TEXT_SIZE
        font = _font_from_stack(evaluate(symbolizer.font, zoom, properties), float(size))
        metrics = QFontMetricsF(font)

        max_width = evaluate(symbolizer.max_width, zoom, properties)
        max_width_px = float(max_width) * float(size) if isinstance(max_width, (int, float)) else None
        lines = _wrap_label(text, metrics, max_width_px)
        line_height = metrics.height()
        block_height = line_height * len(lines)

        color = self._color(symbolizer.color, None, zoom, properties, "#000000")
        halo_width = evaluate(symbolizer.halo_width, zoom, properties)
        halo_color = parse_color(evaluate(symbolizer.halo_color, zoom, properties))
        canvas = QRectF(0.0, 0.0, float(self._width), float(self._height))

        self._painter.save()
        for x, y in anchors:
            center = self.to_pixel(x, y)
            path = QPainterPath()
            top = center.y() - block_height / 2.0
            for index, line in enumerate(lines):
                line_width = metrics.horizontalAdvance(line)
                baseline = top + index * line_height + metrics.ascent()
                path.addText(QPointF(center.x() - line_width / 2.0, baseline), font, line)

            bounds = path.boundingRect()
            if not symbolizer.allow_partials and not canvas.contains(bounds):
                continue

            if halo_color is not None and isinstance(halo_width, (int, float)) and halo_width > 0:
                halo_pen = QPen(halo_color, float(halo_width) * 2.0)
                halo_pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
                self._painter.setPen(halo_pen)
                self._painter.setBrush(Qt.BrushStyle.NoBrush)
                self._painter.drawPath(path)

            self._painter.setPen(Qt.PenStyle.NoPen)
            self._painter.setBrush(QBrush(color))
            self._painter.drawPath(path)
        self._painter.restore()

    # ------------------------------------------------------------------
    @staticmethod
    def _label_text(symbolizer: TextSymbolizer, zoom: float, properties: Mapping[str, Any]) -> str:
        value = evaluate(symbolizer.field, zoom, properties)
        if isinstance(value, QColor) and isinstance(symbolizer.field, str):
            # ``evaluate`` turns strings such as "#1" into colours.
            value = symbolizer.field
        if value is None:
            return ""
        text = format_text(value, properties) if isinstance(value, str) else str(value)
        transform = evaluate(symbolizer.transform, zoom, properties)
        if transform == "uppercase":
            text = text.upper()
        elif transform == "lowercase":
            text = text.lower()
        return text.strip()

    # ------------------------------------------------------------------
    def _append_polygon(self, path: QPainterPath, polygon: Sequence[Sequence[Tuple[float, float]]]) -> None:
        for ring in polygon:
            if len(ring) < 3:
                continue
            path.moveTo(self.to_pixel(*ring[0]))
            for point in ring[1:]:
                path.lineTo(self.to_pixel(*point))
            path.closeSubpath()

    # ------------------------------------------------------------------
    def _append_line(self, path: QPainterPath, line: Sequence[Tuple[float, float]]) -> None:
        if len(line) < 2:
            return
        path.moveTo(self.to_pixel(*line[0]))
        for point in line[1:]:
            path.lineTo(self.to_pixel(*point))


def _font_from_stack(stack: Any, pixel_size: float) -> QFont:
    """Build a :class:`QFont` from the first entry of a ``text-font`` stack."""

    name = ""
    if isinstance(stack, (list, tuple)) and stack and isinstance(stack[0], str):
        name = stack[0]
    elif isinstance(stack, str):
        name = stack

    words = name.split()
    lowered = [word.lower() for word in words]
    family_words = [word for word, low in zip(words, lowered) if low not in _FONT_STYLE_WORDS]
    font = QFont(" ".join(family_words) or name)
    font.setPixelSize(max(1, int(round(pixel_size))))
    font.setBold(any(low in {"bold", "semibold", "black", "heavy"} for low in lowered))
    font.setItalic(any(low in {"italic", "oblique"} for low in lowered))
    return font


def _wrap_label(text: str, metrics: QFontMetricsF, max_width: Optional[float]) -> list[str]:
    """Greedily break ``text`` into lines no wider than ``max_width`` pixels."""

    if max_width is None or max_width <= 0 or metrics.horizontalAdvance(text) <= max_width:
        return [text]
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and metrics.horizontalAdvance(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines or [text]


__all__ = ["QtTileRenderer"]
