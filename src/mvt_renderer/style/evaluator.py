"""Evaluate the subset of MapLibre expressions needed to paint features.

The full expression language is large.  The renderer only needs enough of it
to resolve colours, widths and labels for the common basemap styles, so the
functions below cover literals, legacy ``stops`` functions, the data access
operators and the zoom driven ``step``/``interpolate`` forms.  Unknown
operators are logged once per call and evaluate to ``None`` which the painter
treats as "use the default".
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Sequence

from PySide6.QtGui import QColor

_LOGGER = logging.getLogger(__name__)

_FUNCTION_COLOR = re.compile(r"^(rgba?|hsla?)\(([^)]+)\)$")
_TEMPLATE_FIELD = re.compile(r"\{([^}]+)\}")

Properties = Mapping[str, Any]


def parse_color(value: Any) -> Optional[QColor]:
    """Parse a CSS colour string into a :class:`QColor`."""

    if isinstance(value, QColor):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    match = _FUNCTION_COLOR.match(text.replace(" ", ""))
    if match:
        kind = match.group(1)
        parts = [part.rstrip("%") for part in match.group(2).split(",")]
        try:
            components = [float(part) for part in parts]
        except ValueError:
            return None
        if len(components) not in (3, 4):
            return None
        alpha = _clamp01(components[3]) if len(components) == 4 else 1.0
        if kind.startswith("rgb"):
            r, g, b = (max(0, min(255, int(round(c)))) for c in components[:3])
            color = QColor(r, g, b)
        else:
            hue, saturation, lightness = components[:3]
            color = QColor.fromHslF((hue % 360.0) / 360.0, _clamp01(saturation / 100.0), _clamp01(lightness / 100.0))
        color.setAlphaF(alpha)
        return color
    color = QColor(text)
    return color if color.isValid() else None


def evaluate(
    value: Any,
    zoom: float,
    properties: Properties,
    geometry_type: Optional[str] = None,
) -> Any:
    """Recursively evaluate a paint or layout value."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        if value.startswith(("#", "rgb", "hsl")):
            color = parse_color(value)
            if color is not None:
                return color
        return value
    if isinstance(value, dict):
        return _evaluate_function(value, zoom, properties)
    if isinstance(value, list):
        return _evaluate_expression(value, zoom, properties, geometry_type)
    return value


def _evaluate_function(function: dict, zoom: float, properties: Properties) -> Any:
    """Evaluate a legacy ``{"stops": ...}`` function."""

    stops = function.get("stops")
    if not stops:
        return function.get("default")
    attribute = function.get("property")
    if isinstance(attribute, str):
        input_value = properties.get(attribute)
        if function.get("type") == "categorical":
            for stop_input, stop_value in stops:
                if stop_input == input_value:
                    return evaluate(stop_value, zoom, properties)
            return evaluate(function.get("default"), zoom, properties)
        if not isinstance(input_value, (int, float)):
            return evaluate(function.get("default"), zoom, properties)
    else:
        input_value = zoom
    if not all(isinstance(stop[0], (int, float)) for stop in stops):
        # Zoom-and-property functions are not supported.
        return evaluate(function.get("default"), zoom, properties)
    if function.get("type") == "interval":
        return _evaluate_steps(stops, input_value, zoom, properties)
    return _evaluate_stops(stops, input_value, zoom, properties, float(function.get("base", 1.0)))


def _evaluate_steps(stops: Sequence[Any], input_value: float, zoom: float, properties: Properties) -> Any:
    result = stops[0][1]
    for stop_input, stop_value in stops:
        if input_value < stop_input:
            break
        result = stop_value
    return evaluate(result, zoom, properties)


def _evaluate_stops(
    stops: Sequence[Any],
    input_value: float,
    zoom: float,
    properties: Properties,
    base: float = 1.0,
) -> Any:
    """Interpolate between ``(input, value)`` stops."""

    if not stops:
        return None

    first_input, first_value = stops[0]
    if input_value <= first_input:
        return evaluate(first_value, zoom, properties)

    for index in range(1, len(stops)):
        current_input, current_value = stops[index]
        previous_input, previous_value = stops[index - 1]
        if input_value <= current_input:
            fraction = _interpolation_factor(input_value, previous_input, current_input, base)
            start_value = evaluate(previous_value, zoom, properties)
            end_value = evaluate(current_value, zoom, properties)
            if isinstance(start_value, (int, float)) and isinstance(end_value, (int, float)):
                return start_value + (end_value - start_value) * fraction
            if isinstance(start_value, QColor) and isinstance(end_value, QColor):
                return _mix_colors(start_value, end_value, fraction)
            return start_value

    _, last_value = stops[-1]
    return evaluate(last_value, zoom, properties)


def _interpolation_factor(value: float, lower: float, upper: float, base: float) -> float:
    span = upper - lower
    if span <= 0:
        return 0.0
    progress = value - lower
    if base == 1.0:
        return progress / span
    return (base ** progress - 1.0) / (base ** span - 1.0)


def _mix_colors(start: QColor, end: QColor, fraction: float) -> QColor:
    return QColor.fromRgbF(
        start.redF() + (end.redF() - start.redF()) * fraction,
        start.greenF() + (end.greenF() - start.greenF()) * fraction,
        start.blueF() + (end.blueF() - start.blueF()) * fraction,
        start.alphaF() + (end.alphaF() - start.alphaF()) * fraction,
    )


def _evaluate_expression(
    expression: list,
    zoom: float,
    properties: Properties,
    geometry_type: Optional[str],
) -> Any:
    if not expression:
        return None

    operator = expression[0]
    if not isinstance(operator, str):
        # Literal lists such as dash arrays or font stacks.
        return expression

    def arg(index: int) -> Any:
        return evaluate(expression[index], zoom, properties, geometry_type) if index < len(expression) else None

    if operator == "get":
        return properties.get(expression[1]) if len(expression) > 1 and isinstance(expression[1], str) else None
    if operator == "has":
        return len(expression) > 1 and isinstance(expression[1], str) and properties.get(expression[1]) is not None
    if operator == "literal":
        return expression[1] if len(expression) > 1 else None
    if operator == "zoom":
        return zoom
    if operator == "geometry-type":
        return _base_geometry_type(geometry_type)
    if operator == "to-string":
        value = arg(1)
        return "" if value is None else str(value)
    if operator == "to-number":
        try:
            return float(arg(1))
        except (TypeError, ValueError):
            return arg(2) if len(expression) > 2 else 0.0
    if operator == "concat":
        return "".join("" if arg(index) is None else str(arg(index)) for index in range(1, len(expression)))
    if operator in {"downcase", "upcase"}:
        value = arg(1)
        if not isinstance(value, str):
            return value
        return value.lower() if operator == "downcase" else value.upper()
    if operator == "coalesce":
        for index in range(1, len(expression)):
            value = arg(index)
            if value is not None:
                return value
        return None
    if operator == "case":
        index = 1
        while index < len(expression) - 1:
            if evaluate_filter(expression[index], properties, zoom, geometry_type):
                return arg(index + 1)
            index += 2
        return arg(len(expression) - 1)
    if operator == "match":
        input_value = arg(1)
        index = 2
        while index < len(expression) - 1:
            keys = expression[index]
            result = expression[index + 1]
            index += 2
            if isinstance(keys, list):
                if input_value in keys:
                    return evaluate(result, zoom, properties, geometry_type)
            elif input_value == keys:
                return evaluate(result, zoom, properties, geometry_type)
        if index < len(expression):
            return evaluate(expression[-1], zoom, properties, geometry_type)
        return None
    if operator == "step" and len(expression) > 2:
        input_value = arg(1)
        result = arg(2)
        index = 3
        while index < len(expression) - 1:
            stop = expression[index]
            if isinstance(input_value, (int, float)) and input_value < stop:
                return result
            result = evaluate(expression[index + 1], zoom, properties, geometry_type)
            index += 2
        return result
    if operator == "interpolate" and len(expression) > 3:
        interpolation = expression[1]
        base = 1.0
        if isinstance(interpolation, list) and interpolation and interpolation[0] == "exponential":
            base = float(interpolation[1])
        input_value = arg(2)
        if not isinstance(input_value, (int, float)):
            return None
        stops = [
            (expression[index], expression[index + 1])
            for index in range(3, len(expression) - 1, 2)
        ]
        return _evaluate_stops(stops, input_value, zoom, properties, base)
    if operator in _FILTER_OPERATORS:
        return evaluate_filter(expression, properties, zoom, geometry_type)

    _LOGGER.warning("Unsupported style expression encountered: %s", expression)
    return None


_FILTER_OPERATORS = frozenset(
    {"all", "any", "none", "!", "==", "!=", ">", ">=", "<", "<=", "in", "!in", "!has"}
)


def evaluate_filter(
    expression: Any,
    properties: Properties,
    zoom: float = 0.0,
    geometry_type: Optional[str] = None,
) -> bool:
    """Evaluate a legacy or expression-style filter against a feature."""

    if expression is None or expression == []:
        return True
    if isinstance(expression, bool):
        return expression
    if not isinstance(expression, list) or not isinstance(expression[0], str):
        return bool(expression)

    operator = expression[0]
    if operator == "all":
        return all(evaluate_filter(sub, properties, zoom, geometry_type) for sub in expression[1:])
    if operator == "any":
        return any(evaluate_filter(sub, properties, zoom, geometry_type) for sub in expression[1:])
    if operator == "none":
        return not any(evaluate_filter(sub, properties, zoom, geometry_type) for sub in expression[1:])
    if operator == "!":
        return not evaluate_filter(expression[1], properties, zoom, geometry_type)
    if operator == "has" and len(expression) >= 2:
        return properties.get(expression[1]) is not None
    if operator == "!has" and len(expression) >= 2:
        return properties.get(expression[1]) is None

    if operator in {"==", "!=", ">", ">=", "<", "<="} and len(expression) >= 3:
        left = _filter_operand(expression[1], properties, zoom, geometry_type)
        right = evaluate(expression[2], zoom, properties, geometry_type)
        if operator == "==":
            return left == right
        if operator == "!=":
            return left != right
        try:
            if operator == ">":
                return left > right
            if operator == ">=":
                return left >= right
            if operator == "<":
                return left < right
            return left <= right
        except TypeError:
            return False

    if operator in {"in", "!in"} and len(expression) >= 3:
        if isinstance(expression[1], str) and not any(isinstance(item, list) for item in expression[2:]):
            value = _filter_operand(expression[1], properties, zoom, geometry_type)
            candidates = expression[2:]
        else:
            # Expression form: ["in", needle, haystack]
            value = evaluate(expression[1], zoom, properties, geometry_type)
            haystack = evaluate(expression[2], zoom, properties, geometry_type)
            candidates = haystack if isinstance(haystack, (list, str)) else []
        found = value in candidates
        return found if operator == "in" else not found

    result = evaluate(expression, zoom, properties, geometry_type)
    return bool(result) if not isinstance(result, list) else False


def _filter_operand(operand: Any, properties: Properties, zoom: float, geometry_type: Optional[str]) -> Any:
    """Resolve the left side of a comparison, honouring the legacy key form."""

    if isinstance(operand, str):
        if operand == "$type":
            return _base_geometry_type(geometry_type)
        return properties.get(operand)
    return evaluate(operand, zoom, properties, geometry_type)


def _base_geometry_type(geometry_type: Optional[str]) -> Optional[str]:
    if geometry_type and geometry_type.startswith("Multi"):
        return geometry_type[len("Multi"):]
    return geometry_type


def format_text(template: str, properties: Properties) -> str:
    """Replace ``{field}`` placeholders with the corresponding property."""

    def replacer(match: re.Match[str]) -> str:
        value = properties.get(match.group(1).strip())
        return "" if value is None else str(value)

    return _TEMPLATE_FIELD.sub(replacer, template)


def _clamp01(value: float) -> float:
    """Clamp ``value`` to the inclusive ``[0.0, 1.0]`` range."""

    return max(0.0, min(1.0, float(value)))


__all__ = ["evaluate", "evaluate_filter", "format_text", "parse_color"]
