"""Find the feature attributes a style expression reads.

The decoder only materialises attributes that some style layer can look at.
The walk below is a heuristic over the expression tree rather than a full
parse of the MapLibre grammar: legacy filters such as ``["==", "class",
"park"]`` name their attribute with a bare string, while expression filters
wrap it in ``["get", ...]``.  Both shapes appear in real styles, often mixed
inside one ``all``.
"""

from __future__ import annotations

import re
from typing import Any

_TEMPLATE_FIELD = re.compile(r"\{([^{}]+)\}")

_NO_ATTRIBUTE_OPERATORS = frozenset({"zoom", "geometry-type", "id", "properties", "feature-state"})
_GETTER_OPERATORS = frozenset({"get", "has", "!has"})
_COMPARISON_OPERATORS = frozenset({"==", "!=", ">", ">=", "<", "<=", "in", "!in"})
_UNARY_STRING_OPERATORS = frozenset({"downcase", "upcase", "typeof"})


def extract_attributes(expression: Any) -> set[str]:
    """Return the attribute names referenced by a filter or value expression.

    Never raises: anything that is not an operator list yields an empty set.
    """

    if not isinstance(expression, list) or not expression:
        return set()

    operator = expression[0]
    if not isinstance(operator, str):
        return set()

    if operator in _NO_ATTRIBUTE_OPERATORS:
        return set()

    if operator in _GETTER_OPERATORS or operator in _UNARY_STRING_OPERATORS:
        if len(expression) > 1 and isinstance(expression[1], str):
            return {expression[1]}
        if operator in _UNARY_STRING_OPERATORS:
            return set()
        return _walk_operands(expression)

    if operator in _COMPARISON_OPERATORS:
        candidate = expression[1] if len(expression) > 1 and isinstance(expression[1], str) else None
        explicit = _walk_operands(expression)
        if explicit:
            return explicit
        return {candidate} if candidate is not None else set()

    return _walk_operands(expression)


def _walk_operands(expression: list) -> set[str]:
    found: set[str] = set()
    for operand in expression[1:]:
        found |= extract_attributes(operand)
    return found


def extract_template_fields(template: Any) -> set[str]:
    """Return the ``{name}`` tokens used by a text-field template string."""

    if not isinstance(template, str):
        return set()
    return {match.strip() for match in _TEMPLATE_FIELD.findall(template) if match.strip()}


def text_field_attributes(value: Any) -> set[str]:
    """Return the attributes read by a ``text-field`` value of any shape."""

    if isinstance(value, str):
        return extract_template_fields(value)
    if isinstance(value, list):
        return extract_attributes(value)
    if isinstance(value, dict):
        # Legacy zoom functions: {"stops": [[zoom, "{name}"], ...]}
        found: set[str] = set()
        if isinstance(value.get("property"), str):
            found.add(value["property"])
        for stop in value.get("stops") or []:
            if isinstance(stop, (list, tuple)) and len(stop) == 2:
                found |= text_field_attributes(stop[1])
        return found
    return set()


__all__ = ["extract_attributes", "extract_template_fields", "text_field_attributes"]
