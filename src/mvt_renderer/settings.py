"""Schema helpers for the render options consumed by the pipeline."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Mapping

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .config import DEFAULT_MAX_LABEL_WIDTH, DEFAULT_MAX_TEXT_SIZE
from .errors import SettingsValidationError

OPTIONS_SCHEMA: dict[str, Any] = {
    "$id": "mvt_renderer/options.schema.json",
    "type": "object",
    "properties": {
        "allow_partial_labels": {"type": "boolean"},
        "max_label_width": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "max_text_size": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "assign_scale_denominator": {"type": "boolean"},
        "show_tile_limits": {"type": "boolean"},
    },
    "additionalProperties": False,
}

DEFAULT_OPTIONS: dict[str, Any] = {
    "allow_partial_labels": False,
    "max_label_width": DEFAULT_MAX_LABEL_WIDTH,
    "max_text_size": DEFAULT_MAX_TEXT_SIZE,
    "assign_scale_denominator": True,
    "show_tile_limits": False,
}

_validator = Draft202012Validator(OPTIONS_SCHEMA)


def merge_with_defaults(data: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_OPTIONS` and validate the result."""

    merged = deepcopy(DEFAULT_OPTIONS)
    if data:
        merged.update(data)
    try:
        _validator.validate(merged)
    except ValidationError as exc:
        raise SettingsValidationError(exc.message) from exc
    return merged


@dataclass(frozen=True)
class RenderOptions:
    """Configuration knobs shared by the resolver and the compositor.

    ``max_label_width`` is expressed in pixels and ``max_text_size`` in the
    same unit as the style's ``text-size``.  ``None`` disables the matching
    label adjustment.
    """

    allow_partial_labels: bool = False
    max_label_width: float | None = DEFAULT_MAX_LABEL_WIDTH
    max_text_size: float | None = DEFAULT_MAX_TEXT_SIZE
    assign_scale_denominator: bool = True
    show_tile_limits: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None = None) -> "RenderOptions":
        """Build validated options from a plain mapping such as a JSON file."""

        return cls(**merge_with_defaults(data))


__all__ = ["DEFAULT_OPTIONS", "OPTIONS_SCHEMA", "RenderOptions", "merge_with_defaults"]
