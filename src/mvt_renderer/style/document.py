"""Parse a Mapbox style document into an immutable, patched representation.

The raw JSON tree is only touched while loading: it is parsed into a private
object, validated, patched once and then copied into :class:`StyleDocument`
records.  Nothing downstream ever sees (or mutates) the raw tree.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urljoin, urlsplit

from jsonschema import Draft202012Validator

from ..errors import StyleParseError
from ..settings import RenderOptions
from .fonts import apply_font_substitutions, build_font_substitutions, collect_fonts

_LOGGER = logging.getLogger(__name__)

STYLE_SCHEMA: dict[str, Any] = {
    "$id": "mvt_renderer/style.schema.json",
    "type": "object",
    "required": ["layers"],
    "properties": {
        "version": {"type": "integer"},
        "name": {"type": "string"},
        "sprite": {"type": "string"},
        "glyphs": {"type": "string"},
        "sources": {"type": "object"},
        "layers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "type"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "type": {"type": "string"},
                    "source": {"type": "string"},
                    "source-layer": {"type": "string"},
                    "minzoom": {"type": "number"},
                    "maxzoom": {"type": "number"},
                    "layout": {"type": "object"},
                    "paint": {"type": "object"},
                    "filter": {"type": ["array", "boolean"]},
                },
            },
        },
    },
}

_validator = Draft202012Validator(STYLE_SCHEMA)


@dataclass(frozen=True)
class StyleLayerSpec:
    """One entry of the style's ``layers`` array."""

    id: str
    type: str
    source_layer: Optional[str] = None
    source: Optional[str] = None
    minzoom: Optional[float] = None
    maxzoom: Optional[float] = None
    layout: Mapping[str, Any] = field(default_factory=dict)
    paint: Mapping[str, Any] = field(default_factory=dict)
    filter: Any = None

    @property
    def visibility(self) -> str:
        value = self.layout.get("visibility", "visible")
        return value if isinstance(value, str) else "visible"

    @property
    def is_visible(self) -> bool:
        return self.visibility != "none"

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "StyleLayerSpec":
        return cls(
            id=data["id"],
            type=data["type"],
            source_layer=data.get("source-layer"),
            source=data.get("source"),
            minzoom=_optional_float(data.get("minzoom")),
            maxzoom=_optional_float(data.get("maxzoom")),
            layout=MappingProxyType(dict(data.get("layout") or {})),
            paint=MappingProxyType(dict(data.get("paint") or {})),
            filter=data.get("filter"),
        )


@dataclass(frozen=True)
class StyleDocument:
    """A loaded style: document-ordered layers plus the top level resources."""

    layers: tuple[StyleLayerSpec, ...]
    sprite: Optional[str] = None
    glyphs: Optional[str] = None
    name: Optional[str] = None
    fonts: frozenset[str] = frozenset()
    font_substitutions: Mapping[str, str] = field(default_factory=dict)
    _index: Mapping[str, StyleLayerSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", MappingProxyType({layer.id: layer for layer in self.layers}))

    def layer(self, layer_id: str) -> Optional[StyleLayerSpec]:
        return self._index.get(layer_id)

    def layer_ids(self) -> list[str]:
        return [layer.id for layer in self.layers]


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ----------------------------------------------------------------------
# Load time patches.  Each one mutates the freshly parsed tree exactly once.
# ----------------------------------------------------------------------
def resolve_resource_urls(tree: dict[str, Any], base_url: Optional[str]) -> None:
    """Turn relative ``sprite``/``glyphs`` references into absolute URLs."""

    if not base_url:
        return
    for key in ("sprite", "glyphs"):
        value = tree.get(key)
        if not isinstance(value, str) or urlsplit(value).scheme:
            continue
        resolved = urljoin(base_url, value)
        tree[key] = resolved
        _LOGGER.info("Resolved %s URL to: %s", key, resolved)


def repair_text_padding(layers: Iterable[dict[str, Any]]) -> None:
    """Drop ``text-padding`` values that are not plain numbers."""

    for layer in layers:
        layout = layer.get("layout")
        if not isinstance(layout, dict) or "text-padding" not in layout:
            continue
        if not _is_number(layout["text-padding"]):
            _LOGGER.warning(
                "Removing invalid text-padding %r from layer '%s'",
                layout["text-padding"],
                layer.get("id"),
            )
            del layout["text-padding"]


def clamp_text_size(layers: Iterable[dict[str, Any]], max_text_size: Optional[float]) -> None:
    """Cap literal ``text-size`` values at ``max_text_size``."""

    if max_text_size is None:
        return
    for layer in layers:
        layout = layer.get("layout")
        if not isinstance(layout, dict):
            continue
        size = layout.get("text-size")
        if _is_number(size) and size > max_text_size:
            _LOGGER.debug("Clamping text-size of layer '%s' from %s to %s", layer.get("id"), size, max_text_size)
            layout["text-size"] = max_text_size


def limit_text_max_width(layers: Iterable[dict[str, Any]], max_label_width: Optional[float]) -> None:
    """Bound ``text-max-width`` (in ems) so labels stay under ``max_label_width`` pixels.

    Only point-placed labels with a literal ``text-size`` are adjusted; when
    the size is itself an expression the width in pixels cannot be known up
    front.
    """

    if max_label_width is None:
        return
    for layer in layers:
        layout = layer.get("layout")
        if not isinstance(layout, dict) or "text-field" not in layout:
            continue
        size = layout.get("text-size")
        placement = layout.get("symbol-placement", "point")
        if not _is_number(size) or size <= 0 or placement != "point":
            continue
        limit = max_label_width / float(size)
        current = layout.get("text-max-width")
        if current is None or (_is_number(current) and current > limit):
            layout["text-max-width"] = limit
        elif not _is_number(current):
            _LOGGER.debug("Leaving text-max-width expression of layer '%s' untouched", layer.get("id"))


def parse_style_document(
    raw: bytes | str,
    base_url: Optional[str] = None,
    *,
    options: RenderOptions | None = None,
    font_families: Optional[Iterable[str]] = None,
) -> StyleDocument:
    """Parse, validate and patch ``raw`` into a :class:`StyleDocument`.

    ``font_families`` lists the installed families; ``None`` disables font
    substitution entirely.
    """

    options = options or RenderOptions()
    try:
        tree = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise StyleParseError(f"Style document is not valid JSON: {exc}") from exc

    errors = sorted(_validator.iter_errors(tree), key=lambda error: list(error.path))
    if errors:
        first = errors[0]
        location = "/".join(str(part) for part in first.path) or "<root>"
        raise StyleParseError(f"Invalid style document at {location}: {first.message}")

    layers: list[dict[str, Any]] = tree["layers"]
    seen: set[str] = set()
    for layer in layers:
        if layer["id"] in seen:
            raise StyleParseError(f"Duplicate style layer id '{layer['id']}'")
        seen.add(layer["id"])

    resolve_resource_urls(tree, base_url)
    repair_text_padding(layers)
    clamp_text_size(layers, options.max_text_size)
    limit_text_max_width(layers, options.max_label_width)

    fonts = collect_fonts(layers)
    substitutions: dict[str, str] = {}
    if font_families is not None:
        substitutions = build_font_substitutions(fonts, font_families)
        apply_font_substitutions(layers, substitutions)

    return StyleDocument(
        layers=tuple(StyleLayerSpec.from_json(layer) for layer in layers),
        sprite=tree.get("sprite"),
        glyphs=tree.get("glyphs"),
        name=tree.get("name"),
        fonts=frozenset(fonts),
        font_substitutions=MappingProxyType(substitutions),
    )


__all__ = [
    "STYLE_SCHEMA",
    "StyleDocument",
    "StyleLayerSpec",
    "clamp_text_size",
    "limit_text_max_width",
    "parse_style_document",
    "repair_text_padding",
    "resolve_resource_urls",
]
