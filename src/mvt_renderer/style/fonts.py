"""Map the font stacks requested by a style onto fonts that are installed.

Styles usually reference the glyph names served by a tile provider (``"Open
Sans Semibold"``, ``"Noto Sans Italic"``...).  When rendering locally those
names have to exist on the host, otherwise Qt silently falls back to a default
face.  The helpers below pick a close equivalent from a small set of widely
available families instead.  The list of installed families is injected so
the substitution is deterministic under test.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from PySide6.QtGui import QFontDatabase, QGuiApplication

from ..config import FONT_FAMILY_PRIORITY

_LOGGER = logging.getLogger(__name__)

FontProvider = Callable[[], Optional[Iterable[str]]]

_BOLD_KEYWORDS = ("bold", "black", "heavy", "semibold")
_ITALIC_KEYWORDS = ("italic", "oblique")
_EXPRESSION_OPERATORS = frozenset({"literal", "step", "interpolate", "match", "case", "coalesce", "zoom", "get"})


def qt_font_families() -> Optional[list[str]]:
    """Return the font families known to Qt's font database.

    Qt can only enumerate fonts once a :class:`QGuiApplication` exists;
    ``None`` tells the caller to skip substitution instead of treating every
    font as missing.
    """

    if QGuiApplication.instance() is None:
        _LOGGER.debug("No QGuiApplication instance; font substitution disabled")
        return None
    return list(QFontDatabase.families())


def collect_fonts(layers: Iterable[Mapping[str, Any]]) -> set[str]:
    """Return every font name referenced by a literal ``text-font`` list."""

    fonts: set[str] = set()
    for layer in layers:
        layout = layer.get("layout")
        if not isinstance(layout, dict):
            continue
        for name in _font_stack(layout.get("text-font")):
            fonts.add(name)
    return fonts


def _font_stack(value: Any) -> list[str]:
    if isinstance(value, list):
        if _is_expression(value):
            return [name for item in value[1:] if isinstance(item, list) for name in _font_stack(item)]
        return [name for name in value if isinstance(name, str)]
    if isinstance(value, dict):
        # Zoom function: {"stops": [[zoom, ["Font A", ...]], ...]}
        names: list[str] = []
        for stop in value.get("stops") or []:
            if isinstance(stop, (list, tuple)) and len(stop) == 2:
                names.extend(_font_stack(stop[1]))
        return names
    return []


def _is_expression(value: list) -> bool:
    return bool(value) and isinstance(value[0], str) and value[0] in _EXPRESSION_OPERATORS


def _style_suffix(font_name: str) -> str:
    lowered = font_name.lower()
    bold = any(keyword in lowered for keyword in _BOLD_KEYWORDS)
    italic = any(keyword in lowered for keyword in _ITALIC_KEYWORDS)
    if bold and italic:
        return "Bold Italic"
    if bold:
        return "Bold"
    if italic:
        return "Italic"
    if "regular" in lowered:
        return "Regular"
    return ""


def substitute_font(font_name: str, families: Sequence[str]) -> Optional[str]:
    """Return an installed replacement for ``font_name`` or ``None``."""

    for keyword in FONT_FAMILY_PRIORITY:
        family = next((candidate for candidate in families if keyword in candidate), None)
        if family is None:
            continue
        suffix = _style_suffix(font_name)
        return f"{family} {suffix}" if suffix else family
    return None


def build_font_substitutions(fonts: Iterable[str], families: Iterable[str]) -> dict[str, str]:
    """Return ``{missing font: replacement}`` for fonts that are not installed."""

    available = list(families)
    installed = set(available)
    substitutions: dict[str, str] = {}
    for font_name in sorted(fonts):
        if font_name in installed:
            continue
        replacement = substitute_font(font_name, available)
        if replacement is None:
            _LOGGER.warning("No replacement found for missing font '%s'", font_name)
            continue
        _LOGGER.info("Substituting font '%s' with '%s'", font_name, replacement)
        substitutions[font_name] = replacement
    return substitutions


def apply_font_substitutions(layers: Iterable[dict], substitutions: Mapping[str, str]) -> None:
    """Rewrite ``text-font`` stacks in place using ``substitutions``."""

    if not substitutions:
        return
    for layer in layers:
        layout = layer.get("layout")
        if isinstance(layout, dict) and "text-font" in layout:
            layout["text-font"] = _rewrite_stack(layout["text-font"], substitutions)


def _rewrite_stack(value: Any, substitutions: Mapping[str, str]) -> Any:
    if isinstance(value, list):
        if _is_expression(value):
            return [value[0]] + [
                _rewrite_stack(item, substitutions) if isinstance(item, list) else item for item in value[1:]
            ]
        return [substitutions.get(name, name) if isinstance(name, str) else name for name in value]
    if isinstance(value, dict) and "stops" in value:
        rewritten = dict(value)
        rewritten["stops"] = [
            [stop[0], _rewrite_stack(stop[1], substitutions)]
            if isinstance(stop, (list, tuple)) and len(stop) == 2
            else stop
            for stop in value["stops"]
        ]
        return rewritten
    return value


__all__ = [
    "FontProvider",
    "apply_font_substitutions",
    "build_font_substitutions",
    "collect_fonts",
    "qt_font_families",
    "substitute_font",
]
