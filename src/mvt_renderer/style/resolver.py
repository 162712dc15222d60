"""Resolve a Mapbox style document into paintable, cached layer styles.

A :class:`StyleResolver` owns one style document at a time.  Every successful
:meth:`StyleResolver.load` produces a new immutable state (document, version
number and field requirements) that is swapped in atomically, so concurrent
readers see either the old or the new style but never a mix.  Compiled styles
are memoised per ``(version, layer id, partial label flag)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Mapping, Optional

from ..errors import NotLoadedError, StyleCompileError
from ..model import Envelope, PaintEntry, SourceLayer
from ..settings import RenderOptions
from .attributes import extract_attributes, text_field_attributes
from .compiler import CompiledStyle, compile_layer
from .document import StyleDocument, parse_style_document
from .fonts import FontProvider, qt_font_families

_LOGGER = logging.getLogger(__name__)

# Memoised "no style" marker so unknown or broken layers are only logged once
# per document version.
_MISSING = object()


@dataclass(frozen=True)
class _ResolvedState:
    document: StyleDocument
    version: int
    fields: Mapping[str, frozenset[str]]


def compute_field_requirements(document: StyleDocument) -> dict[str, frozenset[str]]:
    """Return the attributes each source layer's filters and labels read."""

    requirements: dict[str, set[str]] = {}
    for spec in document.layers:
        if spec.source_layer is None:
            continue
        fields = requirements.setdefault(spec.source_layer, set())
        fields |= extract_attributes(spec.filter)
        fields |= text_field_attributes(spec.layout.get("text-field"))
    return {name: frozenset(fields) for name, fields in requirements.items()}


class StyleResolver:
    """Load a style document and hand out compiled styles per layer.

    Parameters
    ----------
    options:
        Label adjustments applied while loading and the default for partial
        label rendering.
    font_provider:
        Callable returning the installed font families.  Defaults to Qt's
        font database; pass ``lambda: None`` to disable font substitution.
    """

    def __init__(
        self,
        options: RenderOptions | None = None,
        font_provider: FontProvider | None = qt_font_families,
    ) -> None:
        self._options = options or RenderOptions()
        self._font_provider = font_provider
        self._state: Optional[_ResolvedState] = None
        self._version = 0
        self._compiled: dict[tuple[int, str, bool], object] = {}
        # ``_load_lock`` serialises reloads; ``_cache_lock`` guards the
        # compiled-style cache so each style is compiled at most once.
        self._load_lock = Lock()
        self._cache_lock = Lock()

    # ------------------------------------------------------------------
    @property
    def options(self) -> RenderOptions:
        return self._options

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def version(self) -> int:
        """Number of successful loads so far; ``0`` while unloaded."""

        return self._state.version if self._state is not None else 0

    @property
    def document(self) -> StyleDocument:
        return self._require_state().document

    # ------------------------------------------------------------------
    def load(self, raw: bytes | str, base_url: Optional[str] = None) -> StyleDocument:
        """Parse ``raw`` and make it the active style.

        Raises :class:`~mvt_renderer.errors.StyleParseError` when the document
        is malformed; the previously loaded style stays active in that case.
        """

        with self._load_lock:
            families = self._font_provider() if self._font_provider is not None else None
            document = parse_style_document(
                raw,
                base_url,
                options=self._options,
                font_families=families,
            )
            state = _ResolvedState(
                document=document,
                version=self._version + 1,
                fields=compute_field_requirements(document),
            )
            with self._cache_lock:
                self._version = state.version
                self._state = state
                self._compiled.clear()

        _LOGGER.info("Loaded style '%s' with %d layers (version %d)", document.name, len(document.layers), state.version)
        return document

    # ------------------------------------------------------------------
    def resolve_style(self, layer_id: str, *, allow_partials: Optional[bool] = None) -> Optional[CompiledStyle]:
        """Return the compiled style for ``layer_id`` or ``None``.

        ``None`` means the layer does not exist or could not be compiled;
        callers skip the layer.
        """

        return self._resolve(self._require_state(), layer_id, allow_partials)

    # ------------------------------------------------------------------
    def field_requirements(self) -> dict[str, frozenset[str]]:
        """Return the attributes needed per source layer for the active style."""

        return dict(self._require_state().fields)

    # ------------------------------------------------------------------
    def layers_to_draw(
        self,
        source_layers: Mapping[str, Optional[SourceLayer]],
        envelope: Envelope,
        *,
        allow_partials: Optional[bool] = None,
    ) -> list[PaintEntry]:
        """Return the paint entries for ``source_layers`` in document order.

        Style layers whose source layer is missing or empty are omitted;
        tiles do not have to carry every layer a style knows about.
        """

        state = self._require_state()
        entries: list[PaintEntry] = []
        background: Optional[SourceLayer] = None
        for spec in state.document.layers:
            if not spec.is_visible:
                continue
            if spec.source_layer is None:
                source = background = background or SourceLayer.background(envelope)
            else:
                source = source_layers.get(spec.source_layer)
                if source is None or source.is_empty:
                    continue
            style = self._resolve(state, spec.id, allow_partials)
            if style is None:
                continue
            entries.append(PaintEntry(layer_id=spec.id, source=source, style=style, envelope=envelope))
        return entries

    # ------------------------------------------------------------------
    def _require_state(self) -> _ResolvedState:
        state = self._state
        if state is None:
            raise NotLoadedError("Style not loaded. Call load() first.")
        return state

    # ------------------------------------------------------------------
    def _resolve(self, state: _ResolvedState, layer_id: str, allow_partials: Optional[bool]) -> Optional[CompiledStyle]:
        partials = self._options.allow_partial_labels if allow_partials is None else bool(allow_partials)
        key = (state.version, layer_id, partials)
        with self._cache_lock:
            cached = self._compiled.get(key)
            if cached is None:
                cached = self._compile(state, layer_id, partials)
                # A reader holding a superseded state must not repopulate the
                # cache with styles from the old document.
                if state.version == self._version:
                    self._compiled[key] = cached
        return None if cached is _MISSING else cached  # type: ignore[return-value]

    # ------------------------------------------------------------------
    @staticmethod
    def _compile(state: _ResolvedState, layer_id: str, allow_partials: bool) -> object:
        spec = state.document.layer(layer_id)
        if spec is None:
            _LOGGER.warning("Style layer ID '%s' not found in style definition.", layer_id)
            return _MISSING
        try:
            style = compile_layer(spec)
        except StyleCompileError as exc:
            _LOGGER.error("Error transforming layer %s: %s", layer_id, exc)
            return _MISSING
        except Exception:
            _LOGGER.exception("Error transforming layer %s", layer_id)
            return _MISSING
        if allow_partials:
            style = style.with_partial_labels()
        return style


__all__ = ["StyleResolver", "compute_field_requirements"]
