"""Compose decoded source layers and a style into ordered paint calls."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Mapping, Optional, Protocol

from .model import Envelope, PaintEntry, SourceLayer, TileContext
from .scale import clamp_zoom, zoom_to_scale_denominator
from .settings import RenderOptions
from .style.resolver import StyleResolver

_LOGGER = logging.getLogger(__name__)

_SCALE_DENOMINATOR: ContextVar[Optional[float]] = ContextVar("mvt_scale_denominator", default=None)


def current_scale_denominator() -> Optional[float]:
    """Return the scale denominator assigned to the render in progress."""

    return _SCALE_DENOMINATOR.get()


@contextmanager
def scale_denominator_context(value: Optional[float]) -> Iterator[Optional[float]]:
    """Expose ``value`` through :func:`current_scale_denominator` for one block.

    The previous value is restored when the block exits, including when it
    raises.
    """

    token = _SCALE_DENOMINATOR.set(value)
    try:
        yield value
    finally:
        _SCALE_DENOMINATOR.reset(token)


class TileRenderer(Protocol):
    """The painting backend driven by :class:`LayerCompositor`."""

    def paint_layer(self, entry: PaintEntry, *, scale_denominator: Optional[float]) -> None:
        ...

    def draw_tile_limits(self) -> None:
        ...

    def finish(self) -> object:
        ...


RendererFactory = Callable[[Envelope], TileRenderer]


class LayerCompositor:
    """Drive a :class:`TileRenderer` through a style's layers in Z-order.

    The compositor keeps no renderer state between calls: every
    :meth:`render` either receives a renderer or builds a fresh one from
    ``renderer_factory``.
    """

    def __init__(self, resolver: StyleResolver, renderer_factory: RendererFactory | None = None) -> None:
        self._resolver = resolver
        self._renderer_factory = renderer_factory

    @property
    def resolver(self) -> StyleResolver:
        return self._resolver

    # ------------------------------------------------------------------
    def paint_entries(
        self,
        source_layers: Mapping[str, Optional[SourceLayer]],
        envelope: Envelope,
        tile: TileContext | None = None,
        options: RenderOptions | None = None,
    ) -> list[PaintEntry]:
        """Return the entries that will be painted, bottom layer first."""

        options = options or self._resolver.options
        entries = self._resolver.layers_to_draw(
            source_layers,
            envelope,
            allow_partials=options.allow_partial_labels,
        )
        scale = self.tile_scale_denominator(tile)
        if scale is None:
            return entries
        return [entry for entry in entries if entry.style.applies_to_scale(scale)]

    # ------------------------------------------------------------------
    def render(
        self,
        source_layers: Mapping[str, Optional[SourceLayer]],
        envelope: Envelope,
        tile: TileContext | None = None,
        options: RenderOptions | None = None,
        renderer: TileRenderer | None = None,
    ) -> object:
        """Paint ``source_layers`` and return whatever the renderer produces."""

        options = options or self._resolver.options
        if renderer is None:
            if self._renderer_factory is None:
                raise ValueError("No renderer given and no renderer factory configured")
            renderer = self._renderer_factory(envelope)

        entries = self.paint_entries(source_layers, envelope, tile, options)
        scale = self.tile_scale_denominator(tile) if options.assign_scale_denominator else None
        _LOGGER.debug("Painting %d layers (scale denominator %s)", len(entries), scale)

        try:
            if scale is None:
                self._paint(renderer, entries, None, options)
            else:
                with scale_denominator_context(scale):
                    self._paint(renderer, entries, scale, options)
        finally:
            result = renderer.finish()
        return result

    # ------------------------------------------------------------------
    @staticmethod
    def tile_scale_denominator(tile: TileContext | None) -> Optional[float]:
        if tile is None:
            return None
        return zoom_to_scale_denominator(clamp_zoom(tile.z))

    # ------------------------------------------------------------------
    @staticmethod
    def _paint(
        renderer: TileRenderer,
        entries: list[PaintEntry],
        scale: Optional[float],
        options: RenderOptions,
    ) -> None:
        for entry in entries:
            try:
                renderer.paint_layer(entry, scale_denominator=scale)
            except Exception:
                _LOGGER.exception("Failed to paint layer '%s'", entry.layer_id)
        if options.show_tile_limits:
            renderer.draw_tile_limits()


__all__ = [
    "LayerCompositor",
    "RendererFactory",
    "TileRenderer",
    "current_scale_denominator",
    "scale_denominator_context",
]
