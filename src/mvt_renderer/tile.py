"""A decoded vector tile bound to its position on the map."""

from __future__ import annotations

import logging
from typing import Optional

from .compositor import LayerCompositor, TileRenderer
from .errors import DecodeError
from .model import SourceLayer, TileContext
from .settings import RenderOptions
from .tile_decoder import FieldRequirements, TileDecoder

_LOGGER = logging.getLogger(__name__)


class VectorTile:
    """Hold the source layers of one tile between decode and render calls."""

    def __init__(self, context: TileContext, decoder: TileDecoder | None = None) -> None:
        self._context = context
        self._decoder = decoder or TileDecoder()
        self._source_layers: dict[str, Optional[SourceLayer]] = {}

    # ------------------------------------------------------------------
    @property
    def context(self) -> TileContext:
        return self._context

    @property
    def source_layers(self) -> dict[str, Optional[SourceLayer]]:
        return dict(self._source_layers)

    # ------------------------------------------------------------------
    def load(self, data: bytes, required_fields: Optional[FieldRequirements] = None) -> dict[str, Optional[SourceLayer]]:
        """Decode ``data`` and replace the current source layers.

        On :class:`~mvt_renderer.errors.DecodeError` the previous layers are
        kept and the error propagates.
        """

        context = self._context
        try:
            decoded = self._decoder.decode(data, context.envelope, required_fields)
        except DecodeError:
            _LOGGER.warning("Keeping previous layers of tile %s/%s/%s after decode failure", context.z, context.x, context.y)
            raise
        self._source_layers = decoded
        return self.source_layers

    # ------------------------------------------------------------------
    def render(
        self,
        compositor: LayerCompositor,
        options: RenderOptions | None = None,
        renderer: TileRenderer | None = None,
    ) -> object:
        """Render the current layers through ``compositor``."""

        return compositor.render(
            self._source_layers,
            self._context.envelope,
            self._context,
            options=options,
            renderer=renderer,
        )


__all__ = ["VectorTile"]
