"""GeometryPipeline — runs operations against a LayerStore.

The pipeline reads the store's current snapshot, runs the pure operation,
and appends whatever the operation produced. Inputs are never replaced.
"""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from mapcore.layers.layer import Layer
from mapcore.layers.store import LayerStore
from mapcore.operations import overlay
from mapcore.operations.buffering import BufferOptions
from mapcore.operations.buffering import buffer as buffer_op
from mapcore.operations.ids import IdSource, UuidIdSource


class GeometryPipeline:
    """Applies geometry operations to a store and appends the results."""

    def __init__(
        self,
        store: LayerStore,
        ids: IdSource | None = None,
        buffer_options: BufferOptions | None = None,
    ) -> None:
        self.store = store
        self.ids = ids or UuidIdSource()
        self.buffer_options = buffer_options or BufferOptions()

    def buffer(self, layer_id: str, radius_m: float, name: str) -> list[Layer]:
        layer = buffer_op(
            self.store.snapshot, layer_id, radius_m, name, ids=self.ids, options=self.buffer_options
        )
        return self._commit("buffer", [layer])

    def union(self, layer1_id: str, layer2_id: str, name: str) -> list[Layer]:
        layer = overlay.union(self.store.snapshot, layer1_id, layer2_id, name, ids=self.ids)
        return self._commit("union", [layer] if layer is not None else [])

    def difference(self, base_id: str, subtract_id: str, name: str) -> list[Layer]:
        layer = overlay.difference(self.store.snapshot, base_id, subtract_id, name, ids=self.ids)
        return self._commit("difference", [layer] if layer is not None else [])

    def intersect(self, layer1_id: str, layer2_id: str, name: str) -> list[Layer]:
        layer = overlay.intersect(self.store.snapshot, layer1_id, layer2_id, name, ids=self.ids)
        return self._commit("intersect", [layer])

    def clip(self, target_ids: Sequence[str], clip_layer_id: str, name: str) -> list[Layer]:
        layers = overlay.clip(self.store.snapshot, target_ids, clip_layer_id, name, ids=self.ids)
        return self._commit("clip", layers)

    def _commit(self, operation: str, layers: list[Layer]) -> list[Layer]:
        if not layers:
            logger.info(f"{operation}: no output")
            return []
        self.store.extend(layers)
        logger.info(f"{operation}: appended {len(layers)} layer(s)")
        return layers
