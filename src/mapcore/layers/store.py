"""LayerStore — ordered, copy-on-write collection of map layers.

Append order is draw order (later = on top). Every change produces a new
snapshot tuple; snapshots handed out earlier are never modified, so a
reconciliation pass or an operation can keep reading the one it was given.
"""

from __future__ import annotations

from typing import Callable, Iterator

from loguru import logger

from mapcore.errors import DuplicateLayerError, LayerNotFoundError
from mapcore.layers.layer import Layer

Snapshot = tuple[Layer, ...]
SnapshotListener = Callable[[Snapshot], None]


class LayerStore:
    """Owns the ordered layer collection and notifies listeners on change."""

    def __init__(self, layers: tuple[Layer, ...] | list[Layer] = ()) -> None:
        self._snapshot: Snapshot = ()
        self._listeners: list[SnapshotListener] = []
        for layer in layers:
            self._check_unique(layer)
            self._snapshot = self._snapshot + (layer,)

    # ==================
    # Queries
    # ==================

    @property
    def snapshot(self) -> Snapshot:
        """The current immutable snapshot."""
        return self._snapshot

    def find(self, layer_id: str) -> Layer | None:
        """Get a layer by ID.

        Returns:
            The Layer if found, None otherwise.
        """
        for layer in self._snapshot:
            if layer.layer_id == layer_id:
                return layer
        return None

    def ids(self) -> frozenset[str]:
        return frozenset(layer.layer_id for layer in self._snapshot)

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._snapshot)

    def __contains__(self, layer_id: object) -> bool:
        return any(layer.layer_id == layer_id for layer in self._snapshot)

    # ==================
    # Mutations
    # ==================

    def append(self, layer: Layer) -> str:
        """Append a layer to the end of the collection.

        Returns:
            The layer_id of the added layer.

        Raises:
            DuplicateLayerError: If the id is already in use.
        """
        self._check_unique(layer)
        self._publish(self._snapshot + (layer,))
        logger.info(f"Layer added: '{layer.name}' ({layer.layer_id}, {len(layer.features)} features)")
        return layer.layer_id

    def extend(self, layers: list[Layer]) -> list[str]:
        """Append several layers as one change (one notification)."""
        snapshot = self._snapshot
        taken = {layer.layer_id for layer in snapshot}
        for layer in layers:
            if layer.layer_id in taken:
                raise DuplicateLayerError(layer.layer_id)
            taken.add(layer.layer_id)
            snapshot = snapshot + (layer,)
        if layers:
            self._publish(snapshot)
            logger.info(f"Layers added: {', '.join(layer.layer_id for layer in layers)}")
        return [layer.layer_id for layer in layers]

    def set_visible(self, layer_id: str, visible: bool) -> Layer:
        """Set the visibility of a layer.

        Raises:
            LayerNotFoundError: If the layer_id is not found.
        """
        return self._replace(layer_id, lambda layer: layer.with_visible(visible))

    def set_color(self, layer_id: str, color: str) -> Layer:
        """Set the paint color of a layer.

        Raises:
            LayerNotFoundError: If the layer_id is not found.
            ValueError: If the color is not a hex color.
        """
        return self._replace(layer_id, lambda layer: layer.with_color(color))

    # ==================
    # Listeners
    # ==================

    def subscribe(self, listener: SnapshotListener) -> None:
        """Call ``listener(snapshot)`` after every change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: SnapshotListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # ==================
    # Internals
    # ==================

    def _check_unique(self, layer: Layer) -> None:
        if layer.layer_id in self:
            raise DuplicateLayerError(layer.layer_id)

    def _replace(self, layer_id: str, edit: Callable[[Layer], Layer]) -> Layer:
        for idx, layer in enumerate(self._snapshot):
            if layer.layer_id == layer_id:
                updated = edit(layer)
                if updated == layer:
                    return layer
                self._publish(self._snapshot[:idx] + (updated,) + self._snapshot[idx + 1:])
                return updated
        raise LayerNotFoundError(layer_id)

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Layer store listener failed: {e}")
