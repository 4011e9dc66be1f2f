"""Exception hierarchy shared by the layer store, operations and renderer."""

from __future__ import annotations


class MapcoreError(Exception):
    """Base class for all mapcore errors."""


class LayerError(MapcoreError):
    """Layer store misuse."""


class DuplicateLayerError(LayerError):
    """A layer with the same id is already in the store."""

    def __init__(self, layer_id: str) -> None:
        super().__init__(f"Layer already exists: {layer_id}")
        self.layer_id = layer_id


class LayerNotFoundError(LayerError, KeyError):
    """A mutation referenced a layer id the store does not hold."""

    def __init__(self, layer_id: str) -> None:
        super().__init__(f"Layer not found: {layer_id}")
        self.layer_id = layer_id

    def __str__(self) -> str:
        return self.args[0]


class GeoJSONParseError(MapcoreError, ValueError):
    """An uploaded document is not usable GeoJSON."""

    USER_MESSAGE = "Failed to parse the file. Please ensure it is a valid GeoJSON."

    def __init__(self, detail: str) -> None:
        super().__init__(f"{self.USER_MESSAGE} ({detail})")
        self.detail = detail


class OperationError(MapcoreError):
    """A geometry operation could not produce a layer."""


class LayerSelectionError(OperationError):
    """An operation referenced layers that do not resolve."""


class NoIntersectionError(OperationError):
    """Intersect found no overlapping polygon pairs."""


class SurfaceError(MapcoreError):
    """The rendering surface rejected a command."""
