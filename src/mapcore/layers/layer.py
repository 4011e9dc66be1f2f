"""Layer and LayerFeature dataclasses for the map layer system.

All coordinates are stored in GeoJSON convention: [lng, lat] or [lng, lat, alt].
Both classes are frozen: a geometric transform always produces a new Layer,
and visibility/color edits go through ``with_visible``/``with_color``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

GEOMETRY_TYPES = (
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
)
POLYGONAL_TYPES = ("Polygon", "MultiPolygon")

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalize_color(color: str) -> str:
    """Validate a ``#RGB``/``#RRGGBB`` color and return it upper-cased.

    Raises:
        ValueError: If the value is not a hex color.
    """
    if not isinstance(color, str) or not _HEX_COLOR.match(color):
        raise ValueError(f"Invalid color: {color!r} (expected #RGB or #RRGGBB)")
    return color.upper()


def freeze_coordinates(coords: Any) -> Any:
    """Convert nested coordinate lists into nested tuples."""
    if isinstance(coords, (list, tuple)):
        return tuple(freeze_coordinates(c) for c in coords)
    return coords


def thaw_coordinates(coords: Any) -> Any:
    """Convert nested coordinate tuples back into JSON-friendly lists."""
    if isinstance(coords, (list, tuple)):
        return [thaw_coordinates(c) for c in coords]
    return coords


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LayerFeature:
    """A single feature (point, line, polygon family) within a layer.

    Attributes:
        feature_id: Identifier for this feature, unique within its layer.
        geometry_type: One of GEOMETRY_TYPES.
        coordinates: GeoJSON-style coordinate structure as nested tuples.
            Point: (lng, lat)
            LineString: ((lng, lat), (lng, lat), ...)
            Polygon: (((lng, lat), ...), ...)  (tuple of rings)
        properties: Read-only key-value metadata.
    """

    feature_id: str
    geometry_type: str
    coordinates: tuple
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.geometry_type not in GEOMETRY_TYPES:
            raise ValueError(f"Unsupported geometry type: {self.geometry_type}")
        object.__setattr__(self, "coordinates", freeze_coordinates(self.coordinates))
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties or {})))

    @property
    def is_polygonal(self) -> bool:
        return self.geometry_type in POLYGONAL_TYPES

    def shape(self) -> BaseGeometry:
        """Build the shapely geometry for this feature."""
        return shape({"type": self.geometry_type, "coordinates": self.coordinates})

    def to_geojson(self) -> dict:
        """Convert to a GeoJSON Feature dict."""
        return {
            "type": "Feature",
            "id": self.feature_id,
            "geometry": {
                "type": self.geometry_type,
                "coordinates": thaw_coordinates(self.coordinates),
            },
            "properties": dict(self.properties),
        }

    @classmethod
    def from_shape(
        cls,
        geom: BaseGeometry,
        properties: Mapping[str, Any] | None = None,
        feature_id: str = "f0",
    ) -> "LayerFeature":
        """Wrap a shapely geometry as a feature."""
        gj = mapping(geom)
        return cls(
            feature_id=feature_id,
            geometry_type=gj["type"],
            coordinates=gj["coordinates"],
            properties=properties or {},
        )


@dataclass(frozen=True)
class Layer:
    """A named, styled collection of geographic features.

    Attributes:
        layer_id: Unique identifier; the join key with the rendering surface.
        name: Human-readable display name (not required to be unique).
        features: Ordered tuple of LayerFeature instances.
        visible: Whether the layer is currently rendered.
        color: Hex color used for the layer's paint.
        source_format: "geojson" for uploads, the operation name for
            derived layers ("buffer", "union", ...).
        created_at: ISO8601 creation timestamp.
    """

    layer_id: str
    name: str
    features: tuple[LayerFeature, ...] = ()
    visible: bool = True
    color: str = "#FF6347"
    source_format: str = "geojson"
    created_at: str = field(default_factory=_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", tuple(self.features))
        object.__setattr__(self, "color", normalize_color(self.color))

    @property
    def representative_geometry_type(self) -> str | None:
        """Geometry type of the first feature, or None for an empty layer."""
        if not self.features:
            return None
        return self.features[0].geometry_type

    @property
    def first_feature(self) -> LayerFeature | None:
        return self.features[0] if self.features else None

    def with_visible(self, visible: bool) -> "Layer":
        return replace(self, visible=bool(visible))

    def with_color(self, color: str) -> "Layer":
        return replace(self, color=color)
