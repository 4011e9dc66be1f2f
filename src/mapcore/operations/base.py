"""Shared plumbing for geometry operations.

Operations are pure functions of a layer snapshot: they look layers up by
id, read their features, and return freshly built Layer objects. Nothing
here mutates an input layer.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import shapely
from loguru import logger
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from mapcore.layers.layer import Layer, LayerFeature
from mapcore.operations.ids import IdSource, fresh_id

# Default paint per producing operation
DEFAULT_COLORS = {
    "buffer": "#FF0000",
    "intersect": "#FF8C00",
    "union": "#708090",
    "difference": "#DC143C",
    "clip": "#808000",
}


def resolve(layers: Sequence[Layer], layer_id: str) -> Layer | None:
    """Find a layer by id in a snapshot."""
    for layer in layers:
        if layer.layer_id == layer_id:
            return layer
    return None


def polygonal(geom: BaseGeometry | None) -> Polygon | MultiPolygon | None:
    """Reduce an overlay result to its areal part.

    Returns None for empty results and for results with no area (shared
    edges or corners come back from shapely as lines/points).
    """
    if geom is None or geom.is_empty:
        return None
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        parts: list[Polygon] = []
        for part in geom.geoms:
            if isinstance(part, Polygon) and not part.is_empty:
                parts.append(part)
            elif isinstance(part, MultiPolygon):
                parts.extend(p for p in part.geoms if not p.is_empty)
        if not parts:
            return None
        return parts[0] if len(parts) == 1 else MultiPolygon(parts)
    return None


def valid_shape(feature: LayerFeature) -> BaseGeometry:
    """The feature's geometry, repaired with ``make_valid`` when GEOS rejects it.

    Self-intersecting rings (bowties) are legal GeoJSON; GEOS overlay
    rejects them with a TopologyException.
    """
    geom = feature.shape()
    if geom.is_valid:
        return geom
    logger.debug(f"Repairing invalid {feature.geometry_type} {feature.feature_id}")
    return shapely.make_valid(geom)


def areal_shape(feature: LayerFeature) -> Polygon | MultiPolygon | None:
    """Repaired polygonal geometry of a feature, or None if it has no area."""
    return polygonal(valid_shape(feature))


def derived_layer(
    operation: str,
    name: str,
    features: Sequence[LayerFeature],
    layers: Sequence[Layer],
    ids: IdSource,
    taken: set[str] | None = None,
) -> Layer:
    """Build a derived layer with a fresh id and the operation's default color."""
    if taken is None:
        taken = {layer.layer_id for layer in layers}
    layer_id = fresh_id(ids, taken)
    taken.add(layer_id)
    return Layer(
        layer_id=layer_id,
        name=name,
        features=tuple(features),
        visible=True,
        color=DEFAULT_COLORS[operation],
        source_format=operation,
    )


def feature_from(
    geom: BaseGeometry,
    properties: Mapping[str, Any] | None = None,
    index: int = 0,
) -> LayerFeature:
    return LayerFeature.from_shape(geom, properties, feature_id=f"f{index}")
