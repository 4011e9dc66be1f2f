"""Polygon overlay operations: union, difference, intersect, clip.

Union, difference and clip read only the *first* feature of the layers
that act as a single shape (both union inputs, both difference inputs,
the clip boundary). Intersect is the only all-pairs operation.

Failure policy differs by operation:
  - union / difference / clip: polygon-type mismatches, empty layers and
    empty results are silent no-ops (None / no layer for that feature)
  - intersect: unresolved ids and "nothing intersects" raise

Input polygons go through ``areal_shape`` first, so self-intersecting rings are
repaired before GEOS sees them.
"""

from __future__ import annotations

from typing import Iterator, Sequence

from loguru import logger
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

from mapcore.errors import LayerSelectionError, NoIntersectionError
from mapcore.layers.layer import Layer, LayerFeature
from mapcore.operations.base import areal_shape, derived_layer, feature_from, polygonal, resolve
from mapcore.operations.ids import IdSource, UuidIdSource


def _first_polygonal_pair(
    layers: Sequence[Layer], id1: str, id2: str, operation: str
) -> tuple[BaseGeometry, BaseGeometry] | None:
    """Repaired first-feature geometries of two layers, if both resolve and both have area."""
    layer1 = resolve(layers, id1)
    layer2 = resolve(layers, id2)
    if layer1 is None or layer2 is None:
        logger.info(f"{operation}: skipped, layer not found ({id1}, {id2})")
        return None
    f1, f2 = layer1.first_feature, layer2.first_feature
    if f1 is None or f2 is None:
        logger.info(f"{operation}: skipped, empty layer ({id1}, {id2})")
        return None
    if not (f1.is_polygonal and f2.is_polygonal):
        logger.info(
            f"{operation}: skipped, first features are {f1.geometry_type}/{f2.geometry_type}, "
            "need Polygon or MultiPolygon"
        )
        return None
    g1, g2 = areal_shape(f1), areal_shape(f2)
    if g1 is None or g2 is None:
        logger.info(f"{operation}: skipped, first feature of {id1 if g1 is None else id2} has no area")
        return None
    return g1, g2


def _areal_features(layer: Layer) -> Iterator[tuple[LayerFeature, BaseGeometry]]:
    """Polygonal features of a layer with their repaired geometry."""
    for feature in layer.features:
        if not feature.is_polygonal:
            continue
        geom = areal_shape(feature)
        if geom is not None:
            yield feature, geom


def union(
    layers: Sequence[Layer],
    layer1_id: str,
    layer2_id: str,
    name: str,
    ids: IdSource | None = None,
) -> Layer | None:
    """Merge the first features of two polygon layers into one feature.

    Returns:
        The new layer, or None (silent no-op) when either layer is missing,
        empty, or its first feature is not a Polygon/MultiPolygon.
    """
    pair = _first_polygonal_pair(layers, layer1_id, layer2_id, "union")
    if pair is None:
        return None
    merged = polygonal(pair[0].union(pair[1]))
    if merged is None:
        return None
    return derived_layer("union", name, [feature_from(merged)], layers, ids or UuidIdSource())


def difference(
    layers: Sequence[Layer],
    base_id: str,
    subtract_id: str,
    name: str,
    ids: IdSource | None = None,
) -> Layer | None:
    """Subtract the first feature of one polygon layer from another's.

    Returns:
        The new layer, or None (silent no-op) on the same conditions as
        ``union`` and when the subtraction leaves nothing.
    """
    pair = _first_polygonal_pair(layers, base_id, subtract_id, "difference")
    if pair is None:
        return None
    remainder = polygonal(pair[0].difference(pair[1]))
    if remainder is None:
        logger.info(f"difference: {subtract_id} covers {base_id}, nothing left")
        return None
    return derived_layer("difference", name, [feature_from(remainder)], layers, ids or UuidIdSource())


def intersect(
    layers: Sequence[Layer],
    layer1_id: str,
    layer2_id: str,
    name: str,
    ids: IdSource | None = None,
) -> Layer:
    """Intersect every feature of one layer with every feature of another.

    Each pair is first screened with a bounding-box overlap and a prepared
    ``intersects`` test; only polygonal pairs that pass are intersected.
    Each non-empty result becomes one feature whose properties merge both
    inputs' properties (layer 2 wins on conflicting keys).

    Raises:
        LayerSelectionError: If either id does not resolve.
        NoIntersectionError: If no pair produces an areal intersection.
    """
    layer1 = resolve(layers, layer1_id)
    layer2 = resolve(layers, layer2_id)
    if layer1 is None or layer2 is None:
        raise LayerSelectionError("Please select two valid layers.")

    shapes2 = list(_areal_features(layer2))
    out: list[LayerFeature] = []
    for f1, g1 in _areal_features(layer1):
        minx1, miny1, maxx1, maxy1 = g1.bounds
        prepared = prep(g1)
        for f2, g2 in shapes2:
            minx2, miny2, maxx2, maxy2 = g2.bounds
            if maxx1 < minx2 or maxx2 < minx1 or maxy1 < miny2 or maxy2 < miny1:
                continue
            if not prepared.intersects(g2):
                continue
            overlap = polygonal(g1.intersection(g2))
            if overlap is None:
                continue
            out.append(feature_from(overlap, {**f1.properties, **f2.properties}, len(out)))

    if not out:
        raise NoIntersectionError("No intersections found.")

    logger.debug(f"intersect {layer1_id} x {layer2_id}: {len(out)} feature(s)")
    return derived_layer("intersect", name, out, layers, ids or UuidIdSource())


def clip(
    layers: Sequence[Layer],
    target_ids: Sequence[str],
    clip_layer_id: str,
    name: str,
    ids: IdSource | None = None,
) -> list[Layer]:
    """Clip each feature of each target layer to the clip layer's first feature.

    Every surviving feature becomes its own layer named
    ``"<name> (<target layer name>)"`` and keeps the target feature's
    properties. Missing targets, non-polygonal features and features that
    do not overlap the boundary are skipped silently.

    Returns:
        New layers in target order; empty when nothing survives or the clip
        layer is missing, empty or not polygonal.
    """
    ids = ids or UuidIdSource()
    clip_layer = resolve(layers, clip_layer_id)
    boundary_feature = clip_layer.first_feature if clip_layer is not None else None
    boundary = None
    if boundary_feature is not None and boundary_feature.is_polygonal:
        boundary = areal_shape(boundary_feature)
    if boundary is None:
        logger.info(f"clip: skipped, no polygonal boundary in {clip_layer_id}")
        return []

    prepared = prep(boundary)
    taken = {layer.layer_id for layer in layers}
    out: list[Layer] = []

    for target_id in target_ids:
        target = resolve(layers, target_id)
        if target is None:
            logger.info(f"clip: skipped missing target {target_id}")
            continue
        for feature, geom in _areal_features(target):
            if not prepared.intersects(geom):
                continue
            clipped = polygonal(geom.intersection(boundary))
            if clipped is None:
                continue
            out.append(
                derived_layer(
                    "clip",
                    f"{name} ({target.name})",
                    [feature_from(clipped, feature.properties)],
                    layers,
                    ids,
                    taken,
                )
            )

    return out
