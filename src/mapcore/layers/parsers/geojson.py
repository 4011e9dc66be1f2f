"""Parse GeoJSON (RFC 7946) into LayerFeatures.

Handles FeatureCollection and Feature documents with Point, MultiPoint,
LineString, MultiLineString, Polygon and MultiPolygon geometries. Passes
through the properties dict. Coordinates are already in [lng, lat] order.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from shapely.errors import GEOSException
from shapely.geometry import shape

from mapcore.errors import GeoJSONParseError
from mapcore.layers.layer import GEOMETRY_TYPES, LayerFeature


def parse_geojson(geojson_string: str) -> list[LayerFeature]:
    """Parse a GeoJSON string into a list of features.

    Args:
        geojson_string: Raw GeoJSON content (string).

    Returns:
        Parsed features, in document order. Features whose geometry is
        missing, unsupported or malformed are skipped.

    Raises:
        GeoJSONParseError: If the content is not JSON, is not a
            FeatureCollection/Feature object, or has features but none
            with usable geometry.
    """
    try:
        data = json.loads(geojson_string)
    except (json.JSONDecodeError, TypeError) as e:
        raise GeoJSONParseError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GeoJSONParseError("top-level value is not an object")

    doc_type = data.get("type")
    if doc_type == "FeatureCollection":
        raw_features = data.get("features")
        if not isinstance(raw_features, list):
            raise GeoJSONParseError("FeatureCollection has no features array")
    elif doc_type == "Feature":
        raw_features = [data]
    else:
        raise GeoJSONParseError(f"unsupported document type: {doc_type!r}")

    features: list[LayerFeature] = []
    for idx, raw in enumerate(raw_features):
        try:
            features.append(_parse_feature(raw, idx))
        except _UnusableFeature as e:
            logger.debug(f"GeoJSON: skipped feature {idx}: {e}")

    if raw_features and not features:
        raise GeoJSONParseError(f"none of {len(raw_features)} feature(s) has usable geometry")

    return features


class _UnusableFeature(Exception):
    """A feature the parser drops; the message says why."""


def _parse_feature(raw: Any, idx: int) -> LayerFeature:
    """Turn one GeoJSON Feature into a LayerFeature.

    The geometry is built once with shapely so that coordinate arrays of
    the wrong shape (a Polygon given as a bare point list, rings with too
    few positions, non-numeric positions) are caught here rather than by
    the first operation that reads the layer. Self-intersecting polygons
    are well-formed and are kept; operations repair them.

    Raises:
        _UnusableFeature: If the feature has no usable geometry.
    """
    if not isinstance(raw, dict):
        raise _UnusableFeature(f"not an object ({type(raw).__name__})")

    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        raise _UnusableFeature("no geometry")

    geom_type = geometry.get("type", "")
    if geom_type not in GEOMETRY_TYPES:
        raise _UnusableFeature(f"unsupported geometry type {geom_type!r}")

    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list):
        raise _UnusableFeature(f"{geom_type} without a coordinates array")

    try:
        geom = shape({"type": geom_type, "coordinates": coordinates})
    except (ValueError, TypeError, IndexError, AttributeError, GEOSException) as e:
        raise _UnusableFeature(f"malformed {geom_type} coordinates: {e}") from e
    if geom.is_empty:
        raise _UnusableFeature(f"empty {geom_type}")

    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        properties = {}

    feature_id = raw.get("id", f"geojson-{idx}")
    if not isinstance(feature_id, str):
        feature_id = str(feature_id)

    return LayerFeature(
        feature_id=feature_id,
        geometry_type=geom_type,
        coordinates=coordinates,
        properties=properties,
    )
