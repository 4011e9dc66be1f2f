"""Export Layer to GeoJSON dict (RFC 7946 compliant).

GeoJSON coordinates are [lng, lat] (already the internal storage convention).
The same FeatureCollection is what the rendering surface receives as source
data for a layer.
"""

from __future__ import annotations

from mapcore.layers.layer import Layer


def export_geojson(layer: Layer) -> dict:
    """Export a Layer to a GeoJSON FeatureCollection dict.

    Args:
        layer: The Layer to export.

    Returns:
        Dict representing a valid GeoJSON FeatureCollection.
    """
    return {
        "type": "FeatureCollection",
        "features": [feature.to_geojson() for feature in layer.features],
    }
