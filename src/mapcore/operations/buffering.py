"""Distance buffer in meters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from mapcore.errors import LayerSelectionError
from mapcore.layers.layer import Layer, LayerFeature
from mapcore.operations.base import derived_layer, resolve, valid_shape
from mapcore.operations.geodesy import LocalFrame
from mapcore.operations.ids import IdSource, UuidIdSource


@dataclass(frozen=True)
class BufferOptions:
    """Shapely buffer parameters.

    Attributes:
        quad_segs: Segments per quarter circle for round joins and caps.
    """

    quad_segs: int = 8


def buffer_feature(feature: LayerFeature, radius_m: float, options: BufferOptions) -> LayerFeature | None:
    """Buffer one feature by ``radius_m`` meters.

    Returns None when the buffer is empty (negative radius on points or
    lines, or an erosion that consumes the whole polygon).
    """
    geom = valid_shape(feature)
    frame = LocalFrame.around(geom)
    buffered = frame.to_local(geom).buffer(radius_m, quad_segs=options.quad_segs)
    if buffered.is_empty:
        return None
    return LayerFeature.from_shape(
        frame.to_lnglat(buffered),
        feature.properties,
        feature_id=feature.feature_id,
    )


def buffer(
    layers: Sequence[Layer],
    layer_id: str,
    radius_m: float,
    name: str,
    ids: IdSource | None = None,
    options: BufferOptions | None = None,
) -> Layer:
    """Buffer every feature of a layer into a new layer.

    A radius of 0 returns the closure of each input (polygons keep their
    area, points and lines vanish). Negative radii erode; features that
    erode to nothing are dropped, which may leave the new layer empty.

    Raises:
        LayerSelectionError: If ``layer_id`` does not resolve.
    """
    source = resolve(layers, layer_id)
    if source is None:
        raise LayerSelectionError(f"Please select a valid layer (not found: {layer_id}).")

    options = options or BufferOptions()
    out: list[LayerFeature] = []
    for feature in source.features:
        result = buffer_feature(feature, float(radius_m), options)
        if result is not None:
            out.append(result)

    dropped = len(source.features) - len(out)
    if dropped:
        logger.debug(f"Buffer {radius_m}m on {layer_id}: {dropped} feature(s) buffered to empty")

    return derived_layer("buffer", name, out, layers, ids or UuidIdSource())
