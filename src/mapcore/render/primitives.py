"""Display primitive kinds and their paint properties.

The primitive kind of a layer is picked from its representative geometry
type (the type of its first feature); mixed-geometry layers are styled
uniformly by that first feature.
"""

from __future__ import annotations

from enum import Enum

# Opacity of a visible layer; hidden layers are painted fully transparent
VISIBLE_OPACITY = 0.6


class PrimitiveKind(str, Enum):
    """Map primitive used to draw a layer."""

    CIRCLE = "circle"
    LINE = "line"
    FILL = "fill"


_KIND_BY_GEOMETRY = {
    "Point": PrimitiveKind.CIRCLE,
    "MultiPoint": PrimitiveKind.CIRCLE,
    "LineString": PrimitiveKind.LINE,
    "MultiLineString": PrimitiveKind.LINE,
    "Polygon": PrimitiveKind.FILL,
    "MultiPolygon": PrimitiveKind.FILL,
}


def primitive_kind_of(geometry_type: str | None) -> PrimitiveKind:
    """Primitive for a representative geometry type; ``fill`` when unknown or empty."""
    return _KIND_BY_GEOMETRY.get(geometry_type or "", PrimitiveKind.FILL)


def color_key(kind: PrimitiveKind) -> str:
    return f"{kind.value}-color"


def opacity_key(kind: PrimitiveKind) -> str:
    return f"{kind.value}-opacity"


def opacity_for(visible: bool, opacity: float = VISIBLE_OPACITY) -> float:
    return opacity if visible else 0.0


def paint_for(kind: PrimitiveKind, color: str, visible: bool, opacity: float = VISIBLE_OPACITY) -> dict:
    """Paint properties for a primitive, e.g. ``{"fill-color": ..., "fill-opacity": ...}``."""
    return {
        color_key(kind): color,
        opacity_key(kind): opacity_for(visible, opacity),
    }
