"""Map rendering sync — primitive kinds, the surface contract, the reconciler."""

from mapcore.render.primitives import PrimitiveKind, paint_for, primitive_kind_of
from mapcore.render.reconciler import LayerReconciler, ReconcileReport
from mapcore.render.surface import MapCommandSurface, RenderingSurface

__all__ = [
    "LayerReconciler",
    "MapCommandSurface",
    "PrimitiveKind",
    "ReconcileReport",
    "RenderingSurface",
    "paint_for",
    "primitive_kind_of",
]
