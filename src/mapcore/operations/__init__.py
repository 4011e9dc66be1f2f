"""Geometry operations that derive new layers from existing ones."""

from mapcore.operations.base import DEFAULT_COLORS
from mapcore.operations.buffering import BufferOptions, buffer
from mapcore.operations.ids import IdSource, SequentialIdSource, UuidIdSource, fresh_id
from mapcore.operations.overlay import clip, difference, intersect, union
from mapcore.operations.pipeline import GeometryPipeline

__all__ = [
    "DEFAULT_COLORS",
    "BufferOptions",
    "GeometryPipeline",
    "IdSource",
    "SequentialIdSource",
    "UuidIdSource",
    "buffer",
    "clip",
    "difference",
    "fresh_id",
    "intersect",
    "union",
]
