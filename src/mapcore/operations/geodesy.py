"""Local metric frames for meter-based geometry work on lng/lat data.

Uses the same equirectangular approximation as the map geo-reference:
1 degree of latitude = 111 320 m, 1 degree of longitude shrinks with
cos(latitude). Accurate enough for buffers of a few kilometres around the
frame origin; each feature gets its own frame centred on its centroid.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

METERS_PER_DEG_LAT = 111_320.0

# Keeps the longitude scale finite at the poles
_MIN_COS_LAT = 1e-6


@dataclass(frozen=True)
class LocalFrame:
    """A tangent-plane frame anchored at (lng, lat); local units are meters."""

    lng: float
    lat: float

    @property
    def meters_per_deg_lng(self) -> float:
        return METERS_PER_DEG_LAT * max(math.cos(math.radians(self.lat)), _MIN_COS_LAT)

    @classmethod
    def around(cls, geom: BaseGeometry) -> "LocalFrame":
        """Frame centred on the geometry's centroid (or bounds centre)."""
        if geom.is_empty:
            return cls(0.0, 0.0)
        c = geom.centroid
        if c.is_empty:
            minx, miny, maxx, maxy = geom.bounds
            return cls((minx + maxx) / 2.0, (miny + maxy) / 2.0)
        return cls(c.x, c.y)

    def to_local(self, geom: BaseGeometry) -> BaseGeometry:
        """lng/lat degrees -> local meters (x = East, y = North)."""
        scale = np.array([self.meters_per_deg_lng, METERS_PER_DEG_LAT])
        origin = np.array([self.lng, self.lat])
        return shapely.transform(geom, lambda xy: (xy - origin) * scale)

    def to_lnglat(self, geom: BaseGeometry) -> BaseGeometry:
        """Local meters -> lng/lat degrees."""
        scale = np.array([self.meters_per_deg_lng, METERS_PER_DEG_LAT])
        origin = np.array([self.lng, self.lat])
        return shapely.transform(geom, lambda xy: xy / scale + origin)
