"""mapcore — named geometry layers, derived-layer operations, map sync.

The core has three parts:
  - layers: the Layer model, the copy-on-write LayerStore, GeoJSON ingestion
  - operations: buffer / union / difference / intersect / clip
  - render: reconciliation of store snapshots onto a map rendering surface
"""

from mapcore.errors import MapcoreError

__version__ = "0.1.0"

__all__ = ["MapcoreError", "__version__"]
