"""Map layer system — the Layer model, the copy-on-write store, ingestion.

GeoJSON (RFC 7946) is the only import/export format.
"""

from mapcore.layers.ingest import IngestReport, ingest_files
from mapcore.layers.layer import Layer, LayerFeature
from mapcore.layers.store import LayerStore

__all__ = ["IngestReport", "Layer", "LayerFeature", "LayerStore", "ingest_files"]
