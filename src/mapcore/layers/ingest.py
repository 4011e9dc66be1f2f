"""File ingestion — turn uploaded GeoJSON documents into store layers.

Each uploaded file is handled on its own: a file that fails to parse is
reported in the IngestReport and contributes no layer, while the other
files of the same upload still go through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from loguru import logger

from mapcore.errors import GeoJSONParseError
from mapcore.layers.layer import Layer
from mapcore.layers.parsers.geojson import parse_geojson
from mapcore.layers.store import LayerStore

# Upload colors, cycled in upload order
PREDEFINED_COLORS = (
    "#FF6347",
    "#4682B4",
    "#32CD32",
    "#FFD700",
    "#6A5ACD",
    "#FFA07A",
    "#40E0D0",
    "#DA70D6",
    "#F08080",
    "#20B2AA",
)


@dataclass
class IngestError:
    """A file that could not be turned into a layer."""

    filename: str
    message: str


@dataclass
class IngestReport:
    """Outcome of one upload batch."""

    layers: list[Layer] = field(default_factory=list)
    errors: list[IngestError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def layer_id_for(filename: str, taken: Iterable[str]) -> str:
    """Derive a layer id from a file name, suffixing ``-2``, ``-3``... if taken."""
    taken = set(taken)
    base = filename.strip() or "upload"
    candidate = base
    n = 2
    while candidate in taken:
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def ingest_files(
    store: LayerStore,
    uploads: Sequence[tuple[str, str]],
    palette: Sequence[str] = PREDEFINED_COLORS,
) -> IngestReport:
    """Parse uploaded files and append one layer per valid file.

    Args:
        store: Store that receives the new layers.
        uploads: ``(filename, text)`` pairs, in upload order.
        palette: Colors cycled across the files that produce a layer.
            The cycle continues from the number of layers already stored.

    Returns:
        IngestReport with the created layers and per-file errors.
    """
    report = IngestReport()
    taken = set(store.ids())
    color_index = len(store)

    for filename, text in uploads:
        try:
            features = parse_geojson(text)
        except GeoJSONParseError as e:
            logger.warning(f"Ingest: {filename} rejected: {e.detail}")
            report.errors.append(IngestError(filename=filename, message=GeoJSONParseError.USER_MESSAGE))
            continue

        layer_id = layer_id_for(filename, taken)
        taken.add(layer_id)
        layer = Layer(
            layer_id=layer_id,
            name=filename,
            features=tuple(features),
            visible=True,
            color=palette[color_index % len(palette)],
            source_format="geojson",
        )
        color_index += 1
        report.layers.append(layer)

    store.extend(report.layers)
    logger.info(f"Ingest: {len(report.layers)} layer(s) created, {len(report.errors)} file(s) rejected")
    return report
