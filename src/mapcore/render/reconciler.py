"""LayerReconciler — keeps a rendering surface in step with the layer store.

Each layer id is either unregistered or registered with the surface. The
first pass that sees an id registers it (one source plus one primitive
bound to it); later passes only push what changed: the source data when
the feature tuple changed, the color paint, and opacity/visibility. Ids
are never unregistered; only closing the reconciler (which destroys the
surface) ends their lifetime.

Reconciliation waits for the surface to report readiness. Snapshots that
arrive earlier are not applied; the latest one is kept and reconciled as
soon as ``start()`` sees the surface ready.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from loguru import logger

from mapcore.layers.exporters.geojson import export_geojson
from mapcore.layers.layer import Layer
from mapcore.layers.store import LayerStore, Snapshot
from mapcore.render.primitives import (
    VISIBLE_OPACITY,
    PrimitiveKind,
    color_key,
    opacity_for,
    opacity_key,
    paint_for,
    primitive_kind_of,
)
from mapcore.render.surface import RenderingSurface


@dataclass
class ReconcileReport:
    """What one reconciliation pass did."""

    registered: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.registered or self.updated)


@dataclass
class _Registration:
    kind: PrimitiveKind
    applied: Layer


def representative_kind(layer: Layer) -> PrimitiveKind:
    return primitive_kind_of(layer.representative_geometry_type)


class LayerReconciler:
    """Drives a RenderingSurface to match LayerStore snapshots."""

    def __init__(self, surface: RenderingSurface, opacity: float = VISIBLE_OPACITY) -> None:
        self.surface = surface
        self.opacity = opacity
        self._registered: dict[str, _Registration] = {}
        self._failed: set[str] = set()
        self._latest: Snapshot | None = None
        self._ready = False
        self._closed = False
        self._store: LayerStore | None = None

    # ==================
    # Lifecycle
    # ==================

    def attach(self, store: LayerStore) -> None:
        """Follow a store: remember its snapshot and reconcile on every change."""
        self._store = store
        self._latest = store.snapshot
        store.subscribe(self.notify)

    async def start(self) -> ReconcileReport:
        """Wait for the surface, then reconcile the latest snapshot."""
        await self.surface.wait_ready()
        self._ready = True
        logger.info("Reconciler: surface ready, running initial pass")
        if self._latest is None or self._closed:
            return ReconcileReport()
        return self.reconcile(self._latest)

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Destroy the surface and forget all registrations."""
        if self._closed:
            return
        self._closed = True
        if self._store is not None:
            self._store.unsubscribe(self.notify)
        try:
            self.surface.destroy()
        finally:
            self._registered.clear()
            self._failed.clear()
            logger.info("Reconciler closed")

    def __enter__(self) -> "LayerReconciler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ==================
    # Passes
    # ==================

    def notify(self, snapshot: Snapshot) -> None:
        """Store listener: reconcile now if ready, otherwise keep for later."""
        self._latest = snapshot
        if not self._ready:
            logger.debug(f"Reconciler: surface not ready, deferring {len(snapshot)} layer(s)")
            return
        if self._closed:
            return
        self.reconcile(snapshot)

    def reconcile(self, snapshot: Iterable[Layer]) -> ReconcileReport:
        """Run one pass over a snapshot.

        Surface failures are isolated per layer, whatever the surface
        raises: the layer is reported as failed and the pass moves on. A layer whose registration failed is
        not attempted again.
        """
        report = ReconcileReport()
        if self._closed:
            return report

        for layer in snapshot:
            layer_id = layer.layer_id
            if layer_id in self._failed:
                continue
            registration = self._registered.get(layer_id)
            if registration is None:
                try:
                    self._register(layer)
                except Exception as e:
                    logger.warning(f"Reconciler: could not register {layer_id}: {type(e).__name__}: {e}")
                    self._failed.add(layer_id)
                    report.failed.append(layer_id)
                    continue
                report.registered.append(layer_id)
            elif registration.applied is not layer:
                try:
                    if self._update(registration, layer):
                        report.updated.append(layer_id)
                except Exception as e:
                    logger.warning(f"Reconciler: could not update {layer_id}: {type(e).__name__}: {e}")
                    report.failed.append(layer_id)

        if report.changed or report.failed:
            logger.debug(
                f"Reconcile: {len(report.registered)} registered, "
                f"{len(report.updated)} updated, {len(report.failed)} failed"
            )
        return report

    def is_registered(self, layer_id: str) -> bool:
        return layer_id in self._registered

    def kind_of(self, layer_id: str) -> PrimitiveKind | None:
        registration = self._registered.get(layer_id)
        return registration.kind if registration is not None else None

    # ==================
    # Internals
    # ==================

    def _register(self, layer: Layer) -> None:
        kind = representative_kind(layer)
        layer_id = layer.layer_id
        data = export_geojson(layer)
        if self.surface.has_source(layer_id):
            self.surface.replace_source_data(layer_id, data)
        else:
            self.surface.create_source(layer_id, data)
        self.surface.add_primitive(layer_id, kind, layer_id, paint_for(kind, layer.color, layer.visible, self.opacity))
        if not layer.visible:
            self.surface.set_visibility(layer_id, False)
        self._registered[layer_id] = _Registration(kind=kind, applied=layer)
        logger.debug(f"Reconciler: registered {layer_id} as {kind.value}")

    def _update(self, registration: _Registration, layer: Layer) -> bool:
        previous = registration.applied
        kind = registration.kind
        if representative_kind(layer) is not kind:
            logger.warning(f"Reconciler: {layer.layer_id} changed geometry type, keeping {kind.value} primitive")

        changed = False
        if layer.features is not previous.features:
            self.surface.replace_source_data(layer.layer_id, export_geojson(layer))
            changed = True
        if layer.color != previous.color:
            self.surface.set_paint_property(layer.layer_id, color_key(kind), layer.color)
            changed = True
        if layer.visible != previous.visible:
            self.surface.set_paint_property(layer.layer_id, opacity_key(kind), opacity_for(layer.visible, self.opacity))
            self.surface.set_visibility(layer.layer_id, layer.visible)
            changed = True
        registration.applied = layer
        return changed
