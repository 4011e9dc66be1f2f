"""MapWorkspace — the per-application bundle of store, pipeline and renderer.

Wiring:
    LayerStore --notify--> LayerReconciler --calls--> MapCommandSurface
    MapCommandSurface --commands--> outbox queue --pump--> map clients
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from fastapi import Request
from loguru import logger

from app.config import Settings, settings as default_settings
from app.connections import MapClients
from mapcore.layers.store import LayerStore
from mapcore.operations import BufferOptions, GeometryPipeline, IdSource
from mapcore.render import LayerReconciler, MapCommandSurface


@dataclass
class MapWorkspace:
    """Everything one running map session needs."""

    settings: Settings
    store: LayerStore
    pipeline: GeometryPipeline
    surface: MapCommandSurface
    reconciler: LayerReconciler
    clients: MapClients
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def pump_commands(self) -> None:
        """Forward surface commands to every connected map client."""
        while True:
            command = await self.outbox.get()
            await self.clients.publish(command)

    def close(self) -> None:
        self.reconciler.close()


def create_workspace(settings: Settings | None = None, ids: IdSource | None = None) -> MapWorkspace:
    """Build and wire a workspace; the reconciler still needs ``start()``."""
    settings = settings or default_settings
    outbox: asyncio.Queue = asyncio.Queue()
    store = LayerStore()
    surface = MapCommandSurface(sink=outbox.put_nowait)
    reconciler = LayerReconciler(surface, opacity=settings.primitive_opacity)
    reconciler.attach(store)
    pipeline = GeometryPipeline(
        store,
        ids=ids,
        buffer_options=BufferOptions(quad_segs=settings.buffer_quad_segs),
    )
    logger.debug("Map workspace created")
    return MapWorkspace(
        settings=settings,
        store=store,
        pipeline=pipeline,
        surface=surface,
        reconciler=reconciler,
        clients=MapClients(),
        outbox=outbox,
    )


def get_workspace(request: Request) -> MapWorkspace:
    """FastAPI dependency: the workspace stored on the application."""
    return request.app.state.workspace
