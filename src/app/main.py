"""GIS app 4 u - layer operations on an interactive map.

Main FastAPI application.
"""

import asyncio
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.config import settings
from app.routers import layers_router, map_ws_router
from app.workspace import create_workspace
from mapcore import __version__


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if settings.debug else settings.log_level.upper())


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    _configure_logging()
    logger.info(f"{settings.app_name} v{__version__} - initializing")

    workspace = create_workspace(settings)
    app.state.workspace = workspace

    pump_task = asyncio.create_task(workspace.pump_commands(), name="map-command-pump")
    start_task = asyncio.create_task(workspace.reconciler.start(), name="map-reconciler-start")
    logger.info("Waiting for a map client to report map_ready")

    try:
        yield
    finally:
        logger.info("Shutting down...")
        for task in (start_task, pump_task):
            task.cancel()
        for task in (start_task, pump_task):
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"{task.get_name()} ended with error: {e}")
        workspace.close()
        logger.info("Shutdown complete")


app = FastAPI(
    title="GIS app 4 u",
    description="Load GeoJSON layers, derive new ones with buffer/union/difference/intersect/clip, view them on a map",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(layers_router)
app.include_router(map_ws_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": __version__,
        "system": settings.app_name,
    }


@app.get("/api/status")
async def status():
    """System status endpoint."""
    workspace = app.state.workspace
    return {
        "name": settings.app_name,
        "version": __version__,
        "layers": len(workspace.store),
        "map_ready": workspace.surface.is_ready,
        "map_clients": len(workspace.clients),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
