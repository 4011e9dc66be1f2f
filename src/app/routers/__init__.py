"""API routers."""

from app.routers.layers import router as layers_router
from app.routers.map_ws import router as map_ws_router

__all__ = ["layers_router", "map_ws_router"]
