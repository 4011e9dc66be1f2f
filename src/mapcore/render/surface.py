"""Rendering surface contract and the command-stream implementation.

The reconciler drives any object that satisfies ``RenderingSurface``. The
concrete ``MapCommandSurface`` keeps a mirror of the sources and primitives
it has been told about and turns every call into a mapbox-gl style command
dict for the connected map clients (see app.routers.map_ws).
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

from loguru import logger

from mapcore.errors import SurfaceError
from mapcore.render.primitives import PrimitiveKind

CommandSink = Callable[[dict], None]


class RenderingSurface(Protocol):
    """What the reconciler needs from a map."""

    async def wait_ready(self) -> None: ...

    def create_source(self, source_id: str, data: dict) -> None: ...

    def has_source(self, source_id: str) -> bool: ...

    def replace_source_data(self, source_id: str, data: dict) -> None: ...

    def add_primitive(self, primitive_id: str, kind: PrimitiveKind, source_id: str, paint: dict) -> None: ...

    def set_paint_property(self, primitive_id: str, key: str, value: Any) -> None: ...

    def set_visibility(self, primitive_id: str, visible: bool) -> None: ...

    def destroy(self) -> None: ...


class MapCommandSurface:
    """Rendering surface that streams commands to browser map clients.

    Commands:
        {"op": "addSource", "id", "source": {"type": "geojson", "data"}}
        {"op": "addLayer", "layer": {"id", "type", "source", "paint", "layout"}}
        {"op": "setData", "id", "data"}
        {"op": "setPaintProperty", "id", "name", "value"}
        {"op": "setLayoutProperty", "id", "name": "visibility", "value"}
        {"op": "remove"}

    Every emitted command carries an increasing ``seq``.
    """

    def __init__(self, sink: CommandSink | None = None) -> None:
        self._sink = sink
        self._ready = asyncio.Event()
        self._destroyed = False
        self._seq = 0
        self._sources: dict[str, dict] = {}
        self._primitives: dict[str, dict] = {}

    # ==================
    # Readiness
    # ==================

    def mark_ready(self) -> None:
        """Called when a map client reports that its style has loaded."""
        if not self._ready.is_set():
            logger.info("Map surface ready")
        self._ready.set()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_ready(self) -> None:
        await self._ready.wait()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ==================
    # Surface contract
    # ==================

    def create_source(self, source_id: str, data: dict) -> None:
        self._check_alive()
        if source_id in self._sources:
            raise SurfaceError(f"Source already exists: {source_id}")
        self._sources[source_id] = data
        self._emit({"op": "addSource", "id": source_id, "source": {"type": "geojson", "data": data}})

    def has_source(self, source_id: str) -> bool:
        return source_id in self._sources

    def replace_source_data(self, source_id: str, data: dict) -> None:
        self._check_alive()
        if source_id not in self._sources:
            raise SurfaceError(f"Unknown source: {source_id}")
        self._sources[source_id] = data
        self._emit({"op": "setData", "id": source_id, "data": data})

    def add_primitive(self, primitive_id: str, kind: PrimitiveKind, source_id: str, paint: dict) -> None:
        self._check_alive()
        if primitive_id in self._primitives:
            raise SurfaceError(f"Primitive already exists: {primitive_id}")
        if source_id not in self._sources:
            raise SurfaceError(f"Unknown source: {source_id}")
        spec = {
            "id": primitive_id,
            "type": PrimitiveKind(kind).value,
            "source": source_id,
            "paint": dict(paint),
            "layout": {"visibility": "visible"},
        }
        self._primitives[primitive_id] = spec
        self._emit({"op": "addLayer", "layer": _copy_spec(spec)})

    def set_paint_property(self, primitive_id: str, key: str, value: Any) -> None:
        spec = self._primitive(primitive_id)
        spec["paint"][key] = value
        self._emit({"op": "setPaintProperty", "id": primitive_id, "name": key, "value": value})

    def set_visibility(self, primitive_id: str, visible: bool) -> None:
        spec = self._primitive(primitive_id)
        value = "visible" if visible else "none"
        spec["layout"]["visibility"] = value
        self._emit({"op": "setLayoutProperty", "id": primitive_id, "name": "visibility", "value": value})

    def destroy(self) -> None:
        """Drop every source and primitive; the surface is unusable afterwards."""
        if self._destroyed:
            return
        self._destroyed = True
        released = len(self._primitives)
        self._primitives.clear()
        self._sources.clear()
        logger.info(f"Map surface destroyed ({released} primitive(s) released)")
        self._emit({"op": "remove"})

    # ==================
    # Client support
    # ==================

    def replay_commands(self) -> list[dict]:
        """Commands that rebuild the current state on a freshly loaded map.

        Clients apply the replay, then skip streamed commands whose ``seq``
        is not greater than ``last_seq`` at replay time.
        """
        commands: list[dict] = [
            {"op": "addSource", "id": sid, "source": {"type": "geojson", "data": data}}
            for sid, data in self._sources.items()
        ]
        commands.extend({"op": "addLayer", "layer": _copy_spec(spec)} for spec in self._primitives.values())
        return commands

    @property
    def last_seq(self) -> int:
        return self._seq

    def primitive(self, primitive_id: str) -> dict | None:
        """Current mirrored state of a primitive (copy), or None."""
        spec = self._primitives.get(primitive_id)
        return _copy_spec(spec) if spec is not None else None

    def source_data(self, source_id: str) -> dict | None:
        return self._sources.get(source_id)

    # ==================
    # Internals
    # ==================

    def _primitive(self, primitive_id: str) -> dict:
        self._check_alive()
        spec = self._primitives.get(primitive_id)
        if spec is None:
            raise SurfaceError(f"Unknown primitive: {primitive_id}")
        return spec

    def _check_alive(self) -> None:
        if self._destroyed:
            raise SurfaceError("Map surface has been destroyed")

    def _emit(self, command: dict) -> None:
        self._seq += 1
        command["seq"] = self._seq
        if self._sink is not None:
            self._sink(command)


def _copy_spec(spec: dict) -> dict:
    return {**spec, "paint": dict(spec["paint"]), "layout": dict(spec["layout"])}
