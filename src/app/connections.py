"""Registry of map clients connected over /ws/map.

A client joins by receiving a ``replay`` of the surface's current state;
from then on it receives every streamed ``map_command``. Joining and
publishing share one lock, so a client is never sent a command between
the replay snapshot and its registration.
"""

import asyncio
import json
from datetime import datetime, timezone

from fastapi import WebSocket
from loguru import logger

from mapcore.render import MapCommandSurface


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MapClients:
    """Map clients that receive the rendering command stream."""

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, websocket: object) -> bool:
        return websocket in self._clients

    async def join(self, websocket: WebSocket, surface: MapCommandSurface) -> int:
        """Accept a client, send it the replay and start streaming to it.

        Returns:
            The ``seq`` of the replay; streamed commands at or below it are
            already part of the replay.
        """
        await websocket.accept()
        async with self._lock:
            seq = surface.last_seq
            await websocket.send_text(json.dumps({
                "type": "replay",
                "seq": seq,
                "commands": surface.replay_commands(),
                "timestamp": utc_now(),
            }))
            self._clients.add(websocket)
        logger.info(f"Map client joined at seq {seq} ({len(self._clients)} connected)")
        return seq

    async def leave(self, websocket: WebSocket):
        async with self._lock:
            self._clients.discard(websocket)
        logger.info(f"Map client left ({len(self._clients)} connected)")

    async def publish(self, command: dict):
        """Send one surface command to every client; clients that fail are dropped."""
        if not self._clients:
            return

        message = json.dumps({"type": "map_command", "command": command})
        dropped = set()

        async with self._lock:
            for client in self._clients:
                try:
                    await client.send_text(message)
                except Exception as e:
                    logger.warning(f"Dropping map client after failed send of seq {command.get('seq')}: {e}")
                    dropped.add(client)

            self._clients -= dropped
