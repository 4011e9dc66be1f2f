"""WebSocket channel for map clients.

A map client connects, applies the ``replay`` it receives, then applies
streamed ``map_command`` messages with a ``seq`` above the replay's. Once
its map style has loaded it sends ``{"type": "map_ready"}``; the first such
message releases the reconciler's initial pass.
"""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from app.connections import utc_now
from app.workspace import MapWorkspace

router = APIRouter(prefix="/ws", tags=["websocket"])


@router.websocket("/map")
async def websocket_map(websocket: WebSocket):
    """Stream rendering-surface commands to a map client."""
    ws: MapWorkspace = websocket.app.state.workspace
    await ws.clients.join(websocket, ws.surface)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            await handle_client_message(ws, websocket, message)
    except WebSocketDisconnect as e:
        logger.debug(f"Map client disconnected (code {e.code})")
    finally:
        await ws.clients.leave(websocket)


async def handle_client_message(ws: MapWorkspace, websocket: WebSocket, message: dict):
    """Handle messages from map clients."""
    msg_type = message.get("type") if isinstance(message, dict) else None

    if msg_type == "map_ready":
        ws.surface.mark_ready()
        await websocket.send_json({"type": "ready_ack", "timestamp": utc_now()})
    elif msg_type == "ping":
        await websocket.send_json({"type": "pong", "timestamp": utc_now()})
    else:
        logger.debug(f"Map client sent unknown message type: {msg_type}")
        await websocket.send_json({"type": "error", "message": f"Unknown message type: {msg_type}"})
