"""Signaling WebSocket endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from ..services.signaling import SignalingHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket) -> None:
    """Relay join, negotiation and chat frames between room members."""

    hub: SignalingHub = websocket.app.state.hub
    await websocket.accept()

    def writable() -> bool:
        return (
            websocket.application_state is WebSocketState.CONNECTED
            and websocket.client_state is WebSocketState.CONNECTED
        )

    async def close() -> None:
        if writable():
            await websocket.close()

    # uvicorn closes sockets that miss protocol pings, so an open socket is a live one.
    connection = await hub.connect(websocket.send_json, close, writable, transport_alive=writable)

    try:
        while not connection.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect" or connection.closed:
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await hub.receive(connection, raw)
    except Exception:  # noqa: BLE001 - any failure ends this connection only
        logger.exception("Signaling connection %s failed", connection.connection_id)
    finally:
        await hub.disconnect(connection)
