"""Route inbound signaling frames to their recipients."""
from __future__ import annotations

import json
import logging
import time
from typing import Awaitable, Callable

from pydantic import ValidationError

from ..core.config import Settings
from ..schemas.signaling import ChatRequest, JoinRequest, MessageType, SignalRequest
from .connections import Connection, ConnectionRegistry
from .errors import MalformedRequest, PreconditionViolation, SignalingError, UnknownOperation
from .membership import MembershipManager
from .outbox import Outbox
from .rooms import Room, RoomStore

DEFAULT_CHAT_NAME = "User"

DisconnectCallable = Callable[[Connection], Awaitable[None]]

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RelayRouter:
    """Dispatch each frame by ``type``; payloads are relayed, never inspected."""

    def __init__(
        self,
        store: RoomStore,
        registry: ConnectionRegistry,
        membership: MembershipManager,
        settings: Settings,
        disconnect: DisconnectCallable,
    ) -> None:
        self._store = store
        self._registry = registry
        self._membership = membership
        self._settings = settings
        self._disconnect = disconnect

    async def dispatch(self, connection: Connection, raw: str | bytes) -> None:
        """Handle one inbound frame; rejected requests are answered with ``error``."""

        self._registry.mark_alive(connection.connection_id)
        try:
            message = self._decode(raw)
            outbox = await self._route(connection, message)
        except SignalingError as exc:
            logger.info("Rejected request from %s (%s): %s", connection.connection_id, exc.code, exc.message)
            await connection.send(exc.to_message())
            return
        await outbox.flush()

    @staticmethod
    def _decode(raw: str | bytes) -> dict:
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            message = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            raise MalformedRequest("Invalid JSON") from exc
        if not isinstance(message, dict):
            raise MalformedRequest("Invalid JSON")
        return message

    async def _route(self, connection: Connection, message: dict) -> Outbox:
        message_type = message.get("type")
        try:
            kind = MessageType(message_type)
        except (TypeError, ValueError):
            raise UnknownOperation(f"Unknown message type: {message_type}") from None

        try:
            if kind is MessageType.JOIN:
                return await self._membership.join(connection, JoinRequest.model_validate(message))
            if kind is MessageType.SIGNAL:
                return self._relay_signal(connection, SignalRequest.model_validate(message))
            if kind is MessageType.CHAT:
                return self._broadcast_chat(connection, ChatRequest.model_validate(message))
        except ValidationError as exc:
            raise MalformedRequest(f"Invalid {kind.value} message") from exc

        outbox = Outbox()
        if kind is MessageType.LEAVE:
            await self._disconnect(connection)
        elif kind is MessageType.PING:
            outbox.send(connection, {"type": MessageType.PONG.value})
        return outbox

    def _current_room(self, connection: Connection) -> Room:
        if connection.room_id is None:
            raise PreconditionViolation("Not in a room")
        room = self._store.get(connection.room_id)
        if room is None:
            raise PreconditionViolation("Room not found")
        return room

    def _relay_signal(self, connection: Connection, request: SignalRequest) -> Outbox:
        room = self._current_room(connection)
        target = room.member(request.to) if request.to else None
        if target is None:
            raise PreconditionViolation("Invalid 'to' target")

        outbox = Outbox()
        outbox.send(
            target,
            {"type": "signal", "roomId": room.room_id, "from": connection.connection_id, "data": request.data},
        )
        return outbox

    def _broadcast_chat(self, connection: Connection, request: ChatRequest) -> Outbox:
        room = self._current_room(connection)
        outbox = Outbox()
        outbox.broadcast(
            room,
            {
                "type": "chat",
                "roomId": room.room_id,
                "from": connection.connection_id,
                "name": room.display_name(connection.connection_id, DEFAULT_CHAT_NAME),
                "message": request.message[: self._settings.max_chat_length],
                "ts": _now_ms(),
            },
        )
        return outbox
