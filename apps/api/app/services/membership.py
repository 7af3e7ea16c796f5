"""Join and leave rules for signaling rooms.

Every mutation runs under a single lock so that index updates, host-id
read-then-act sequences and room creation/deletion are never interleaved.
Messages produced by a mutation are returned in an :class:`Outbox` and sent
by the caller after the lock is released.
"""
from __future__ import annotations

import asyncio
import logging

from ..core.config import HostTakeoverPolicy, Settings
from ..schemas.signaling import JoinRequest
from .connections import Connection, ConnectionRegistry, Role
from .errors import PreconditionViolation
from .outbox import Outbox
from .rooms import DEFAULT_HOST_NAME, DEFAULT_VIEWER_NAME, Room, RoomStore

HOST_LEFT_MESSAGE = "Host left. Room closed."
HOST_OFFLINE_MESSAGE = "Room exists but host is not online yet."

logger = logging.getLogger(__name__)


class MembershipManager:
    """Enforce the single-host and viewer-gating rules for each room."""

    def __init__(self, store: RoomStore, registry: ConnectionRegistry, settings: Settings) -> None:
        self._store = store
        self._registry = registry
        self._settings = settings
        self._lock = asyncio.Lock()

    async def join(self, connection: Connection, request: JoinRequest) -> Outbox:
        """Admit ``connection`` to the requested room under the requested role."""

        async with self._lock:
            if connection.room_id is not None:
                raise PreconditionViolation("Already in a room")
            if not request.room_id:
                raise PreconditionViolation("Missing roomId")

            name = request.name[: self._settings.max_name_length]
            if request.role is Role.HOST:
                return self._join_host(connection, request.room_id, name or DEFAULT_HOST_NAME)
            return self._join_viewer(connection, request.room_id, name or DEFAULT_VIEWER_NAME)

    async def leave(self, connection: Connection) -> Outbox:
        """Remove ``connection`` from its room; a departing host closes the room."""

        async with self._lock:
            return self._leave(connection)

    def _host_is_live(self, room: Room) -> bool:
        host = room.member(room.host_id)
        return host is not None and host.connection_id in self._registry

    def _join_host(self, connection: Connection, room_id: str, name: str) -> Outbox:
        outbox = Outbox()
        policy = self._settings.host_takeover_policy
        existing = self._store.get(room_id)

        if policy is HostTakeoverPolicy.REJECT and existing is not None and self._host_is_live(existing):
            logger.warning("Rejected second host %s for room %s", connection.connection_id, room_id)
            raise PreconditionViolation("Room already has a host")

        room = self._store.get_or_create(room_id)
        previous = room.member(room.host_id)

        room.add_member(connection, Role.HOST, name)
        connection.room_id = room_id
        connection.role = Role.HOST

        if previous is not None:
            if policy is HostTakeoverPolicy.EVICT:
                room.remove_member(previous.connection_id)
                previous.detach()
                outbox.send(previous, {"type": "system", "message": f"Another host took over room {room_id}."})
                outbox.close(previous)
                logger.info("Host %s evicted from room %s", previous.connection_id, room_id)
            else:
                room.set_role(previous.connection_id, Role.VIEWER)
                previous.role = Role.VIEWER
                logger.info("Host %s superseded in room %s", previous.connection_id, room_id)

        room.host_id = connection.connection_id
        logger.info("Connection %s is hosting room %s", connection.connection_id, room_id)

        outbox.send(
            connection,
            {
                "type": "joined",
                "roomId": room_id,
                "id": connection.connection_id,
                "role": Role.HOST.value,
                "roster": room.roster(),
            },
        )
        outbox.broadcast(room, {"type": "system", "message": f"{name} is hosting room {room_id}"})

        # Viewers that arrived before this host can retry negotiation now.
        for viewer in room.viewers():
            if viewer is not connection:
                outbox.send(viewer, {"type": "host_ready", "hostId": connection.connection_id})
        return outbox

    def _join_viewer(self, connection: Connection, room_id: str, name: str) -> Outbox:
        room = self._store.get(room_id)
        if room is None or not self._host_is_live(room):
            logger.warning("Viewer %s refused for room %s: host offline", connection.connection_id, room_id)
            raise PreconditionViolation(HOST_OFFLINE_MESSAGE)

        room.add_member(connection, Role.VIEWER, name)
        connection.room_id = room_id
        connection.role = Role.VIEWER
        logger.info("Viewer %s joined room %s", connection.connection_id, room_id)

        outbox = Outbox()
        outbox.send(
            connection,
            {
                "type": "joined",
                "roomId": room_id,
                "id": connection.connection_id,
                "role": Role.VIEWER.value,
                "hostId": room.host_id,
                "roster": room.roster(),
            },
        )
        outbox.send(
            room.member(room.host_id),
            {
                "type": "viewer_joined",
                "roomId": room_id,
                "viewerId": connection.connection_id,
                "viewerName": name,
            },
        )
        outbox.broadcast(room, {"type": "system", "message": f"{name} joined."})
        return outbox

    def _leave(self, connection: Connection) -> Outbox:
        outbox = Outbox()
        room_id = connection.room_id
        role = connection.role
        connection.detach()
        if room_id is None:
            return outbox

        room = self._store.get(room_id)
        if room is None:
            return outbox

        connection_id = connection.connection_id
        default_name = DEFAULT_HOST_NAME if role is Role.HOST else DEFAULT_VIEWER_NAME
        name = room.display_name(connection_id, default_name)
        room.remove_member(connection_id)

        if room.host_id == connection_id:
            outbox.broadcast(room, {"type": "host_left", "roomId": room_id, "message": HOST_LEFT_MESSAGE})
            for member in room.members():
                room.remove_member(member.connection_id)
                member.detach()
                outbox.close(member)
            self._store.delete(room_id)
            logger.info("Host %s left; room %s closed", connection_id, room_id)
            return outbox

        if self._host_is_live(room):
            outbox.send(
                room.member(room.host_id),
                {"type": "viewer_left", "roomId": room_id, "viewerId": connection_id},
            )
        outbox.broadcast(room, {"type": "system", "message": f"{name} left."})
        logger.info("Viewer %s left room %s", connection_id, room_id)

        if room.is_empty():
            self._store.delete(room_id)
        return outbox
