"""In-memory signaling hub tying connections, rooms and relay rules together."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..core.config import Settings
from .connections import CloseCallable, Connection, ConnectionRegistry, SendCallable
from .liveness import LivenessMonitor
from .membership import MembershipManager
from .outbox import Outbox
from .relay import RelayRouter
from .rooms import Room, RoomStore

logger = logging.getLogger(__name__)


class SignalingHub:
    """Own all signaling state for one application instance.

    One hub is created per FastAPI app and stored on ``app.state``; nothing
    here is a module-level global, so tests can build isolated hubs.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[RoomStore] = None,
        registry: Optional[ConnectionRegistry] = None,
    ) -> None:
        self.settings = settings
        self.store = store if store is not None else RoomStore()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.membership = MembershipManager(self.store, self.registry, settings)
        self.router = RelayRouter(self.store, self.registry, self.membership, settings, disconnect=self.disconnect)
        self.monitor = LivenessMonitor(
            self.registry,
            teardown=self.teardown,
            interval=settings.heartbeat_interval_seconds,
        )

    async def connect(
        self,
        send: SendCallable,
        close: CloseCallable,
        writable: Optional[Callable[[], bool]] = None,
        transport_alive: Optional[Callable[[], bool]] = None,
    ) -> Connection:
        """Register a freshly accepted transport and greet it with its id.

        ``transport_alive`` is passed by transports that run protocol-level
        keepalive; while it reports True the heartbeat sweep never reaps.
        """

        options: dict = {}
        if writable is not None:
            options["writable"] = writable
        if transport_alive is not None:
            options["transport_alive"] = transport_alive
        connection = self.registry.register(send, close, **options)
        await connection.send({"type": "hello", "id": connection.connection_id})
        logger.info("Connection %s opened", connection.connection_id)
        return connection

    async def receive(self, connection: Connection, raw: str | bytes) -> None:
        await self.router.dispatch(connection, raw)

    async def disconnect(self, connection: Connection) -> None:
        """Close and tear down ``connection``; later calls for the same connection do nothing."""

        if self.registry.unregister(connection.connection_id) is None:
            return
        await self.teardown(connection)
        await connection.close()

    async def teardown(self, connection: Connection) -> None:
        """Run room departure for a connection that is no longer registered."""

        outbox = await self.membership.leave(connection)
        await self._deliver(outbox)
        logger.info("Connection %s closed", connection.connection_id)

    async def _deliver(self, outbox: Outbox) -> None:
        closing = list(outbox.closing)
        await outbox.flush()
        for connection in closing:
            self.registry.unregister(connection.connection_id)

    def room_snapshot(self, room_id: str) -> Optional[dict]:
        room: Optional[Room] = self.store.get(room_id)
        if room is None:
            return None
        return {
            "roomId": room.room_id,
            "hostId": room.host_id,
            "createdAt": room.created_at,
            "roster": room.roster(),
        }

    def start(self) -> None:
        self.monitor.start()

    async def stop(self) -> None:
        await self.monitor.stop()
