"""Registry of live signaling connections and their heartbeat state."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional
from uuid import uuid4

SendCallable = Callable[[dict], Awaitable[None]]
CloseCallable = Callable[[], Awaitable[None]]

PROBE_MESSAGE = {"type": "ping"}

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    HOST = "host"
    VIEWER = "viewer"


class Liveness(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"


def _always_writable() -> bool:
    return True


def _no_transport_keepalive() -> bool:
    return False


@dataclass(slots=True, eq=False)
class Connection:
    """One transport session.

    ``room_id`` and ``role`` are back-references into the room store and are
    cleared whenever the connection's membership is removed.
    """

    connection_id: str
    transport_send: SendCallable
    transport_close: CloseCallable
    writable: Callable[[], bool] = _always_writable
    transport_alive: Callable[[], bool] = _no_transport_keepalive
    liveness: Liveness = Liveness.CONFIRMED
    room_id: Optional[str] = None
    role: Optional[Role] = None
    closed: bool = False

    async def send(self, message: dict) -> bool:
        """Deliver ``message`` if the transport is writable; report whether it went out."""

        if self.closed or not self.writable():
            logger.debug("Dropping %s for %s: transport not writable", message.get("type"), self.connection_id)
            return False
        try:
            await self.transport_send(message)
        except Exception as exc:  # noqa: BLE001 - delivery is fire-and-forget
            logger.debug("Dropping %s for %s: %s", message.get("type"), self.connection_id, exc)
            return False
        return True

    async def close(self) -> None:
        """Close the transport once; repeated calls are no-ops."""

        if self.closed:
            return
        self.closed = True
        try:
            await self.transport_close()
        except Exception as exc:  # noqa: BLE001 - peer may already be gone
            logger.debug("Close of %s raised %s", self.connection_id, exc)

    def detach(self) -> None:
        """Forget room membership."""

        self.room_id = None
        self.role = None


class ConnectionRegistry:
    """Track every open connection independently of room membership."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(
        self,
        send: SendCallable,
        close: CloseCallable,
        writable: Callable[[], bool] = _always_writable,
        transport_alive: Callable[[], bool] = _no_transport_keepalive,
    ) -> Connection:
        """Allocate an identifier and start tracking the transport."""

        connection_id = str(uuid4())
        while connection_id in self._connections:
            connection_id = str(uuid4())
        connection = Connection(
            connection_id=connection_id,
            transport_send=send,
            transport_close=close,
            writable=writable,
            transport_alive=transport_alive,
        )
        self._connections[connection_id] = connection
        logger.debug("Registered connection %s (%d open)", connection_id, len(self._connections))
        return connection

    def mark_alive(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.liveness = Liveness.CONFIRMED

    def unregister(self, connection_id: str) -> Optional[Connection]:
        """Stop tracking a connection; only the first call returns it."""

        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.debug("Unregistered connection %s (%d open)", connection_id, len(self._connections))
        return connection

    async def probe_and_reap(self) -> list[Connection]:
        """Close connections that missed the previous probe and probe the rest.

        A connection whose transport runs its own keepalive (``transport_alive``)
        counts as having answered while that transport is still up.
        Returns the reaped connections so the caller can run their teardown.
        """

        reaped: list[Connection] = []
        for connection in list(self._connections.values()):
            if connection.liveness is Liveness.PENDING and not connection.transport_alive():
                self.unregister(connection.connection_id)
                await connection.close()
                reaped.append(connection)
                continue
            connection.liveness = Liveness.PENDING
            await connection.send(PROBE_MESSAGE)

        if reaped:
            logger.info("Reaped %d unresponsive connection(s)", len(reaped))
        return reaped

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
