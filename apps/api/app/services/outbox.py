"""Deferred delivery of the messages produced by one room mutation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .connections import Connection
from .rooms import Room


@dataclass
class Outbox:
    """Messages and closes collected while the room lock is held.

    :meth:`flush` runs after the lock is released: every message is sent in
    the order it was queued, then the queued connections are closed.
    """

    deliveries: list[tuple[Connection, dict]] = field(default_factory=list)
    closing: list[Connection] = field(default_factory=list)

    def send(self, connection: Optional[Connection], message: dict) -> None:
        if connection is not None:
            self.deliveries.append((connection, message))

    def broadcast(self, room: Room, message: dict) -> None:
        for connection in room.members():
            self.deliveries.append((connection, message))

    def close(self, connection: Connection) -> None:
        if connection not in self.closing:
            self.closing.append(connection)

    async def flush(self) -> None:
        deliveries, self.deliveries = self.deliveries, []
        closing, self.closing = self.closing, []
        for connection, message in deliveries:
            await connection.send(message)
        for connection in closing:
            await connection.close()
