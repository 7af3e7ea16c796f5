"""In-memory transports and clients for driving a SignalingHub in tests."""
from __future__ import annotations

import json

from app.services.connections import Connection
from app.services.signaling import SignalingHub


class DummyTransport:
    """Records everything the hub sends to one connection."""

    def __init__(self) -> None:
        self.messages: list[dict] = []
        self.closed = False

    async def send(self, message: dict) -> None:
        self.messages.append(message)

    async def close(self) -> None:
        self.closed = True

    def writable(self) -> bool:
        return not self.closed

    def of_type(self, message_type: str) -> list[dict]:
        return [message for message in self.messages if message["type"] == message_type]

    def last(self) -> dict:
        return self.messages[-1]


class Client:
    """A registered connection plus its recording transport."""

    def __init__(self, hub: SignalingHub, connection: Connection, transport: DummyTransport) -> None:
        self.hub = hub
        self.connection = connection
        self.transport = transport

    @property
    def id(self) -> str:
        return self.connection.connection_id

    async def send(self, message: dict | str) -> None:
        raw = message if isinstance(message, str) else json.dumps(message)
        await self.hub.receive(self.connection, raw)

    async def join(self, room_id: str, role: str = "viewer", name: str | None = None) -> None:
        payload: dict = {"type": "join", "roomId": room_id, "role": role}
        if name is not None:
            payload["name"] = name
        await self.send(payload)


async def open_client(hub: SignalingHub) -> Client:
    transport = DummyTransport()
    connection = await hub.connect(transport.send, transport.close, transport.writable)
    return Client(hub, connection, transport)


def assert_indexes_consistent(hub: SignalingHub) -> None:
    for room in hub.store:
        assert set(room.clients) == set(room.roles) == set(room.names)
