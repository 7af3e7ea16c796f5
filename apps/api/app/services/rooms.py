"""In-memory room state and the store that owns it."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .connections import Connection, Role

DEFAULT_HOST_NAME = "Host"
DEFAULT_VIEWER_NAME = "Viewer"

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class Room:
    """A named coordination scope with at most one host.

    ``clients``, ``roles`` and ``names`` are parallel indexes keyed by
    connection id; they are only mutated through :meth:`add_member` and
    :meth:`remove_member` so they always share one key set.
    """

    room_id: str
    host_id: Optional[str] = None
    created_at: int = field(default_factory=_now_ms)
    clients: Dict[str, Connection] = field(default_factory=dict)
    roles: Dict[str, Role] = field(default_factory=dict)
    names: Dict[str, str] = field(default_factory=dict)

    def add_member(self, connection: Connection, role: Role, name: str) -> None:
        connection_id = connection.connection_id
        self.clients[connection_id] = connection
        self.roles[connection_id] = role
        self.names[connection_id] = name

    def remove_member(self, connection_id: str) -> Optional[Connection]:
        self.roles.pop(connection_id, None)
        self.names.pop(connection_id, None)
        return self.clients.pop(connection_id, None)

    def set_role(self, connection_id: str, role: Role) -> None:
        if connection_id in self.roles:
            self.roles[connection_id] = role

    def member(self, connection_id: Optional[str]) -> Optional[Connection]:
        if connection_id is None:
            return None
        return self.clients.get(connection_id)

    def members(self) -> list[Connection]:
        return list(self.clients.values())

    def viewers(self) -> list[Connection]:
        return [self.clients[cid] for cid, role in self.roles.items() if role is Role.VIEWER]

    def display_name(self, connection_id: str, default: str) -> str:
        return self.names.get(connection_id) or default

    def is_empty(self) -> bool:
        return not self.clients

    def roster(self) -> dict:
        """Snapshot of the current host and viewers for join acknowledgments."""

        viewers = [
            {"id": cid, "name": self.names.get(cid) or DEFAULT_VIEWER_NAME}
            for cid, role in self.roles.items()
            if role is Role.VIEWER
        ]
        host = None
        if self.host_id:
            host = {"id": self.host_id, "name": self.names.get(self.host_id) or DEFAULT_HOST_NAME}
        return {"host": host, "viewers": viewers}


class RoomStore:
    """Own every room in the process; rooms live until explicitly deleted."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = self._rooms.setdefault(room_id, Room(room_id=room_id))
            logger.info("Created room %s", room_id)
        return room

    def delete(self, room_id: str) -> None:
        if self._rooms.pop(room_id, None) is not None:
            logger.info("Deleted room %s", room_id)

    def room_ids(self) -> list[str]:
        return list(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))
