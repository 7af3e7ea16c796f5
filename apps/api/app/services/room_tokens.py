"""Room token allocation.

Room tokens are short and human-shareable; they are unrelated to connection
identifiers and reserve nothing in the room store.
"""
from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from uuid import uuid4


@dataclass(slots=True)
class RoomToken:
    room_id: str


def _candidate(length: int) -> str:
    token = ""
    while len(token) < length:
        token += uuid4().hex
    return token[:length]


async def allocate_room_token(length: int = 8, taken: Collection[str] = frozenset()) -> RoomToken:
    """Produce a room id of ``length`` hex characters that is not currently in use."""

    room_id = _candidate(length)
    while room_id in taken:
        room_id = _candidate(length)
    return RoomToken(room_id=room_id)
