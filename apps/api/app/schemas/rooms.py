"""Data contracts for room HTTP endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NewRoomResponse(_CamelModel):
    room_id: str = Field(..., alias="roomId", description="Short shareable room identifier")


class Participant(BaseModel):
    id: str
    name: str


class Roster(BaseModel):
    host: Participant | None = None
    viewers: list[Participant] = Field(default_factory=list)


class RoomSnapshot(_CamelModel):
    room_id: str = Field(..., alias="roomId")
    host_id: str | None = Field(default=None, alias="hostId")
    created_at: int = Field(..., alias="createdAt", description="Epoch milliseconds")
    roster: Roster
