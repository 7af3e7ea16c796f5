"""Wire contracts for the signaling WebSocket."""
from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.connections import Role


class MessageType(str, enum.Enum):
    JOIN = "join"
    SIGNAL = "signal"
    CHAT = "chat"
    LEAVE = "leave"
    PING = "ping"
    PONG = "pong"


def _as_text(value: Any) -> str:
    """Every falsy value becomes empty text; anything else is stringified."""

    if isinstance(value, str):
        return value
    if not value:
        return ""
    if value is True:
        return "true"
    return str(value)


class InboundMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class JoinRequest(InboundMessage):
    room_id: str = Field(default="", alias="roomId")
    role: Role = Field(default=Role.VIEWER)
    name: str = Field(default="")

    @field_validator("room_id", mode="before")
    @classmethod
    def _normalize_room_id(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Role:
        """Anything other than exactly ``host`` joins as a viewer."""

        return Role.HOST if value == Role.HOST.value else Role.VIEWER

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: Any) -> str:
        return _as_text(value).strip()


class SignalRequest(InboundMessage):
    to: str = Field(default="")
    data: Any = Field(default=None, description="Opaque negotiation payload, relayed verbatim")

    @field_validator("to", mode="before")
    @classmethod
    def _normalize_target(cls, value: Any) -> str:
        return _as_text(value).strip()


class ChatRequest(InboundMessage):
    message: str = Field(default="")

    @field_validator("message", mode="before")
    @classmethod
    def _normalize_message(cls, value: Any) -> str:
        return _as_text(value)
