"""Request errors surfaced to the sending connection as ``error`` frames."""
from __future__ import annotations


class SignalingError(Exception):
    """Base class for rejected requests; the connection stays open."""

    code = "signaling_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_message(self) -> dict:
        return {"type": "error", "message": self.message}


class MalformedRequest(SignalingError):
    """The frame could not be decoded into a message object."""

    code = "malformed_request"


class PreconditionViolation(SignalingError):
    """The request is well formed but not allowed in the sender's current state."""

    code = "precondition_violation"


class UnknownOperation(SignalingError):
    """The ``type`` discriminator names no known operation."""

    code = "unknown_operation"
