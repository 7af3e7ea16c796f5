"""Tests for targeted relay, chat broadcast and request errors."""
from __future__ import annotations

import logging

import pytest

from app.services.connections import Liveness
from app.services.errors import MalformedRequest, PreconditionViolation, SignalingError, UnknownOperation

from support import open_client


async def _room_with_viewers(hub, count: int = 2):
    host = await open_client(hub)
    await host.join("abc1", role="host", name="Alice")
    viewers = []
    for index in range(count):
        viewer = await open_client(hub)
        await viewer.join("abc1", name=f"viewer-{index}")
        viewers.append(viewer)
    return host, viewers


@pytest.mark.asyncio
async def test_signal_is_delivered_to_target_only(hub):
    host, (first, second) = await _room_with_viewers(hub)
    payload = {"description": {"type": "offer", "sdp": "v=0\r\n"}, "extra": [1, None, True]}
    host_before = len(host.transport.messages)
    second_before = len(second.transport.messages)

    await host.send({"type": "signal", "to": first.id, "data": payload})

    assert first.transport.last() == {"type": "signal", "roomId": "abc1", "from": host.id, "data": payload}
    assert len(host.transport.messages) == host_before
    assert len(second.transport.messages) == second_before


@pytest.mark.asyncio
async def test_signal_to_connection_outside_room_is_rejected(hub):
    host, (viewer,) = await _room_with_viewers(hub, count=1)
    stranger = await open_client(hub)
    await stranger.join("elsewhere", role="host")
    stranger_before = list(stranger.transport.messages)

    await viewer.send({"type": "signal", "to": stranger.id, "data": {"candidate": "x"}})
    assert viewer.transport.last() == {"type": "error", "message": "Invalid 'to' target"}

    await viewer.send({"type": "signal", "data": {"candidate": "x"}})
    assert viewer.transport.last() == {"type": "error", "message": "Invalid 'to' target"}
    assert stranger.transport.messages == stranger_before


@pytest.mark.asyncio
async def test_relay_requires_joined_sender(hub):
    host, _ = await _room_with_viewers(hub, count=0)
    loner = await open_client(hub)

    await loner.send({"type": "signal", "to": host.id, "data": {}})
    assert loner.transport.last() == {"type": "error", "message": "Not in a room"}

    await loner.send({"type": "chat", "message": "hello?"})
    assert loner.transport.last() == {"type": "error", "message": "Not in a room"}
    assert host.transport.of_type("chat") == []


@pytest.mark.asyncio
async def test_chat_is_broadcast_to_everyone_including_sender(hub):
    host, (viewer,) = await _room_with_viewers(hub, count=1)

    await viewer.send({"type": "chat", "message": "hi"})

    for client in (host, viewer):
        chat = client.transport.last()
        assert chat["type"] == "chat"
        assert chat["from"] == viewer.id
        assert chat["name"] == "viewer-0"
        assert chat["message"] == "hi"
        assert chat["roomId"] == "abc1"
        assert isinstance(chat["ts"], int)


@pytest.mark.asyncio
async def test_chat_is_truncated_and_coerced(hub):
    host, _ = await _room_with_viewers(hub, count=0)

    await host.send({"type": "chat", "message": "a" * 2500})
    assert host.transport.last()["message"] == "a" * 2000

    await host.send({"type": "chat", "message": 42})
    assert host.transport.last()["message"] == "42"

    await host.send({"type": "chat"})
    assert host.transport.last()["message"] == ""


@pytest.mark.asyncio
async def test_malformed_and_unknown_messages_get_errors(hub):
    client = await open_client(hub)

    await client.send("{not json")
    assert client.transport.last() == {"type": "error", "message": "Invalid JSON"}

    await client.send("[1, 2, 3]")
    assert client.transport.last() == {"type": "error", "message": "Invalid JSON"}

    await client.send({"type": "dance"})
    assert client.transport.last() == {"type": "error", "message": "Unknown message type: dance"}

    await client.send({"message": "no type"})
    assert client.transport.last() == {"type": "error", "message": "Unknown message type: None"}

    assert not client.transport.closed
    assert client.id in hub.registry


@pytest.mark.asyncio
async def test_ping_and_pong_confirm_liveness(hub):
    client = await open_client(hub)
    client.connection.liveness = Liveness.PENDING

    await client.send({"type": "pong"})
    assert client.connection.liveness is Liveness.CONFIRMED

    client.connection.liveness = Liveness.PENDING
    await client.send({"type": "ping"})
    assert client.connection.liveness is Liveness.CONFIRMED
    assert client.transport.last() == {"type": "pong"}


@pytest.mark.asyncio
async def test_leave_closes_connection_and_tears_down(hub):
    host, (viewer,) = await _room_with_viewers(hub, count=1)

    await viewer.send({"type": "leave"})

    assert viewer.transport.closed
    assert viewer.id not in hub.registry
    assert host.transport.of_type("viewer_left") == [
        {"type": "viewer_left", "roomId": "abc1", "viewerId": viewer.id}
    ]

    await host.send({"type": "leave"})
    assert "abc1" not in hub.store


@pytest.mark.asyncio
async def test_sends_to_unwritable_transport_are_dropped(hub):
    host, (viewer,) = await _room_with_viewers(hub, count=1)
    viewer.transport.closed = True
    viewer_before = list(viewer.transport.messages)

    await host.send({"type": "chat", "message": "anyone?"})
    await host.send({"type": "signal", "to": viewer.id, "data": {"candidate": "c"}})

    assert viewer.transport.messages == viewer_before
    assert host.transport.last()["type"] == "chat"
    assert host.transport.of_type("error") == []


@pytest.mark.asyncio
async def test_rejections_carry_error_codes(hub, caplog):
    client = await open_client(hub)

    with caplog.at_level(logging.INFO, logger="app.services.relay"):
        await client.send("{not json")
        await client.send({"type": "dance"})
        await client.send({"type": "chat", "message": "x"})

    assert [error["message"] for error in client.transport.of_type("error")] == [
        "Invalid JSON",
        "Unknown message type: dance",
        "Not in a room",
    ]
    logged = caplog.text
    assert "malformed_request" in logged
    assert "unknown_operation" in logged
    assert "precondition_violation" in logged
    assert MalformedRequest("x").to_message() == {"type": "error", "message": "x"}
    assert issubclass(UnknownOperation, SignalingError)
    assert PreconditionViolation.code == "precondition_violation"


@pytest.mark.asyncio
async def test_falsy_fields_are_treated_as_empty(hub):
    host, _ = await _room_with_viewers(hub, count=0)

    await host.send({"type": "chat", "message": 0})
    assert host.transport.last()["message"] == ""

    await host.send({"type": "signal", "to": 0, "data": {}})
    assert host.transport.last() == {"type": "error", "message": "Invalid 'to' target"}
