"""End-to-end tests for the signaling websocket endpoint."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import create_app


def test_host_viewer_chat_and_host_departure(hub):
    with TestClient(create_app(hub=hub)) as client:
        with client.websocket_connect("/ws") as viewer_ws:
            viewer_id = viewer_ws.receive_json()["id"]

            with client.websocket_connect("/ws") as host_ws:
                hello = host_ws.receive_json()
                assert hello["type"] == "hello"
                host_id = hello["id"]

                host_ws.send_json({"type": "join", "roomId": "abc1", "role": "host", "name": "Alice"})
                joined = host_ws.receive_json()
                assert joined["type"] == "joined"
                assert joined["roster"] == {"host": {"id": host_id, "name": "Alice"}, "viewers": []}
                assert host_ws.receive_json()["type"] == "system"

                viewer_ws.send_json({"type": "join", "roomId": "abc1", "name": "Bob"})
                viewer_joined = viewer_ws.receive_json()
                assert viewer_joined["type"] == "joined"
                assert viewer_joined["hostId"] == host_id
                assert viewer_ws.receive_json() == {"type": "system", "message": "Bob joined."}

                notice = host_ws.receive_json()
                assert notice == {
                    "type": "viewer_joined",
                    "roomId": "abc1",
                    "viewerId": viewer_id,
                    "viewerName": "Bob",
                }
                assert host_ws.receive_json() == {"type": "system", "message": "Bob joined."}

                host_ws.send_json({"type": "signal", "to": viewer_id, "data": {"description": {"type": "offer"}}})
                relayed = viewer_ws.receive_json()
                assert relayed["from"] == host_id
                assert relayed["data"] == {"description": {"type": "offer"}}

                viewer_ws.send_json({"type": "chat", "message": "hi"})
                for ws in (viewer_ws, host_ws):
                    chat = ws.receive_json()
                    assert chat["type"] == "chat"
                    assert chat["from"] == viewer_id
                    assert chat["message"] == "hi"

                host_ws.send_json({"type": "leave"})
                with pytest.raises(WebSocketDisconnect):
                    host_ws.receive_json()

            host_left = viewer_ws.receive_json()
            assert host_left["type"] == "host_left"
            with pytest.raises(WebSocketDisconnect):
                viewer_ws.receive_json()

        assert "abc1" not in hub.store


def test_errors_keep_connection_open(hub):
    with TestClient(create_app(hub=hub)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            ws.send_text("definitely not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

            ws.send_json({"type": "join", "roomId": "abc1"})
            assert ws.receive_json() == {"type": "error", "message": "Room exists but host is not online yet."}

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}


def test_leave_request_closes_socket(hub):
    with TestClient(create_app(hub=hub)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "join", "roomId": "solo", "role": "host"})
            ws.receive_json()
            ws.receive_json()

            ws.send_json({"type": "leave"})
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

        assert "solo" not in hub.store
        assert len(hub.registry) == 0
