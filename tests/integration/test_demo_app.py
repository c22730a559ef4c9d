"""Integration tests for the demo application.

Runs the full stack through starlette's TestClient:
- RPC: divide (ok / rejected / invalid), ping with Nothing
- Stream: chat handshake, echo, join, fail-closed termination, room cleanup
"""

from __future__ import annotations

import json

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lugma_starlette.config import TransportConfig
from lugma_starlette.demo import create_app


@pytest.fixture
def app():
    return create_app(TransportConfig())


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


# =============================================================================
# Tests: Health and RPC
# =============================================================================


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestDivide:
    """POST /divide"""

    def test_divide_ok(self, client: TestClient):
        response = client.post("/divide", json={"a": 10, "b": 4})

        assert response.status_code == 200
        assert response.json() == 2.5

    def test_divide_by_zero_is_rejected(self, client: TestClient):
        response = client.post("/divide", json={"a": 10, "b": 0})

        assert response.status_code == 400
        assert response.json() == {"message": "div by zero"}

    def test_divide_invalid_args(self, client: TestClient):
        response = client.post("/divide", json={"a": 10})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    def test_divide_overflow_is_a_server_error(self, client: TestClient):
        response = client.post("/divide", json={"a": 1e308, "b": 1e-308})

        assert response.status_code == 500
        assert response.json()["code"] == "HANDLER_ERROR"

    def test_rejected_status_from_config(self):
        client = TestClient(create_app(TransportConfig(rejected_status=422)))

        response = client.post("/divide", json={"a": 1, "b": 0})

        assert response.status_code == 422
        assert response.json() == {"message": "div by zero"}


class TestPing:
    """POST /ping with Nothing in every position."""

    def test_ping_empty_body(self, client: TestClient):
        response = client.post("/ping")

        assert response.status_code == 200
        assert response.json() == {}

    def test_ping_ignores_body(self, client: TestClient):
        assert client.post("/ping", json={"anything": [1, 2]}).json() == {}


# =============================================================================
# Tests: Chat stream
# =============================================================================


def handshake(ws, room: str = "a") -> None:
    ws.send_text(json.dumps({"room": room}))


def join(ws) -> dict:
    ws.send_json({"type": "join", "content": None})
    return ws.receive_json()


class TestChat:
    """WS /chat"""

    def test_echo(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws)
            ws.send_text(json.dumps({"type": "msg", "content": "hi"}))

            assert ws.receive_json() == {"type": "msg", "content": "hi"}

    def test_handshake_room(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws, "kitchen")

            assert join(ws) == {"type": "joined", "content": {"room": "kitchen", "members": 1}}

    def test_default_room(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            ws.send_text("{}")

            assert join(ws)["content"]["room"] == "lobby"

    def test_unknown_event_is_dropped(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws)
            ws.send_json({"type": "typing", "content": True})

            # Connection is still usable
            assert join(ws)["type"] == "joined"

    def test_malformed_handshake_terminates(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            ws.send_text('{"room": 7}')

            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()

    def test_malformed_frame_terminates(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws)
            ws.send_text("garbage")

            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()

    def test_wrong_content_type_terminates(self, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws)
            ws.send_json({"type": "msg", "content": {"text": "hi"}})

            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()

    def test_broadcast_to_room(self, client: TestClient):
        with (
            client.websocket_connect("/chat") as alice,
            client.websocket_connect("/chat") as bob,
        ):
            handshake(alice)
            assert join(alice)["content"]["members"] == 1
            handshake(bob)
            assert join(bob)["content"]["members"] == 2

            alice.send_json({"type": "msg", "content": "hello bob"})

            assert alice.receive_json() == {"type": "msg", "content": "hello bob"}
            assert bob.receive_json() == {"type": "msg", "content": "hello bob"}

    def test_close_leaves_room(self, app, client: TestClient):
        with client.websocket_connect("/chat") as ws:
            handshake(ws)
            join(ws)
            assert len(app.state.rooms.members("a")) == 1

        assert app.state.rooms.members("a") == []
