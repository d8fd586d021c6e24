# tests/test_routes/test_websocket_routes.py
import time

import pytest
from fastapi.testclient import TestClient

from storefront.main import app


@pytest.fixture
def ws_client():
    with TestClient(app) as client:
        yield client


def _authenticate(ws, identity):
    ws.send_json({"event": "authenticate", "identity": identity})
    ack = ws.receive_json()
    assert ack["event"] == "authenticated"
    return ack


def test_cart_update_reaches_other_session_of_same_identity(ws_client):
    with ws_client.websocket_connect("/ws") as phone, ws_client.websocket_connect("/ws") as laptop:
        phone_ack = _authenticate(phone, "u1")
        _authenticate(laptop, "u1")

        cart = [{"productId": "p1", "quantity": 2, "name": "Widget"}]
        phone.send_json({"event": "cart_update", "cart": cart})
        event = laptop.receive_json()

        assert event["event"] == "cart_updated"
        assert event["cart"] == cart
        assert event["identity"] == "u1"
        assert event["sourceConnectionId"] == phone_ack["connectionId"]


def test_cart_update_before_authenticate_gets_auth_error(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "cart_update", "cart": []})
        assert ws.receive_json()["event"] == "auth_error"


def test_authenticate_without_identity_gets_auth_error(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "authenticate"})
        assert ws.receive_json()["event"] == "auth_error"


def test_non_json_frame_gets_error(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        reply = ws.receive_json()
        assert reply["event"] == "error"

        # The connection stays usable
        _authenticate(ws, "u1")


def test_authenticate_with_token(ws_client, verifier):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "authenticate", "token": verifier.issue("7")})
        ack = ws.receive_json()
        assert ack["event"] == "authenticated"
        assert ack["identity"] == "7"


def test_disconnect_removes_connection(ws_client):
    registry = app.state.connection_registry
    with ws_client.websocket_connect("/ws") as ws:
        _authenticate(ws, "u1")
        assert len(registry.active_connections) == 1

    # The server side finishes the disconnect on its own loop
    for _ in range(50):
        if ws_client.get("/health").json()["connections"] == 0:
            break
        time.sleep(0.02)
    assert ws_client.get("/health").json()["connections"] == 0
