import time

import pytest
from fastapi.testclient import TestClient

from infrastructure.database import drop_tables
from main import app


@pytest.fixture(scope="module")
def client():
    # one client per module: HTTP calls and WebSocket sessions share the app's loop
    with TestClient(app) as c:
        yield c
        # tables are recreated by the next module's startup
        c.portal.call(drop_tables)


@pytest.fixture
def room_id(client):
    resp = client.post("/api/rooms", json={"theme": "Go internals"})
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


@pytest.fixture
def wait_for_subscribers(client):
    """Block until `room_id` has exactly `expected` live subscribers in this process."""

    def _wait(room_id: str, expected: int, timeout: float = 2.0) -> None:
        registry = app.state.subscription_registry
        deadline = time.monotonic() + timeout
        while client.portal.call(registry.count, room_id) != expected:
            if time.monotonic() > deadline:
                raise AssertionError(f"room {room_id} never reached {expected} subscribers")
            time.sleep(0.01)

    return _wait
