import uuid

import pytest
from starlette.testclient import WebSocketDenialResponse


def test_two_clients_follow_a_question(client, room_id, wait_for_subscribers):
    with client.websocket_connect(f"/subscribe/{room_id}") as ws_a, \
            client.websocket_connect(f"/subscribe/{room_id}") as ws_b:
        wait_for_subscribers(room_id, 2)

        resp = client.post(f"/api/rooms/{room_id}/messages", json={"message": "Why is my goroutine leaking?"})
        assert resp.status_code == 201
        message_id = resp.json()["data"]["id"]

        created = {"kind": "message_created", "value": {"id": message_id, "message": "Why is my goroutine leaking?"}}
        assert ws_a.receive_json() == created
        assert ws_b.receive_json() == created

        assert client.patch(f"/api/rooms/{room_id}/messages/{message_id}/react").status_code == 200
        reacted = {"kind": "message_reaction_increased", "value": {"id": message_id, "count": 1}}
        assert ws_a.receive_json() == reacted
        assert ws_b.receive_json() == reacted

        assert client.patch(f"/api/rooms/{room_id}/messages/{message_id}/answer").status_code == 204
        answered = {"kind": "message_answered", "value": {"id": message_id}}
        assert ws_a.receive_json() == answered
        assert ws_b.receive_json() == answered

    wait_for_subscribers(room_id, 0)


def test_failed_mutation_sends_no_notification(client, room_id, wait_for_subscribers):
    with client.websocket_connect(f"/subscribe/{room_id}") as ws:
        wait_for_subscribers(room_id, 1)

        missing = str(uuid.uuid4())
        assert client.patch(f"/api/rooms/{room_id}/messages/{missing}/react").status_code == 404

        resp = client.post(f"/api/rooms/{room_id}/messages", json={"message": "after the failure"})
        # the first frame seen is the later, successful mutation
        assert ws.receive_json()["value"] == {"id": resp.json()["data"]["id"], "message": "after the failure"}

    wait_for_subscribers(room_id, 0)


def test_events_stay_in_their_room(client, room_id, wait_for_subscribers):
    other = client.post("/api/rooms", json={"theme": "Quiet room"}).json()["data"]["id"]

    with client.websocket_connect(f"/subscribe/{other}") as quiet, \
            client.websocket_connect(f"/subscribe/{room_id}") as busy:
        wait_for_subscribers(other, 1)
        wait_for_subscribers(room_id, 1)

        client.post(f"/api/rooms/{room_id}/messages", json={"message": "only for the busy room"})
        assert busy.receive_json()["kind"] == "message_created"

        client.post(f"/api/rooms/{other}/messages", json={"message": "for the quiet room"})
        assert quiet.receive_json()["value"]["message"] == "for the quiet room"


def test_subscribe_to_unknown_room_is_denied(client):
    with pytest.raises(WebSocketDenialResponse) as exc_info:
        with client.websocket_connect(f"/subscribe/{uuid.uuid4()}"):
            pass  # pragma: no cover

    assert exc_info.value.status_code == 404
    assert exc_info.value.json()["error"]["type"] == "RoomNotFound"


def test_subscribe_with_invalid_room_id_is_denied(client):
    with pytest.raises(WebSocketDenialResponse) as exc_info:
        with client.websocket_connect("/subscribe/not-a-uuid"):
            pass  # pragma: no cover

    assert exc_info.value.status_code == 400


def test_health_reports_live_subscribers(client, room_id, wait_for_subscribers):
    with client.websocket_connect(f"/subscribe/{room_id}"):
        wait_for_subscribers(room_id, 1)
        stats = client.get("/health").json()["data"]["realtime"]
        assert stats["subscribers"] >= 1
        assert stats["rooms"] >= 1

    wait_for_subscribers(room_id, 0)
