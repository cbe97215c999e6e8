import json

import pytest
from pydantic import ValidationError

from application.ports.realtime import (
    MessageAnswered,
    MessageAnsweredValue,
    MessageCreated,
    MessageCreatedValue,
    MessageReactionIncreased,
    MessageReactionValue,
    dump_for_broker,
    load_from_broker,
)


def test_message_created_wire_shape_hides_room_id():
    event = MessageCreated(room_id="r1", value=MessageCreatedValue(id="m1", message="Why is my goroutine leaking?"))
    assert event.to_client() == {
        "kind": "message_created",
        "value": {"id": "m1", "message": "Why is my goroutine leaking?"},
    }


def test_reaction_and_answered_wire_shapes():
    reacted = MessageReactionIncreased(room_id="r1", value=MessageReactionValue(id="m1", count=3))
    answered = MessageAnswered(room_id="r1", value=MessageAnsweredValue(id="m1"))
    assert reacted.to_client() == {"kind": "message_reaction_increased", "value": {"id": "m1", "count": 3}}
    assert answered.to_client() == {"kind": "message_answered", "value": {"id": "m1"}}


def test_events_are_immutable():
    event = MessageAnswered(room_id="r1", value=MessageAnsweredValue(id="m1"))
    with pytest.raises(ValidationError):
        event.room_id = "r2"


def test_broker_envelope_keeps_routing_key_and_kind():
    event = MessageReactionIncreased(room_id="r9", value=MessageReactionValue(id="m2", count=1))
    restored = load_from_broker(json.loads(json.dumps(dump_for_broker(event))))
    assert isinstance(restored, MessageReactionIncreased)
    assert restored.room_id == "r9"
    assert restored == event


def test_unknown_kind_is_rejected():
    with pytest.raises(ValidationError):
        load_from_broker({"room_id": "r1", "event": {"kind": "message_deleted", "value": {"id": "m1"}}})
