from datetime import datetime
from datetime import timezone

import pytest

from hr_connect.realtime.errors import ValidationError
from hr_connect.realtime.events import protocol


def test_scalar_payloads_are_wrapped():
    assert protocol.parse_event(protocol.AUTHENTICATE, 5) == protocol.Authenticate(5)
    assert protocol.parse_event(protocol.JOIN_ROOM, 12) == protocol.JoinRoom("12")
    assert protocol.parse_event(protocol.LEAVE_ROOM, "lobby") == protocol.LeaveRoom(
        "lobby"
    )


def test_send_message_is_normalised():
    event = protocol.parse_event(
        protocol.SEND_MESSAGE,
        {
            "senderId": 1,
            "receiverId": 2,
            "content": "  hello  ",
            "fileUrl": None,
            "timestamp": 1_700_000_000_000,
        },
    )

    assert isinstance(event, protocol.SendMessage)
    assert event.sender_id == 1
    assert event.receiver_id == 2
    assert event.group_id is None
    assert event.content == "hello"
    assert event.file_url == ""
    assert event.client_timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


def test_send_message_accepts_attachment_without_content():
    event = protocol.parse_event(
        protocol.SEND_MESSAGE,
        {"groupId": 3, "fileUrl": "https://files/x.pdf", "fileName": "x.pdf"},
    )
    assert event.is_group
    assert event.has_attachment
    assert event.content == ""


@pytest.mark.parametrize("raw", ["soon", "99999999999999999999", "9" * 400])
def test_unparseable_client_timestamp_is_dropped(raw):
    event = protocol.parse_event(
        protocol.SEND_MESSAGE, {"receiverId": 2, "content": "hi", "timestamp": raw}
    )
    assert event.client_timestamp is None
    assert event.content == "hi"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"content": "hi"}, "exactly one"),
        ({"receiverId": 2, "groupId": 3, "content": "hi"}, "exactly one"),
        ({"receiverId": 2, "content": "   "}, "content or an attachment"),
        ({"receiverId": "abc", "content": "hi"}, "receiverId"),
    ],
)
def test_invalid_send_message(payload, message):
    with pytest.raises(ValidationError, match=message):
        protocol.parse_event(protocol.SEND_MESSAGE, payload)


def test_object_events_reject_scalars():
    with pytest.raises(ValidationError, match="object payload"):
        protocol.parse_event(protocol.SEND_MESSAGE, "hello")


def test_unknown_event():
    with pytest.raises(ValidationError, match="Unknown event"):
        protocol.parse_event("explode", {})


def test_typing_defaults_to_true():
    event = protocol.parse_event(protocol.TYPING, {"receiverId": 4})
    assert event == protocol.Typing(receiver_id=4, is_typing=True)


def test_message_read_requires_id():
    with pytest.raises(ValidationError, match="messageId"):
        protocol.parse_event(protocol.MESSAGE_READ, {})
    event = protocol.parse_event(protocol.MESSAGE_READ, {"messageId": 8, "readerId": 2})
    assert event == protocol.MessageRead(message_id=8, reader_id=2)
