import pytest
from asgiref.sync import async_to_sync
from rest_framework_simplejwt.exceptions import TokenError

from hr_connect.chat.models import Message
from hr_connect.chat.store import MessageStore
from hr_connect.realtime.directory import Directory
from hr_connect.realtime.events.chat import ERROR
from hr_connect.realtime.events.chat import RECEIVE_MESSAGE
from hr_connect.realtime.gateway import ChatGateway
from hr_connect.realtime.gateway import extract_token
from hr_connect.realtime.pipeline import DeliveryPipeline
from hr_connect.realtime.registry import EVENT_USER_OFFLINE
from hr_connect.realtime.registry import SessionRegistry
from tests.factories import create_chat_group

pytestmark = pytest.mark.django_db(transaction=True)

TOKENS = {}


async def fake_authenticate(token):
    if token == "expired":
        msg = "Token is expired"
        raise TokenError(msg)
    if token == "boom":
        msg = "database unavailable"
        raise RuntimeError(msg)
    if token not in TOKENS:
        msg = "Token is invalid"
        raise TokenError(msg)
    return TOKENS[token]


class FakeServer:
    def __init__(self):
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler


@pytest.fixture
def registry(transport):
    return SessionRegistry(transport=transport)


@pytest.fixture
def gateway(registry, push_provider, user, other_user):
    TOKENS.clear()
    TOKENS.update({"alice": user.id, "bob": other_user.id})
    directory = Directory()
    pipeline = DeliveryPipeline(
        store=MessageStore(),
        registry=registry,
        directory=directory,
        push_provider=push_provider,
    )
    return ChatGateway(
        registry=registry,
        pipeline=pipeline,
        directory=directory,
        authenticate_token=fake_authenticate,
    )


def connect(gateway, sid, token):
    async_to_sync(gateway.on_connect)(sid, {"QUERY_STRING": f"token={token}"})


def errors_for(transport, sid):
    return [data for event, data in transport.events_for(sid) if event == ERROR]


def test_extract_token_shapes():
    assert extract_token({"query_string": b"token=abc"}, None) == "abc"
    assert extract_token({"asgi.scope": {"query_string": b"x=1&token=t"}}, None) == "t"
    assert extract_token({"QUERY_STRING": ""}, {"token": "from-auth"}) == "from-auth"
    assert extract_token({}, None) is None


@pytest.mark.parametrize(
    ("token", "reason"),
    [
        ("", "unauthorized"),
        ("nope", "unauthorized"),
        ("expired", "jwt_expired"),
        ("boom", "server_error"),
    ],
)
def test_connect_refusals(gateway, registry, token, reason):
    with pytest.raises(ConnectionRefusedError, match=reason):
        connect(gateway, "s1", token)
    assert registry.user_for("s1") is None


def test_connect_binds_user_and_group_rooms(gateway, registry, user, other_user):
    group = create_chat_group("Team", creator=other_user, members=[user])

    connect(gateway, "s1", "alice")

    assert registry.user_for("s1") == user.id
    assert registry.rooms_of("s1") == {f"user_{user.id}", f"chat_group_{group.id}"}


def test_authenticate_event_must_match_token_user(
    gateway, registry, transport, user, other_user
):
    connect(gateway, "s1", "alice")
    transport.clear()

    async_to_sync(gateway.on_authenticate)("s1", user.id)
    assert errors_for(transport, "s1") == []

    async_to_sync(gateway.on_authenticate)("s1", {"userId": other_user.id})
    (error,) = errors_for(transport, "s1")
    assert error["code"] == "validation_error"
    assert registry.user_for("s1") == user.id


def test_join_room_authorization(gateway, registry, transport, user, other_user):
    mine = create_chat_group("Mine", creator=user)
    theirs = create_chat_group("Theirs", creator=other_user)
    connect(gateway, "s1", "alice")
    registry.leave_room("s1", f"chat_group_{mine.id}")
    transport.clear()

    async_to_sync(gateway.on_join_room)("s1", str(mine.id))
    async_to_sync(gateway.on_join_room)("s1", theirs.id)
    async_to_sync(gateway.on_join_room)("s1", f"user_{other_user.id}")

    assert f"chat_group_{mine.id}" in registry.rooms_of("s1")
    assert f"chat_group_{theirs.id}" not in registry.rooms_of("s1")
    assert [e["code"] for e in errors_for(transport, "s1")] == ["forbidden", "forbidden"]

    async_to_sync(gateway.on_leave_room)("s1", mine.id)
    assert f"chat_group_{mine.id}" not in registry.rooms_of("s1")


def test_send_message_event(gateway, transport, user, other_user):
    connect(gateway, "s1", "alice")
    connect(gateway, "s2", "bob")
    transport.clear()

    async_to_sync(gateway.on_send_message)(
        "s1", {"receiverId": other_user.id, "content": "hey"}
    )

    message = Message.objects.get()
    assert message.sender_id == user.id
    (payload,) = [
        data for event, data in transport.events_for("s2") if event == RECEIVE_MESSAGE
    ]
    assert payload["id"] == message.id
    assert payload["content"] == "hey"


def test_invalid_send_message_reports_error(gateway, transport, other_user):
    connect(gateway, "s1", "alice")
    transport.clear()

    async_to_sync(gateway.on_send_message)("s1", {"receiverId": other_user.id})

    (error,) = errors_for(transport, "s1")
    assert error["code"] == "validation_error"
    assert Message.objects.count() == 0


def test_unexpected_failure_reports_generic_error(gateway, transport, monkeypatch):
    connect(gateway, "s1", "alice")
    transport.clear()

    async def explode(*args, **kwargs):
        msg = "bug"
        raise RuntimeError(msg)

    monkeypatch.setattr(gateway.pipeline, "typing", explode)
    async_to_sync(gateway.on_typing)("s1", {"receiverId": 5})

    (error,) = errors_for(transport, "s1")
    assert error == {"code": "server_error", "message": "Failed to process event."}


def test_message_read_event(gateway, transport, user, other_user):
    connect(gateway, "s1", "alice")
    connect(gateway, "s2", "bob")
    async_to_sync(gateway.on_send_message)(
        "s1", {"receiverId": other_user.id, "content": "ping"}
    )
    message = Message.objects.get()
    transport.clear()

    async_to_sync(gateway.on_message_read)("s2", {"messageId": message.id})

    message.refresh_from_db()
    assert message.status == Message.Status.READ
    assert ("messageStatusUpdate", {"messageId": message.id, "status": "read"}) in (
        transport.events_for("s1")
    )


def test_disconnect_announces_offline(gateway, transport, user):
    connect(gateway, "s1", "alice")
    connect(gateway, "s2", "bob")
    transport.clear()

    async_to_sync(gateway.on_disconnect)("s1", "client disconnect")

    assert transport.named(EVENT_USER_OFFLINE) == [({"userId": user.id}, "s2")]


def test_register_wires_every_event(gateway):
    server = FakeServer()
    gateway.register(server)

    assert set(server.handlers) == {
        "connect",
        "disconnect",
        "authenticate",
        "joinRoom",
        "leaveRoom",
        "sendMessage",
        "typing",
        "messageRead",
    }
