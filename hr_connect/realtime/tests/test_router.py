import pytest

from hr_connect.realtime.router import RoomRouter
from hr_connect.realtime.router import room_for_chat_group
from hr_connect.realtime.router import room_for_user


def test_room_names():
    assert room_for_user(7) == "user_7"
    assert room_for_chat_group("12") == "chat_group_12"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (12, "chat_group_12"),
        ("12", "chat_group_12"),
        (" 12 ", "chat_group_12"),
        ("user_3", "user_3"),
        ("lobby", "lobby"),
    ],
)
def test_normalize_room(raw, expected):
    assert RoomRouter().normalize_room(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", True])
def test_normalize_room_rejects_empty(raw):
    with pytest.raises(ValueError, match="roomId"):
        RoomRouter().normalize_room(raw)


def test_room_ids_round_trip_to_owners():
    router = RoomRouter()
    assert router.group_id_for_room("chat_group_5") == 5
    assert router.group_id_for_room("user_5") is None
    assert router.user_id_for_room("user_5") == 5
    assert router.user_id_for_room("user_abc") is None


def test_resolve_group_excludes_sender():
    route = RoomRouter().resolve(sender_id=1, group_id=9, member_ids=[1, 2, 3])
    assert route.is_group
    assert route.rooms == ("chat_group_9",)
    assert route.target_user_ids == {2, 3}


def test_resolve_direct_targets_receiver_room():
    route = RoomRouter().resolve(sender_id=1, receiver_id=2)
    assert not route.is_group
    assert route.rooms == ("user_2",)
    assert route.target_user_ids == {2}


def test_resolve_requires_exactly_one_target():
    router = RoomRouter()
    with pytest.raises(ValueError, match="Exactly one"):
        router.resolve(sender_id=1)
    with pytest.raises(ValueError, match="Exactly one"):
        router.resolve(sender_id=1, receiver_id=2, group_id=3)
