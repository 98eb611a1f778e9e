from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.db import IntegrityError
from django.db import transaction
from django.utils import timezone

from hr_connect.chat.models import Message
from hr_connect.chat.store import MessageStore
from hr_connect.realtime.errors import NotFoundError
from hr_connect.realtime.errors import PersistenceError
from tests.factories import create_chat_group
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def store():
    return MessageStore()


def test_create_direct_message(store, user, other_user):
    message = store.create(
        sender_id=user.id, receiver_id=other_user.id, content="hello"
    )

    assert message.status == Message.Status.SENT
    assert message.group_id is None
    assert not message.is_group
    assert store.count() == 1


def test_group_message_drops_receiver(store, user, other_user):
    group = create_chat_group("Team", creator=user)

    message = store.create(
        sender_id=user.id, receiver_id=other_user.id, group_id=group.id, content="x"
    )

    assert message.receiver_id is None
    assert message.is_group


def test_database_enforces_exactly_one_target(user, other_user):
    with pytest.raises(IntegrityError), transaction.atomic():
        Message.objects.create(sender=user, content="nowhere")


def test_create_failure_becomes_persistence_error(store, user, other_user):
    with (
        mock.patch(
            "hr_connect.chat.store.Message.objects.create",
            side_effect=DatabaseError("down"),
        ),
        pytest.raises(PersistenceError),
    ):
        store.create(sender_id=user.id, receiver_id=other_user.id, content="x")


def test_mark_read_is_a_single_transition(store, user, other_user):
    message = store.create(sender_id=user.id, receiver_id=other_user.id, content="x")

    assert store.mark_read(message.id) is True
    assert store.mark_read(message.id) is False
    message.refresh_from_db()
    assert message.status == Message.Status.READ


def test_get_unknown_message(store):
    with pytest.raises(NotFoundError):
        store.get(404)


def test_history_returns_latest_page_oldest_first(store, user, other_user):
    carol = create_user("carol")
    start = timezone.now()
    for i in range(5):
        Message.objects.create(
            sender=user if i % 2 == 0 else other_user,
            receiver=other_user if i % 2 == 0 else user,
            content=f"m{i}",
            timestamp=start + timedelta(seconds=i),
        )
    store.create(sender_id=user.id, receiver_id=carol.id, content="elsewhere")

    page = store.history(user.id, recipient_id=other_user.id, limit=3)
    older = store.history(user.id, recipient_id=other_user.id, limit=3, skip=3)

    assert [m.content for m in page] == ["m2", "m3", "m4"]
    assert [m.content for m in older] == ["m0", "m1"]


def test_group_history(store, user, other_user):
    group = create_chat_group("Team", creator=user, members=[other_user])
    store.create(sender_id=user.id, group_id=group.id, content="a")
    store.create(sender_id=other_user.id, group_id=group.id, content="b")

    assert [m.content for m in store.history(user.id, group_id=group.id)] == ["a", "b"]


def test_history_requires_a_conversation(store, user):
    with pytest.raises(ValueError, match="required"):
        store.history(user.id)


def test_conversations_summarise_direct_chats(store, user, other_user):
    carol = create_user("carol")
    start = timezone.now()
    Message.objects.create(
        sender=other_user, receiver=user, content="one", timestamp=start
    )
    Message.objects.create(
        sender=other_user,
        receiver=user,
        content="two",
        timestamp=start + timedelta(seconds=1),
    )
    Message.objects.create(
        sender=user,
        receiver=carol,
        content="to carol",
        timestamp=start + timedelta(seconds=2),
    )

    summaries = store.conversations(user.id)

    assert [s.counterpart_id for s in summaries] == [carol.id, other_user.id]
    by_id = {s.counterpart_id: s for s in summaries}
    assert by_id[other_user.id].last_message == "two"
    assert by_id[other_user.id].unread_count == 2  # noqa: PLR2004
    assert by_id[carol.id].unread_count == 0


def test_mark_conversation_read_for_group(store, user, other_user):
    group = create_chat_group("Team", creator=user, members=[other_user])
    own = store.create(sender_id=other_user.id, group_id=group.id, content="mine")
    theirs = store.create(sender_id=user.id, group_id=group.id, content="theirs")

    changes = store.mark_conversation_read(other_user.id, group_id=group.id)

    assert [c.message_id for c in changes] == [theirs.id]
    own.refresh_from_db()
    assert own.status == Message.Status.SENT


def test_purge_group(store, user, other_user):
    group = create_chat_group("Team", creator=user)
    store.create(sender_id=user.id, group_id=group.id, content="a")
    store.create(sender_id=user.id, receiver_id=other_user.id, content="keep")

    assert store.purge_group(group.id) == 1
    assert store.count() == 1
