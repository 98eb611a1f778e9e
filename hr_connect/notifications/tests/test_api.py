import pytest
from rest_framework import status
from rest_framework.test import APIClient

from hr_connect.notifications.models import Notification
from hr_connect.notifications.services import send_notification
from tests.factories import create_user

pytestmark = pytest.mark.django_db

URL = "/api/v1/notifications/"


@pytest.fixture
def manager(db):
    return create_user("manager", groups=["Manager"], first_name="Mona")


@pytest.fixture
def manager_client(manager):
    client = APIClient()
    client.force_authenticate(user=manager)
    return client


def test_employee_cannot_send(api_client, other_user):
    resp = api_client.post(
        f"{URL}send/",
        {"title": "Hi", "message": "All", "target_users": [other_user.id]},
        format="json",
    )
    assert resp.status_code == status.HTTP_403_FORBIDDEN


def test_manager_sends_to_users(manager_client, manager, user, other_user):
    resp = manager_client.post(
        f"{URL}send/",
        {
            "title": " New policy ",
            "message": "Read it",
            "notification_type": "system",
            "target_users": [user.id],
        },
        format="json",
    )

    assert resp.status_code == status.HTTP_201_CREATED, resp.content
    data = resp.json()
    assert data["title"] == "New policy"
    assert data["target_users"] == [user.id]
    assert data["sender_name"] == "Mona"
    assert data["is_read"] is False
    assert Notification.objects.get().notification_type == "system"


def test_send_validates_payload(manager_client):
    resp = manager_client.post(
        f"{URL}send/", {"title": "   ", "message": "x"}, format="json"
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert "title" in resp.json()


def test_send_with_nobody_to_reach(manager_client, manager):
    # The manager is the only active user, and senders never target themselves.
    resp = manager_client.post(
        f"{URL}send/", {"title": "t", "message": "m", "send_to_all": True}, format="json"
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_list_shows_received_and_sent(api_client, user, other_user, manager):
    received = send_notification(
        sender=manager, title="a", message="a", recipient_ids=[user.id]
    )
    sent = send_notification(
        sender=user, title="b", message="b", recipient_ids=[other_user.id]
    )
    send_notification(sender=manager, title="c", message="c", recipient_ids=[other_user.id])

    resp = api_client.get(URL)

    ids = {n["id"] for n in resp.json()["results"]}
    assert ids == {received.id, sent.id}


def test_read_and_unread_count(api_client, user, other_user, manager):
    first = send_notification(sender=manager, title="a", message="a", recipient_ids=[user.id])
    send_notification(sender=manager, title="b", message="b", recipient_ids=[user.id])
    theirs = send_notification(
        sender=manager, title="c", message="c", recipient_ids=[other_user.id]
    )

    assert api_client.get(f"{URL}unread-count/").json() == {"count": 2}

    resp = api_client.post(f"{URL}{first.id}/read/")
    assert resp.status_code == status.HTTP_204_NO_CONTENT
    assert api_client.get(f"{URL}unread-count/").json() == {"count": 1}
    assert api_client.get(f"{URL}{first.id}/").json()["is_read"] is True

    # Not visible to this user at all.
    assert api_client.post(f"{URL}{theirs.id}/read/").status_code == (
        status.HTTP_404_NOT_FOUND
    )


def test_sender_cannot_mark_own_notification_read(api_client, user, other_user):
    sent = send_notification(sender=user, title="b", message="b", recipient_ids=[other_user.id])

    resp = api_client.post(f"{URL}{sent.id}/read/")

    assert resp.status_code == status.HTTP_403_FORBIDDEN


def test_mark_all_read(api_client, user, manager):
    for title in ("a", "b"):
        send_notification(sender=manager, title=title, message="m", recipient_ids=[user.id])

    resp = api_client.post(f"{URL}mark-all-read/")

    assert resp.status_code == status.HTTP_204_NO_CONTENT
    assert api_client.get(f"{URL}unread-count/").json() == {"count": 0}


def test_list_filters_by_type_and_unread(api_client, user, manager):
    system = send_notification(
        sender=manager,
        title="s",
        message="s",
        recipient_ids=[user.id],
        notification_type=Notification.Type.SYSTEM,
    )
    general = send_notification(
        sender=manager, title="g", message="g", recipient_ids=[user.id]
    )
    general.mark_read_by(user)

    by_type = api_client.get(URL, {"type": "system"}).json()["results"]
    unread = api_client.get(URL, {"unread_only": "true"}).json()["results"]

    assert [n["id"] for n in by_type] == [system.id]
    assert [n["id"] for n in unread] == [system.id]
    assert api_client.get(URL, {"type": "bogus"}).status_code == (
        status.HTTP_400_BAD_REQUEST
    )


def test_admin_inbox_is_admin_only(api_client, manager_client):
    assert api_client.get(f"{URL}admin/").status_code == status.HTTP_403_FORBIDDEN
    assert manager_client.get(f"{URL}admin/").status_code == status.HTTP_403_FORBIDDEN


def test_admin_inbox_counts_unread_by_type(manager, user):
    admin = create_user("root", groups=["Admin"])
    client = APIClient()
    client.force_authenticate(user=admin)
    for kind in ("system", "system", "general"):
        send_notification(
            sender=manager,
            title=kind,
            message="m",
            recipient_ids=[admin.id],
            notification_type=kind,
        )
    read = send_notification(
        sender=manager,
        title="old",
        message="m",
        recipient_ids=[admin.id],
        notification_type=Notification.Type.DEPARTMENT_UPDATE,
    )
    read.mark_read_by(admin)
    # Sent by the admin, so not part of their inbox.
    send_notification(sender=admin, title="out", message="m", recipient_ids=[user.id])

    resp = client.get(f"{URL}admin/")

    assert resp.status_code == status.HTTP_200_OK
    data = resp.json()
    assert data["count"] == 4  # noqa: PLR2004
    assert data["unread_counts_by_type"] == {"system": 2, "general": 1}

    filtered = client.get(f"{URL}admin/", {"type": "system", "unread_only": "true"})
    assert filtered.json()["count"] == 2  # noqa: PLR2004
    assert {n["notification_type"] for n in filtered.json()["results"]} == {"system"}
