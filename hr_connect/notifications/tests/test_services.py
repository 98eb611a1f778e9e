from unittest import mock

import pytest
from django.core.exceptions import ValidationError

from hr_connect.conftest import RecordingPushProvider
from hr_connect.notifications.models import Notification
from hr_connect.notifications.services import resolve_recipients
from hr_connect.notifications.services import send_notification
from hr_connect.org.models import Department
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def staff(user, other_user):
    sales = Department.objects.create(name="Sales")
    carol = create_user("carol", department=sales, push_token="tok-carol")
    dave = create_user("dave", department=sales)
    gone = create_user("gone")
    gone.is_active = False
    gone.save()
    return {"sales": sales, "carol": carol, "dave": dave, "gone": gone}


def test_send_to_all_excludes_sender_and_inactive(user, other_user, staff):
    ids = resolve_recipients(user, send_to_all=True, target_users=[other_user.id])
    assert ids == sorted([other_user.id, staff["carol"].id, staff["dave"].id])


def test_department_wins_over_users(user, other_user, staff):
    ids = resolve_recipients(
        user, target_department=staff["sales"].id, target_users=[other_user.id]
    )
    assert ids == sorted([staff["carol"].id, staff["dave"].id])


def test_explicit_users(user, other_user, staff):
    ids = resolve_recipients(user, target_users=[other_user.id, staff["gone"].id])
    assert ids == [other_user.id]


def test_no_targeting_means_everyone_else(user, other_user, staff):
    assert user.id not in resolve_recipients(user)


def test_send_requires_recipients(user):
    with pytest.raises(ValidationError):
        send_notification(sender=user, title="t", message="m", recipient_ids=[])
    assert not Notification.objects.exists()


def test_send_publishes_and_pushes_after_commit(
    user, other_user, staff, django_capture_on_commit_callbacks
):
    provider = RecordingPushProvider()
    with (
        mock.patch(
            "hr_connect.notifications.signals.publish_notification_created"
        ) as publish,
        mock.patch(
            "hr_connect.notifications.tasks.get_push_provider", return_value=provider
        ),
        django_capture_on_commit_callbacks(execute=True),
    ):
        notification = send_notification(
            sender=user,
            title="Payday",
            message="Salaries are out",
            recipient_ids=[other_user.id, staff["carol"].id],
            metadata={"month": "10"},
        )

    publish.assert_called_once_with(
        notification, sorted([other_user.id, staff["carol"].id])
    )
    (call,) = provider.calls
    assert call["tokens"] == ["tok-carol"]
    assert call["title"] == "Payday"
    assert call["data"]["notificationId"] == notification.id
