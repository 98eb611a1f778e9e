from unittest import mock

import pytest

from hr_connect.conftest import RecordingPushProvider
from hr_connect.notifications.models import Notification
from hr_connect.notifications.tasks import push_notification
from hr_connect.realtime.errors import NotificationDeliveryError
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def notification(user):
    return Notification.objects.create(sender=user, title="Heads up", message="Body")


def run(provider, *args):
    with mock.patch(
        "hr_connect.notifications.tasks.get_push_provider", return_value=provider
    ):
        return push_notification.apply(args=args).get()


def test_pushes_to_distinct_tokens(notification):
    a = create_user("a", push_token="shared")
    b = create_user("b", push_token="shared")
    c = create_user("c")
    provider = RecordingPushProvider()

    assert run(provider, notification.id, [a.id, b.id, c.id]) == 1
    assert provider.calls[0]["tokens"] == ["shared"]
    assert provider.calls[0]["body"] == "Body"


def test_missing_notification_is_skipped():
    provider = RecordingPushProvider()
    assert run(provider, 999, [1]) == 0
    assert provider.calls == []


def test_provider_errors_are_logged_not_raised(notification, caplog):
    user = create_user("a", push_token="tok")
    provider = RecordingPushProvider(fail_with=NotificationDeliveryError("down"))

    assert run(provider, notification.id, [user.id]) == 0
    assert "Push failed for notification" in caplog.text
