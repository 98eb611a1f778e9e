import pytest
from django.core.exceptions import PermissionDenied

from hr_connect.notifications.models import Notification
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def notification(user, other_user):
    notification = Notification.objects.create(
        sender=user, title="Office closed", message="Friday is off"
    )
    notification.target_users.add(other_user)
    return notification


def test_mark_read_by_target(notification, other_user):
    assert notification.mark_read_by(other_user) is True
    assert notification.mark_read_by(other_user) is False
    assert notification.is_read_by(other_user)
    assert notification.read_by.count() == 1


def test_non_target_cannot_mark_read(notification, user):
    with pytest.raises(PermissionDenied):
        notification.mark_read_by(user)
    assert not notification.read_by.exists()


def test_defaults(notification):
    assert notification.notification_type == Notification.Type.GENERAL
    assert notification.metadata == {}
    assert not notification.is_target(create_user("carol"))
