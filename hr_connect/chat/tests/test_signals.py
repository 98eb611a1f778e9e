import pytest

from hr_connect.chat.models import ChatGroup
from hr_connect.org.models import Department
from tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_user_joins_department_group():
    sales = Department.objects.create(name="Sales")

    alice = create_user("alice", department=sales)

    group = ChatGroup.objects.get(type=ChatGroup.Type.DEPARTMENT, department=sales)
    assert group.is_member(alice)


def test_changing_department_moves_user():
    sales = Department.objects.create(name="Sales")
    support = Department.objects.create(name="Support")
    alice = create_user("alice", department=sales)

    alice.department = support
    alice.save()

    sales_group = ChatGroup.objects.get(department=sales)
    support_group = ChatGroup.objects.get(department=support)
    assert not sales_group.is_member(alice)
    assert support_group.is_member(alice)


def test_deactivated_user_leaves_department_group():
    sales = Department.objects.create(name="Sales")
    alice = create_user("alice", department=sales)

    alice.is_active = False
    alice.save()

    assert not ChatGroup.objects.get(department=sales).is_member(alice)
