import pytest
from rest_framework import status

from tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_me(api_client, user):
    resp = api_client.get("/api/v1/users/me/")

    assert resp.status_code == status.HTTP_200_OK
    data = resp.json()
    assert data["id"] == user.id
    assert data["full_name"] == "Alice Martin"
    assert data["groups"] == ["Employee"]


def test_register_and_clear_push_token(api_client, user):
    resp = api_client.post(
        "/api/v1/users/push-token/", {"push_token": "fcm-123"}, format="json"
    )
    assert resp.status_code == status.HTTP_204_NO_CONTENT
    user.refresh_from_db()
    assert user.push_token == "fcm-123"

    api_client.post("/api/v1/users/push-token/", {"push_token": ""}, format="json")
    user.refresh_from_db()
    assert user.push_token == ""


def test_push_token_is_required(api_client):
    resp = api_client.post("/api/v1/users/push-token/", {}, format="json")
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_directory_hides_inactive_users_from_employees(api_client, user, other_user):
    gone = create_user("gone")
    gone.is_active = False
    gone.save()

    ids = {u["id"] for u in api_client.get("/api/v1/users/").json()}

    assert ids == {user.id, other_user.id}
