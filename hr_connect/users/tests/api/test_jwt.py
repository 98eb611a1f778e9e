import pytest
from rest_framework import status
from rest_framework.test import APIClient

from tests.factories import create_user

pytestmark = pytest.mark.django_db


def obtain_tokens(client, username: str, password: str) -> tuple[str, str]:
    r = client.post(
        "/api/v1/auth/jwt/create/",
        {"username": username, "password": password},
        format="json",
    )
    assert r.status_code == status.HTTP_200_OK, r.content
    return r.data["access"], r.data["refresh"]


def test_jwt_create_verify_refresh():
    create_user("verifyuser")
    client = APIClient()
    access, refresh = obtain_tokens(client, "verifyuser", "TestPass123!")

    r = client.post("/api/v1/auth/jwt/verify/", {"token": access}, format="json")
    assert r.status_code == status.HTTP_200_OK

    bad = access[:-2] + "ab"
    r = client.post("/api/v1/auth/jwt/verify/", {"token": bad}, format="json")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED

    r = client.post("/api/v1/auth/jwt/refresh/", {"refresh": refresh}, format="json")
    assert r.status_code == status.HTTP_200_OK
    assert "access" in r.data


def test_access_token_authenticates_api():
    create_user("bearer")
    client = APIClient()
    access, _ = obtain_tokens(client, "bearer", "TestPass123!")

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    assert client.get("/api/v1/users/me/").status_code == status.HTTP_200_OK


def test_login_with_email_address():
    create_user("mailer")
    client = APIClient()

    access, _ = obtain_tokens(client, "MAILER@example.com", "TestPass123!")

    assert access


def test_inactive_user_cannot_log_in():
    user = create_user("inactive")
    user.is_active = False
    user.save()

    r = APIClient().post(
        "/api/v1/auth/jwt/create/",
        {"username": "inactive", "password": "TestPass123!"},
        format="json",
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
