from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any

import pytest
from rest_framework.test import APIClient

from hr_connect.notifications.push import BasePushProvider
from hr_connect.notifications.push import PushResult
from tests.factories import create_user


@dataclass
class RecordingTransport:
    """Stands in for the Socket.IO server: records every emit."""

    emitted: list[tuple[str, Any, str | None]] = field(default_factory=list)

    async def emit(self, event: str, data: Any = None, *, to: str | None = None):
        self.emitted.append((event, data, to))

    def events_for(self, sid: str) -> list[tuple[str, Any]]:
        return [(event, data) for event, data, to in self.emitted if to == sid]

    def named(self, event: str) -> list[tuple[Any, str | None]]:
        return [(data, to) for name, data, to in self.emitted if name == event]

    def clear(self) -> None:
        self.emitted.clear()


class RecordingPushProvider(BasePushProvider):
    def __init__(self, *, fail_with: Exception | None = None):
        self.calls: list[dict[str, Any]] = []
        self.fail_with = fail_with

    def send_to_tokens(self, tokens, title, body, data=None):
        tokens = list(tokens)
        self.calls.append({"tokens": tokens, "title": title, "body": body, "data": data})
        if self.fail_with is not None:
            raise self.fail_with
        return [PushResult(token=t, success=True, message_id=f"m-{t}") for t in tokens]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def push_provider() -> RecordingPushProvider:
    return RecordingPushProvider()


@pytest.fixture
def user(db):
    return create_user("alice", first_name="Alice", last_name="Martin")


@pytest.fixture
def other_user(db):
    return create_user("bob", first_name="Bob", last_name="Durand")


@pytest.fixture
def api_client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client
