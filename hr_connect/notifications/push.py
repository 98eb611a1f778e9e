"""Push notification delivery to mobile devices (Firebase Cloud Messaging).

Sending is best effort and isolated per token: FCM reports a result for every
token of a multicast, and one bad token never stops the others. A failure of
the provider call itself surfaces as ``NotificationDeliveryError``; callers on
the chat path log it and carry on.
"""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

import firebase_admin
from asgiref.sync import sync_to_async
from django.conf import settings
from firebase_admin import credentials
from firebase_admin import messaging
from firebase_admin.exceptions import FirebaseError

from hr_connect.realtime.errors import NotificationDeliveryError

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# FCM accepts at most this many tokens per multicast.
MULTICAST_LIMIT = 500
FIREBASE_APP_NAME = "hr_connect"


@dataclass(frozen=True)
class PushResult:
    token: str
    success: bool
    message_id: str | None = None
    error: str = ""


def unique_tokens(tokens: Iterable[str | None]) -> list[str]:
    """Drop blanks and duplicates, keeping first-seen order."""

    return list(dict.fromkeys(t for t in tokens if t))


def _stringify(data: dict[str, Any] | None) -> dict[str, str]:
    # FCM data payloads only carry strings.
    return {str(key): str(value) for key, value in (data or {}).items()}


class BasePushProvider:
    def send_to_tokens(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> list[PushResult]:
        raise NotImplementedError

    async def asend_to_tokens(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> list[PushResult]:
        return await sync_to_async(self.send_to_tokens, thread_sensitive=False)(
            list(tokens), title, body, data
        )


class NullPushProvider(BasePushProvider):
    """Used when push is disabled or not configured."""

    def send_to_tokens(self, tokens, title, body, data=None):
        tokens = unique_tokens(tokens)
        if tokens:
            logger.debug("Push disabled; dropping notification to %s tokens", len(tokens))
        return []


class FirebasePushProvider(BasePushProvider):
    def __init__(self, service_account: dict[str, Any]):
        try:
            self.app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            self.app = firebase_admin.initialize_app(
                credentials.Certificate(service_account),
                name=FIREBASE_APP_NAME,
            )

    def send_to_tokens(self, tokens, title, body, data=None):
        tokens = unique_tokens(tokens)
        if not tokens:
            return []

        payload = _stringify(data)
        payload["click_action"] = "FLUTTER_NOTIFICATION_CLICK"

        results: list[PushResult] = []
        for start in range(0, len(tokens), MULTICAST_LIMIT):
            batch = tokens[start : start + MULTICAST_LIMIT]
            message = messaging.MulticastMessage(
                tokens=batch,
                notification=messaging.Notification(title=title, body=body),
                data=payload,
            )
            try:
                response = messaging.send_each_for_multicast(message, app=self.app)
            except (FirebaseError, ValueError) as exc:
                raise NotificationDeliveryError(str(exc)) from exc
            results.extend(
                PushResult(
                    token=token,
                    success=resp.success,
                    message_id=resp.message_id,
                    error=str(resp.exception) if resp.exception else "",
                )
                for token, resp in zip(batch, response.responses, strict=True)
            )

        failed = [r.token for r in results if not r.success]
        logger.info("%s push messages were sent successfully", len(results) - len(failed))
        if failed:
            logger.warning("Tokens that caused push failures: %s", failed)
        return results


def _load_service_account(raw: str) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.exception("FIREBASE_SERVICE_ACCOUNT is not valid JSON")
        return None


@functools.cache
def get_push_provider() -> BasePushProvider:
    """Build the configured provider once per process."""

    if settings.PUSH_PROVIDER != "firebase":
        return NullPushProvider()

    service_account = _load_service_account(settings.FIREBASE_SERVICE_ACCOUNT)
    if service_account is None:
        logger.warning(
            "Firebase service account not found. Push notifications will be disabled."
        )
        return NullPushProvider()
    try:
        return FirebasePushProvider(service_account)
    except (ValueError, OSError):
        logger.exception("Error initializing Firebase Admin")
        return NullPushProvider()
