"""Error taxonomy for the realtime messaging core.

Every error carries a short machine ``code`` that is forwarded to the client in
the ``error`` event (and mapped to an HTTP status by the REST views).
"""

from __future__ import annotations


class RealtimeError(Exception):
    code = "server_error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(RealtimeError):
    """Malformed request. Raised before any side effect."""

    code = "validation_error"
    default_message = "Invalid request."


class NotFoundError(RealtimeError):
    code = "not_found"
    default_message = "Not found."


class AuthorizationError(RealtimeError):
    """The caller is authenticated but may not act on this conversation."""

    code = "forbidden"
    default_message = "Not allowed."


class PersistenceError(RealtimeError):
    """The message store is unavailable. Nothing has been broadcast."""

    code = "persistence_error"
    default_message = "Failed to send message"


class NotificationDeliveryError(RealtimeError):
    """Push provider failure. Logged only, never sent to chat clients."""

    code = "notification_delivery_error"
    default_message = "Push notification delivery failed."
