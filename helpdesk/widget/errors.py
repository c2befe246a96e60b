"""Error taxonomy for widget-facing endpoints.

Every error carries the HTTP status and a client-safe message.  The
application turns them into a CORS-wrapped ``{"error": ...}`` body; see
:func:`helpdesk.widget.cors.cors_error`.
"""

from __future__ import annotations

from typing import Any


class WidgetError(Exception):
    """Base class for failures that are answered at the widget boundary."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class MissingCredentialError(WidgetError):
    status_code = 401
    default_message = "Missing authorization header"


class InvalidSessionError(WidgetError):
    status_code = 401
    default_message = "Invalid or expired token"


class TenantNotFoundError(WidgetError):
    status_code = 404
    default_message = "Mailbox not found"


class AuthenticationError(WidgetError):
    """Signature mismatch or missing signature on a signed request."""

    status_code = 401
    default_message = "Invalid signature"


class NotAuthorizedError(WidgetError):
    status_code = 401
    default_message = "Not authorized - Invalid session"


class BadRequestError(WidgetError):
    status_code = 400
    default_message = "Invalid request"


class ConversationNotFoundError(WidgetError):
    status_code = 404
    default_message = "Conversation not found"


class MessageNotFoundError(WidgetError):
    status_code = 404
    default_message = "Message not found"
