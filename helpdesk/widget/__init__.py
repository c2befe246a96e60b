"""Widget boundary: session tokens, request signatures, CORS, and widget routes.

Example usage:

    from helpdesk.widget import (
        WidgetSessionCodec,
        WidgetSessionPayload,
        cors_response,
        verify_hmac,
    )

    codec = WidgetSessionCodec(secret_key="...")
    token = codec.create_session(
        WidgetSessionPayload(
            mailbox_slug="acme",
            show_widget=True,
            is_whitelabel=False,
            email="customer@example.com",
        )
    )
    session = codec.verify_session(token)
    assert session.is_anonymous is False
"""

from helpdesk.widget.auth import (
    WidgetContext,
    authenticate_widget_request,
    extract_bearer_token,
    require_widget_context,
)
from helpdesk.widget.cors import cors_error, cors_headers, cors_options, cors_response
from helpdesk.widget.customers import customer_filter
from helpdesk.widget.errors import (
    AuthenticationError,
    BadRequestError,
    ConversationNotFoundError,
    MessageNotFoundError,
    InvalidSessionError,
    MissingCredentialError,
    NotAuthorizedError,
    TenantNotFoundError,
    WidgetError,
)
from helpdesk.widget.routes import router
from helpdesk.widget.session import (
    WidgetSessionCodec,
    WidgetSessionPayload,
    create_session,
    verify_session,
)
from helpdesk.widget.signatures import (
    compute_email_hash,
    compute_hmac,
    verify_email_hash,
    verify_hmac,
    verify_slack_request,
    verify_timestamped_hmac,
)

__all__ = [
    # Sessions
    "WidgetSessionCodec",
    "WidgetSessionPayload",
    "create_session",
    "verify_session",
    # Signatures
    "compute_hmac",
    "compute_email_hash",
    "verify_hmac",
    "verify_timestamped_hmac",
    "verify_email_hash",
    "verify_slack_request",
    # CORS
    "cors_headers",
    "cors_options",
    "cors_response",
    "cors_error",
    # Auth
    "WidgetContext",
    "authenticate_widget_request",
    "extract_bearer_token",
    "require_widget_context",
    "customer_filter",
    # Errors
    "WidgetError",
    "MissingCredentialError",
    "InvalidSessionError",
    "TenantNotFoundError",
    "AuthenticationError",
    "NotAuthorizedError",
    "BadRequestError",
    "ConversationNotFoundError",
    "MessageNotFoundError",
    # Routes
    "router",
]
