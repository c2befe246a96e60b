"""Stateless, signed sessions for chat-widget visitors.

A session is minted by the server on page load, embedded in the page, and
sent back as ``Authorization: Bearer <token>`` on every widget API call.
Nothing is stored server-side: the token is an HS256 JWT whose claims are the
:class:`WidgetSessionPayload` plus the derived ``isAnonymous`` flag and the
``iat``/``exp`` timestamps.

``isAnonymous`` is always computed from the email at minting time.  Callers
cannot pass it in, and a token whose ``isAnonymous`` disagrees with its email
is rejected even when the signature is valid.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from helpdesk.config.settings import settings
from helpdesk.widget.errors import InvalidSessionError

logger = logging.getLogger("helpdesk.widget.session")

DEFAULT_TTL = timedelta(hours=12)
ALGORITHM = "HS256"

_RESERVED_CLAIMS = ("iat", "exp")


def _has_canonical_signature(token: str) -> bool:
    """True when the signature segment re-encodes to exactly itself.

    base64url decoding ignores the spare low bits of the final character, so
    several spellings of the last character decode to the same MAC.  Only the
    one spelling this codec produces is accepted.
    """
    signature = token.rsplit(".", 1)[-1].encode("ascii", errors="replace")
    try:
        return base64url_encode(base64url_decode(signature)) == signature
    except (TypeError, ValueError):
        return False


class WidgetSessionPayload(BaseModel):
    """Identity and entitlements of one widget visitor.

    Field names are snake_case in Python and camelCase on the wire
    (``mailboxSlug``, ``showWidget``, ...).  Unknown keys are rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        strict=True,
    )

    mailbox_slug: str
    show_widget: bool
    is_whitelabel: bool
    theme: dict[str, str] | None = None
    email: str | None = None
    anonymous_session_id: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return not self.email

    def to_claims(self) -> dict[str, Any]:
        claims = self.model_dump(by_alias=True, exclude_none=True)
        claims["isAnonymous"] = self.is_anonymous
        return claims


class WidgetSessionCodec:
    """Mint and verify widget session tokens with a server-held secret.

    Args:
        secret_key: HMAC key for HS256 signing.  Never logged.
        ttl:        Wall-clock lifetime of a token.
        algorithm:  JWT algorithm; only HMAC algorithms make sense here.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        ttl: timedelta = DEFAULT_TTL,
        algorithm: str = ALGORITHM,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key is required")
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._secret_key = secret_key
        self._ttl = ttl
        self._algorithm = algorithm

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def create_session(
        self,
        payload: WidgetSessionPayload,
        *,
        issued_at: datetime | None = None,
    ) -> str:
        """Sign ``payload`` and return the opaque token string."""
        issued_at = issued_at or datetime.now(timezone.utc)
        claims = payload.to_claims()
        claims["iat"] = int(issued_at.timestamp())
        claims["exp"] = int((issued_at + self._ttl).timestamp())
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + self._ttl

    def verify_session(self, token: str) -> WidgetSessionPayload:
        """Validate signature, expiry and shape, then return the payload.

        Raises:
            InvalidSessionError: on any failure.  Nothing from an invalid
                token is returned.
        """
        if not isinstance(token, str) or not token:
            raise InvalidSessionError()

        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.info("Rejected widget session: %s", type(exc).__name__)
            raise InvalidSessionError() from exc

        if not isinstance(claims, dict):
            raise InvalidSessionError()

        if not _has_canonical_signature(token):
            logger.warning("Widget session signature is not canonical base64url")
            raise InvalidSessionError()

        for name in _RESERVED_CLAIMS:
            claims.pop(name, None)
        is_anonymous = claims.pop("isAnonymous", None)

        try:
            payload = WidgetSessionPayload.model_validate(claims)
        except ValidationError as exc:
            logger.warning("Widget session with valid signature has malformed claims")
            raise InvalidSessionError() from exc

        if is_anonymous is not payload.is_anonymous:
            logger.warning("Widget session isAnonymous disagrees with email")
            raise InvalidSessionError()

        return payload


def get_default_codec() -> WidgetSessionCodec:
    """Build a codec from the current settings."""
    return WidgetSessionCodec(
        settings.WIDGET_JWT_SECRET,
        ttl=timedelta(hours=settings.WIDGET_SESSION_TTL_HOURS),
    )


def create_session(payload: WidgetSessionPayload) -> str:
    return get_default_codec().create_session(payload)


def verify_session(token: str) -> WidgetSessionPayload:
    return get_default_codec().verify_session(token)
