"""HMAC-SHA256 request signatures with per-tenant or per-integration secrets.

All verifiers raise :class:`AuthenticationError` instead of returning a bool,
and all comparisons go through :func:`hmac.compare_digest`.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Mapping

from helpdesk.widget.errors import AuthenticationError

logger = logging.getLogger("helpdesk.widget.signatures")

SLACK_SIGNATURE_HEADER = "x-slack-signature"
SLACK_TIMESTAMP_HEADER = "x-slack-request-timestamp"
SLACK_VERSION = "v0"

_MAX_TIMESTAMP = 2**53
_MAX_TIMESTAMP_DIGITS = 20


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def compute_hmac(body: str | bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of ``body`` under ``secret``."""
    return hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()


def _compare(expected: str, provided: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def verify_hmac(body: str | bytes, signature_header: str | None, secret: str) -> None:
    """Check that ``signature_header`` is the HMAC of ``body`` under ``secret``.

    Raises:
        AuthenticationError: missing header, missing secret, or mismatch.
    """
    if not signature_header:
        raise AuthenticationError("Missing signature")
    if not secret:
        logger.warning("HMAC verification attempted without a configured secret")
        raise AuthenticationError()
    if not _compare(compute_hmac(body, secret), signature_header):
        raise AuthenticationError()


def _check_window(timestamp_seconds: float, tolerance: float, now: float | None) -> None:
    now = time.time() if now is None else now
    if abs(now - timestamp_seconds) > tolerance:
        raise AuthenticationError("Signature timestamp outside the allowed window")


def _parse_int(value: str | int | None, what: str) -> int:
    if value is None or value == "":
        raise AuthenticationError(f"Missing {what}")
    if isinstance(value, str) and len(value) > _MAX_TIMESTAMP_DIGITS:
        raise AuthenticationError(f"Invalid {what}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError(f"Invalid {what}") from exc
    # Beyond 2**53 the window arithmetic loses precision or overflows float.
    if abs(parsed) > _MAX_TIMESTAMP:
        raise AuthenticationError(f"Invalid {what}")
    return parsed


def verify_timestamped_hmac(
    body: str | bytes,
    signature: str | None,
    timestamp: str | int | None,
    secret: str,
    *,
    tolerance: float = 300,
    now: float | None = None,
) -> None:
    """Verify a signature over ``"{timestamp}.{body}"`` with replay protection.

    ``timestamp`` is in seconds since the epoch and must be within
    ``tolerance`` seconds of ``now``.
    """
    ts = _parse_int(timestamp, "timestamp")
    _check_window(ts, tolerance, now)
    signed = _to_bytes(f"{ts}.") + _to_bytes(body)
    verify_hmac(signed, signature, secret)


def compute_email_hash(email: str, timestamp_ms: int, secret: str) -> str:
    """Signature a host site attaches to a logged-in customer's widget config."""
    return compute_hmac(f"{email}:{timestamp_ms}", secret)


def verify_email_hash(
    email: str,
    timestamp_ms: str | int | None,
    email_hash: str | None,
    secret: str,
    *,
    max_age: float = 3600,
    now: float | None = None,
) -> None:
    """Verify the host site's ``HMAC(secret, "email:timestamp_ms")``.

    The timestamp is in milliseconds, as produced by ``Date.now()`` in the
    browser-side snippet, and must be no more than ``max_age`` seconds away.
    """
    ts_ms = _parse_int(timestamp_ms, "timestamp")
    _check_window(ts_ms / 1000, max_age, now)
    verify_hmac(f"{email}:{ts_ms}", email_hash, secret)


def verify_slack_request(
    body: str | bytes,
    headers: Mapping[str, str],
    signing_secret: str,
    *,
    tolerance: float = 300,
    now: float | None = None,
) -> None:
    """Verify Slack's ``X-Slack-Signature`` over ``"v0:{timestamp}:{body}"``.

    ``headers`` may be any mapping; lookups are case-insensitive for
    Starlette's ``Headers`` and expect lower-case keys for plain dicts.
    """
    signature = headers.get(SLACK_SIGNATURE_HEADER)
    timestamp = headers.get(SLACK_TIMESTAMP_HEADER)
    if not signature:
        raise AuthenticationError("Missing signature")

    ts = _parse_int(timestamp, "timestamp")
    _check_window(ts, tolerance, now)

    if not signing_secret:
        logger.warning("Slack request received but SLACK_SIGNING_SECRET is not set")
        raise AuthenticationError()

    base = _to_bytes(f"{SLACK_VERSION}:{ts}:") + _to_bytes(body)
    expected = f"{SLACK_VERSION}={compute_hmac(base, signing_secret)}"
    if not _compare(expected, signature):
        raise AuthenticationError()
