"""Uniform CORS envelope for widget-facing responses.

The widget is embedded on arbitrary third-party sites, so every response
allows any origin.  Widget endpoints authenticate with bearer tokens and HMAC
signatures only; credentials (cookies) are never allowed under the wildcard
origin, and ``Access-Control-Allow-Credentials`` is never sent.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, Response

from helpdesk.widget.errors import WidgetError

ALLOWED_HEADERS = "Content-Type, Authorization"


def cors_headers(*methods: str) -> dict[str, str]:
    methods = methods or ("POST",)
    allowed = [m.upper() for m in methods if m.upper() != "OPTIONS"]
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": ", ".join([*allowed, "OPTIONS"]),
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def cors_options(*methods: str) -> Response:
    """Answer a preflight for an endpoint whose primary method(s) are ``methods``."""
    return Response(status_code=204, headers=cors_headers(*methods))


def cors_response(
    data: Any,
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
    method: str | tuple[str, ...] = "POST",
) -> JSONResponse:
    """JSON response carrying the CORS headers plus any caller-supplied headers."""
    methods = (method,) if isinstance(method, str) else method
    merged = cors_headers(*methods)
    if headers:
        merged.update(headers)
    return JSONResponse(
        content=jsonable_encoder(data),
        status_code=status_code,
        headers=merged,
    )


def cors_error(exc: WidgetError, *, method: str | tuple[str, ...] = "POST") -> JSONResponse:
    return cors_response(exc.to_body(), status_code=exc.status_code, method=method)
