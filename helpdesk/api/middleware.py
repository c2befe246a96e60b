"""Request-logging middleware for FastAPI."""

from __future__ import annotations

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("helpdesk.api")

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(request: Request) -> str:
    """Reuse the caller's request ID when it is short and log-safe."""
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log one line per response.

    Query strings and headers are not logged; widget requests carry bearer
    tokens and signed identity hashes.  The mailbox slug is logged once the
    widget session has been verified (see ``require_widget_context``).
    """

    async def dispatch(self, request: Request, call_next):  # noqa: ANN001
        request_id = _request_id(request)
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "%s %s -> %s in %.1fms mailbox=%s request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            getattr(request.state, "mailbox_slug", "-"),
            request_id,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
