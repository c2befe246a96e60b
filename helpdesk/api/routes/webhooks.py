"""Signed server-to-server webhooks."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request

from helpdesk.config.settings import settings
from helpdesk.widget.errors import BadRequestError
from helpdesk.widget.signatures import verify_slack_request

logger = logging.getLogger("helpdesk.api.webhooks")

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/slack")
async def slack_events(request: Request) -> dict:
    body = await request.body()
    verify_slack_request(
        body,
        request.headers,
        settings.SLACK_SIGNING_SECRET,
        tolerance=settings.SIGNATURE_TOLERANCE_SECONDS,
    )

    try:
        event = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BadRequestError("Invalid JSON body") from exc
    if not isinstance(event, dict):
        raise BadRequestError("Invalid JSON body")

    if event.get("type") == "url_verification":
        return {"challenge": event.get("challenge", "")}

    logger.info("Slack event type=%s acknowledged", event.get("type"))
    return {"ok": True}
