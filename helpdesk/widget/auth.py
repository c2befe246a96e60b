"""Bearer-token authentication for widget endpoints.

Lifecycle of a protected widget request::

    bearer token present?  no  -> MissingCredentialError (401)
    session verifies?      no  -> InvalidSessionError    (401)
    mailbox resolves?      no  -> TenantNotFoundError    (404)
    -> handler runs with a WidgetContext

Preflight ``OPTIONS`` requests never reach this module; each widget route
has its own ``OPTIONS`` handler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.data.mailbox import get_mailbox_by_slug
from helpdesk.db import get_session
from helpdesk.models.base import Mailbox
from helpdesk.widget.errors import MissingCredentialError, TenantNotFoundError
from helpdesk.widget.session import WidgetSessionCodec, WidgetSessionPayload, get_default_codec

logger = logging.getLogger("helpdesk.widget.auth")

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class WidgetContext:
    session: WidgetSessionPayload
    mailbox: Mailbox


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise MissingCredentialError()
    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise MissingCredentialError()
    return token


async def authenticate_widget_request(
    authorization: str | None,
    codec: WidgetSessionCodec,
    db: AsyncSession,
) -> WidgetContext:
    token = extract_bearer_token(authorization)
    session = codec.verify_session(token)

    mailbox = await get_mailbox_by_slug(db, session.mailbox_slug)
    if mailbox is None:
        logger.info("Widget session for unknown mailbox slug=%s", session.mailbox_slug)
        raise TenantNotFoundError()

    return WidgetContext(session=session, mailbox=mailbox)


def get_session_codec() -> WidgetSessionCodec:
    return get_default_codec()


async def require_widget_context(
    request: Request,
    authorization: str | None = Header(default=None),
    codec: WidgetSessionCodec = Depends(get_session_codec),
    db: AsyncSession = Depends(get_session),
) -> WidgetContext:
    context = await authenticate_widget_request(authorization, codec, db)
    request.state.mailbox_slug = context.mailbox.slug
    return context
