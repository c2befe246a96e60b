"""FastAPI routes called by the embeddable chat widget.

Every path has an ``OPTIONS`` handler answering the browser preflight, and
every response (success or error) carries the CORS envelope from
:mod:`helpdesk.widget.cors`.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config.settings import settings
from helpdesk.data.conversation import (
    CONVERSATION_STATUSES,
    WIDGET_MESSAGE_ROLES,
    clear_message_reaction,
    get_conversation_for_customer,
    get_message_for_customer,
    list_conversations,
    mark_conversation_read,
    set_message_reaction,
)
from helpdesk.data.mailbox import get_mailbox_by_slug
from helpdesk.db import get_session
from helpdesk.models.base import Conversation, ConversationMessage
from helpdesk.widget.auth import WidgetContext, get_session_codec, require_widget_context
from helpdesk.widget.cors import cors_options, cors_response
from helpdesk.widget.customers import customer_filter
from helpdesk.widget.errors import (
    BadRequestError,
    ConversationNotFoundError,
    MessageNotFoundError,
    NotAuthorizedError,
    TenantNotFoundError,
)
from helpdesk.widget.session import WidgetSessionCodec, WidgetSessionPayload
from helpdesk.widget.signatures import verify_email_hash

logger = logging.getLogger("helpdesk.widget")

router = APIRouter(prefix="/api", tags=["widget"])

NO_SUBJECT = "(no subject)"
MAX_ROW_ID = 2**31 - 1


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class CreateSessionRequest(_WireModel):
    """Body for minting a widget session.

    ``email``, ``emailHash`` and ``timestamp`` come from the host site's
    server, which signs ``"email:timestamp"`` with the mailbox's widget HMAC
    secret.  Without an email the session is anonymous.
    """

    mailbox_slug: str = Field(min_length=1)
    email: str | None = None
    email_hash: str | None = None
    timestamp: int | None = None
    anonymous_session_id: str | None = Field(default=None, max_length=128)


class ConversationSearchParams(_WireModel):
    """Query string of the conversation list.  Unknown parameters are rejected."""

    status: list[str] | None = None
    limit: int = Field(default=20, ge=1, le=100)
    cursor: int | None = Field(default=None, ge=1, le=MAX_ROW_ID)
    created_after: datetime | None = None
    created_before: datetime | None = None

    @field_validator("status")
    @classmethod
    def _known_statuses(cls, v: list[str] | None) -> list[str] | None:
        if v:
            unknown = [s for s in v if s not in CONVERSATION_STATUSES]
            if unknown:
                raise ValueError(f"Unknown status: {', '.join(unknown)}")
        return v

    @field_validator("created_after", "created_before")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class ThumbsUpReaction(_WireModel):
    type: Literal["thumbs-up"]


class ThumbsDownReaction(_WireModel):
    type: Literal["thumbs-down"]
    feedback: str | None = None


MessageReaction = Annotated[
    Union[ThumbsUpReaction, ThumbsDownReaction],
    Field(discriminator="type"),
]
_reaction_adapter: TypeAdapter[MessageReaction] = TypeAdapter(MessageReaction)


class UpdateConversationRequest(_WireModel):
    mark_read: bool


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _require_customer(context: WidgetContext) -> ColumnElement[bool]:
    predicate = customer_filter(context.session)
    if predicate is None:
        raise NotAuthorizedError()
    return predicate


def _serialize_conversation(conversation: Conversation, message_count: int) -> dict[str, Any]:
    return {
        "slug": conversation.slug,
        "subject": conversation.subject or NO_SUBJECT,
        "status": conversation.status,
        "createdAt": _iso(conversation.created_at),
        "messageCount": message_count,
    }


def _serialize_reaction(message: ConversationMessage) -> dict[str, Any] | None:
    if message.reaction_type is None:
        return None
    reaction: dict[str, Any] = {"type": message.reaction_type}
    if message.reaction_feedback is not None:
        reaction["feedback"] = message.reaction_feedback
    return reaction


# ---------------------------------------------------------------------------
# POST /api/widget/session
# ---------------------------------------------------------------------------


@router.options("/widget/session")
async def session_preflight() -> Response:
    return cors_options("POST")


@router.post("/widget/session")
async def create_widget_session(
    body: CreateSessionRequest,
    codec: WidgetSessionCodec = Depends(get_session_codec),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    mailbox = await get_mailbox_by_slug(db, body.mailbox_slug)
    if mailbox is None:
        raise TenantNotFoundError()

    anonymous_session_id: str | None = None
    if body.email:
        if not body.email_hash or body.timestamp is None:
            raise BadRequestError("Email authentication fields missing")
        verify_email_hash(
            body.email,
            body.timestamp,
            body.email_hash,
            mailbox.widget_hmac_secret,
            max_age=settings.WIDGET_EMAIL_HASH_MAX_AGE_SECONDS,
        )
    else:
        anonymous_session_id = body.anonymous_session_id or secrets.token_urlsafe(16)

    payload = WidgetSessionPayload(
        mailbox_slug=mailbox.slug,
        show_widget=mailbox.show_widget,
        is_whitelabel=mailbox.is_whitelabel,
        theme=mailbox.theme,
        email=body.email or None,
        anonymous_session_id=anonymous_session_id,
    )
    issued_at = datetime.now(timezone.utc)
    token = codec.create_session(payload, issued_at=issued_at)

    logger.info(
        "Minted widget session mailbox=%s anonymous=%s",
        mailbox.slug,
        payload.is_anonymous,
    )

    return cors_response(
        {
            "token": token,
            "expiresAt": _iso(codec.expires_at(issued_at)),
            "showWidget": payload.show_widget,
            "isWhitelabel": payload.is_whitelabel,
            "theme": payload.theme,
            "anonymousSessionId": anonymous_session_id,
        },
        method="POST",
    )


# ---------------------------------------------------------------------------
# GET /api/chat/conversations
# ---------------------------------------------------------------------------


@router.options("/chat/conversations")
async def conversations_preflight() -> Response:
    return cors_options("GET")


@router.get("/chat/conversations")
async def get_conversations(
    request: Request,
    context: WidgetContext = Depends(require_widget_context),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    predicate = _require_customer(context)

    raw: dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        if key == "status":
            raw[key] = [s.strip() for value in values for s in value.split(",") if s.strip()]
        else:
            raw[key] = values[-1]

    try:
        params = ConversationSearchParams.model_validate(raw)
    except ValidationError as exc:
        details = exc.errors(include_url=False, include_context=False)
        raise BadRequestError("Invalid search parameters", details=details) from exc

    page = await list_conversations(
        db,
        mailbox_id=context.mailbox.id,
        customer=predicate,
        statuses=params.status,
        limit=params.limit,
        cursor=params.cursor,
        created_after=params.created_after,
        created_before=params.created_before,
    )

    return cors_response(
        {
            "conversations": [
                _serialize_conversation(item.conversation, item.message_count)
                for item in page.items
            ],
            "nextCursor": page.next_cursor,
        },
        method="GET",
    )


# ---------------------------------------------------------------------------
# GET / PATCH /api/chat/conversation/{slug}
# ---------------------------------------------------------------------------


@router.options("/chat/conversation/{slug}")
async def conversation_preflight(slug: str) -> Response:
    return cors_options("GET", "PATCH")


@router.get("/chat/conversation/{slug}")
async def get_conversation(
    slug: str,
    mark_read: str | None = Query(default=None, alias="markRead"),
    context: WidgetContext = Depends(require_widget_context),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    predicate = _require_customer(context)
    conversation = await get_conversation_for_customer(
        db,
        mailbox_id=context.mailbox.id,
        slug=slug,
        customer=predicate,
        with_messages=True,
    )
    if conversation is None:
        raise ConversationNotFoundError()

    messages = [
        {
            "id": message.id,
            "role": message.role,
            "content": message.body or "",
            "createdAt": _iso(message.created_at),
            "reaction": _serialize_reaction(message),
        }
        for message in conversation.messages
        if message.role in WIDGET_MESSAGE_ROLES
    ]

    if mark_read != "false":
        await mark_conversation_read(db, conversation.id)

    return cors_response(
        {
            "slug": conversation.slug,
            "subject": conversation.subject or NO_SUBJECT,
            "status": conversation.status,
            "createdAt": _iso(conversation.created_at),
            "messages": messages,
        },
        method=("GET", "PATCH"),
    )


@router.patch("/chat/conversation/{slug}")
async def update_conversation(
    slug: str,
    request: Request,
    context: WidgetContext = Depends(require_widget_context),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    try:
        body = UpdateConversationRequest.model_validate(await request.json())
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BadRequestError("markRead parameter is required") from exc

    predicate = _require_customer(context)
    conversation = await get_conversation_for_customer(
        db,
        mailbox_id=context.mailbox.id,
        slug=slug,
        customer=predicate,
    )
    if conversation is None:
        raise ConversationNotFoundError()

    if body.mark_read:
        await mark_conversation_read(db, conversation.id)

    return cors_response({"success": True}, method=("GET", "PATCH"))


# ---------------------------------------------------------------------------
# POST /api/chat/conversation/{slug}/message/{message_id}
# ---------------------------------------------------------------------------


def _parse_message_id(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()) or len(raw) > 10:
        raise BadRequestError("Invalid message ID")
    message_id = int(raw)
    if not 1 <= message_id <= MAX_ROW_ID:
        raise BadRequestError("Invalid message ID")
    return message_id


@router.options("/chat/conversation/{slug}/message/{message_id}")
async def message_reaction_preflight(slug: str, message_id: str) -> Response:
    return cors_options("POST")


@router.post("/chat/conversation/{slug}/message/{message_id}")
async def react_to_message(
    slug: str,
    message_id: str,
    request: Request,
    context: WidgetContext = Depends(require_widget_context),
    db: AsyncSession = Depends(get_session),
) -> JSONResponse:
    """Thumbs-up / thumbs-down on a message.

    Repeating the current reaction removes it.  The one exception is a
    thumbs-down without feedback, which accepts feedback on a second send.
    """
    parsed_id = _parse_message_id(message_id)
    predicate = _require_customer(context)

    message = await get_message_for_customer(
        db,
        mailbox_id=context.mailbox.id,
        slug=slug,
        message_id=parsed_id,
        customer=predicate,
    )
    if message is None:
        raise MessageNotFoundError()

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BadRequestError("Invalid JSON body") from exc

    try:
        reaction = _reaction_adapter.validate_python(body)
    except ValidationError as exc:
        raise BadRequestError("Invalid reaction") from exc

    feedback = reaction.feedback if isinstance(reaction, ThumbsDownReaction) else None

    if (
        message.reaction_type == "thumbs-down"
        and reaction.type == "thumbs-down"
        and message.reaction_feedback is None
    ):
        await set_message_reaction(db, message, reaction.type, feedback)
    elif message.reaction_type == reaction.type:
        await clear_message_reaction(db, message)
        logger.info("Cleared reaction on message=%s", message.id)
        return cors_response({"reaction": None}, method="POST")
    else:
        await set_message_reaction(db, message, reaction.type, feedback)

    logger.info("Recorded %s reaction on message=%s", reaction.type, message.id)
    return cors_response(
        {"reaction": reaction.model_dump(by_alias=True, exclude_none=True)},
        method="POST",
    )
