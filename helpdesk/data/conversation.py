"""Conversation queries scoped to a mailbox and a widget customer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from helpdesk.models.base import Conversation, ConversationMessage

CONVERSATION_STATUSES = ("open", "closed", "spam")
WIDGET_MESSAGE_ROLES = ("user", "ai_assistant", "staff")


@dataclass
class ConversationSummary:
    conversation: Conversation
    message_count: int


@dataclass
class ConversationPage:
    items: list[ConversationSummary]
    next_cursor: int | None


async def list_conversations(
    session: AsyncSession,
    *,
    mailbox_id: int,
    customer: ColumnElement[bool],
    statuses: list[str] | None = None,
    limit: int = 20,
    cursor: int | None = None,
    created_after: datetime | None = None,
    created_before: datetime | None = None,
) -> ConversationPage:
    """Newest-first keyset page of a customer's conversations.

    ``cursor`` is the id of the last conversation on the previous page.  One
    extra row is fetched to decide whether a next page exists.
    ``created_after`` and ``created_before`` are exclusive bounds.
    """
    message_count = (
        select(func.count(ConversationMessage.id))
        .where(
            ConversationMessage.conversation_id == Conversation.id,
            ConversationMessage.role.in_(WIDGET_MESSAGE_ROLES),
        )
        .correlate(Conversation)
        .scalar_subquery()
    )

    stmt = (
        select(Conversation, message_count)
        .where(Conversation.mailbox_id == mailbox_id, customer)
        .order_by(Conversation.id.desc())
        .limit(limit + 1)
    )
    if statuses:
        stmt = stmt.where(Conversation.status.in_(statuses))
    if cursor is not None:
        stmt = stmt.where(Conversation.id < cursor)
    if created_after is not None:
        stmt = stmt.where(Conversation.created_at > created_after)
    if created_before is not None:
        stmt = stmt.where(Conversation.created_at < created_before)

    rows = (await session.execute(stmt)).all()
    has_more = len(rows) > limit
    rows = rows[:limit]

    items = [ConversationSummary(conversation=row[0], message_count=row[1]) for row in rows]
    next_cursor = items[-1].conversation.id if has_more and items else None
    return ConversationPage(items=items, next_cursor=next_cursor)


async def get_conversation_for_customer(
    session: AsyncSession,
    *,
    mailbox_id: int,
    slug: str,
    customer: ColumnElement[bool],
    with_messages: bool = False,
) -> Conversation | None:
    stmt = select(Conversation).where(
        Conversation.mailbox_id == mailbox_id,
        Conversation.slug == slug,
        customer,
    )
    if with_messages:
        stmt = stmt.options(selectinload(Conversation.messages))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def mark_conversation_read(session: AsyncSession, conversation_id: int) -> datetime:
    now = datetime.now(timezone.utc)
    await session.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(last_read_at=now)
    )
    await session.commit()
    return now


async def get_message_for_customer(
    session: AsyncSession,
    *,
    mailbox_id: int,
    slug: str,
    message_id: int,
    customer: ColumnElement[bool],
) -> ConversationMessage | None:
    stmt = (
        select(ConversationMessage)
        .join(Conversation, ConversationMessage.conversation_id == Conversation.id)
        .where(
            ConversationMessage.id == message_id,
            Conversation.slug == slug,
            Conversation.mailbox_id == mailbox_id,
            customer,
        )
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def set_message_reaction(
    session: AsyncSession,
    message: ConversationMessage,
    reaction_type: str,
    feedback: str | None = None,
) -> None:
    message.reaction_type = reaction_type
    message.reaction_feedback = feedback if reaction_type == "thumbs-down" else None
    message.reaction_created_at = datetime.now(timezone.utc)
    await session.commit()


async def clear_message_reaction(session: AsyncSession, message: ConversationMessage) -> None:
    message.reaction_type = None
    message.reaction_feedback = None
    message.reaction_created_at = None
    await session.commit()
