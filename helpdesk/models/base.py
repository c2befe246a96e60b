"""SQLAlchemy models for the widget boundary: mailboxes, conversations, messages."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.db import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _hmac_secret() -> str:
    return secrets.token_hex(16)


class Mailbox(Base):
    """A tenant's support inbox.  Widget sessions are scoped to one mailbox by slug."""

    __tablename__ = "mailboxes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    widget_hmac_secret: Mapped[str] = mapped_column(String(128), nullable=False, default=_hmac_secret)
    widget_display_mode: Mapped[str] = mapped_column(String(32), nullable=False, default="always")
    is_whitelabel: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preferences: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    conversations: Mapped[list["Conversation"]] = relationship(back_populates="mailbox")

    @property
    def show_widget(self) -> bool:
        return self.widget_display_mode != "off"

    @property
    def theme(self) -> dict[str, str] | None:
        return (self.preferences or {}).get("theme")


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversation_mailbox_email", "mailbox_id", "email_from"),
        Index("ix_conversation_anonymous_session", "anonymous_session_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    mailbox_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mailboxes.id", ondelete="CASCADE"), nullable=False
    )
    email_from: Mapped[str | None] = mapped_column(String(320), nullable=True)
    anonymous_session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    last_read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    mailbox: Mapped["Mailbox"] = relationship(back_populates="conversations")
    messages: Mapped[list["ConversationMessage"]] = relationship(
        back_populates="conversation",
        order_by="[ConversationMessage.created_at, ConversationMessage.id]",
    )


class ConversationMessage(Base):
    __tablename__ = "conversation_messages"
    __table_args__ = (
        Index("ix_conversation_messages_reaction", "reaction_type", "reaction_created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    reaction_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    reaction_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    reaction_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")
