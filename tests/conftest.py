"""Shared fixtures: in-memory SQLite database, a seeded mailbox, and an ASGI client."""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from helpdesk.db import Base, create_sessionmaker
from helpdesk.models.base import Conversation, ConversationMessage, Mailbox
from helpdesk.widget.auth import get_session_codec
from helpdesk.widget.session import WidgetSessionCodec, WidgetSessionPayload

TEST_JWT_SECRET = "test-widget-jwt-secret"
TEST_HMAC_SECRET = "test-mailbox-hmac-secret"


@pytest.fixture
def codec() -> WidgetSessionCodec:
    return WidgetSessionCodec(TEST_JWT_SECRET)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return create_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def mailbox(db) -> Mailbox:
    mailbox = Mailbox(
        name="Acme Support",
        slug="acme",
        widget_hmac_secret=TEST_HMAC_SECRET,
        widget_display_mode="always",
        is_whitelabel=False,
        preferences={"theme": {"background": "#ffffff", "primary": "#123456"}},
    )
    db.add(mailbox)
    await db.commit()
    return mailbox


@pytest.fixture
def make_conversation(db):
    async def _make(mailbox: Mailbox, *, messages: list[tuple[str, str]] = (), **fields) -> Conversation:
        fields.setdefault("slug", uuid.uuid4().hex)
        conversation = Conversation(mailbox_id=mailbox.id, **fields)
        db.add(conversation)
        await db.flush()
        for role, body in messages:
            db.add(ConversationMessage(conversation_id=conversation.id, role=role, body=body))
        await db.commit()
        return conversation

    return _make


@pytest.fixture
def app(sessionmaker, codec):
    from helpdesk.main import create_app

    app = create_app()
    app.state.sessionmaker = sessionmaker
    app.dependency_overrides[get_session_codec] = lambda: codec
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def bearer(codec):
    """Build an Authorization header for a session on the given mailbox."""

    def _bearer(mailbox_slug: str = "acme", **fields) -> dict[str, str]:
        payload = WidgetSessionPayload(
            mailbox_slug=mailbox_slug,
            show_widget=True,
            is_whitelabel=False,
            **fields,
        )
        return {"Authorization": f"Bearer {codec.create_session(payload)}"}

    return _bearer
