"""Mailbox (tenant) lookups."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.base import Mailbox


async def get_mailbox_by_slug(session: AsyncSession, slug: str) -> Mailbox | None:
    result = await session.execute(select(Mailbox).where(Mailbox.slug == slug))
    return result.scalar_one_or_none()
