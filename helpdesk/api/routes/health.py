"""Health check endpoint."""

import logging

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from helpdesk import __version__
from helpdesk.config.settings import settings

logger = logging.getLogger("helpdesk.api.health")

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(request: Request) -> dict:
    """Liveness plus a ``SELECT 1`` against the database that resolves mailboxes."""
    database = "ok"
    try:
        async with request.app.state.sessionmaker() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "env": settings.ENV,
        "version": __version__,
    }
