"""Helpdesk FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk import __version__
from helpdesk.api.middleware import RequestLoggingMiddleware
from helpdesk.api.routes import health, webhooks
from helpdesk.config.settings import settings
from helpdesk.db import create_engine, create_sessionmaker
from helpdesk.widget import routes as widget_routes
from helpdesk.widget.cors import cors_error, cors_response
from helpdesk.widget.errors import BadRequestError, WidgetError

logger = logging.getLogger("helpdesk")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(level=settings.LOG_LEVEL)
    engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    app.state.engine = engine
    app.state.sessionmaker = create_sessionmaker(engine)
    logger.info("Helpdesk %s started env=%s", __version__, settings.ENV)
    try:
        yield
    finally:
        await engine.dispose()


# --- Exception handlers ---


async def widget_error_handler(request: Request, exc: WidgetError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Widget error on %s %s: %s", request.method, request.url.path, exc.message)
    return cors_error(exc, method=request.method)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = BadRequestError(details=exc.errors())
    return cors_error(error, method=request.method)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return cors_response(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=exc.headers,
        method=request.method,
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return cors_response(
        {"error": "Internal server error"},
        status_code=500,
        method=request.method,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Helpdesk Widget API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router)
    app.include_router(widget_routes.router)
    app.include_router(webhooks.router)

    app.add_exception_handler(WidgetError, widget_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    return app


app = create_app()
