"""
FastAPI application entry point for the SkillSwap API.

Run with any ASGI server, e.g. ``uvicorn skillswap.app:app``.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from skillswap.config import Settings, get_settings
from skillswap.error_handlers import register_error_handlers
from skillswap.routes import router

logger = logging.getLogger(__name__)


def resolve_session_secret(settings: Settings) -> str:
    """
    Return the key used to sign session cookies.

    A SQL-backed deployment must configure SESSION_SECRET. Without a database
    a random per-process key is generated, so sessions end on restart.
    """
    if settings.session_secret:
        return settings.session_secret
    if settings.database_url and not settings.use_in_memory_backends:
        raise RuntimeError("SESSION_SECRET is required when DATABASE_URL is set")
    logger.warning("SESSION_SECRET not set; using a random per-process key")
    return secrets.token_urlsafe(32)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="SkillSwap API", version="0.1.0")
    app.add_middleware(
        SessionMiddleware,
        secret_key=resolve_session_secret(settings),
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        https_only=settings.session_https_only,
        same_site="lax",
    )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
