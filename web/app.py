"""FastAPI application: routers, rate limiting, middleware wiring."""

import logging
import secrets
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.sessions import SessionMiddleware

from web.middleware import ProfileAuthMiddleware, SecurityHeadersMiddleware
from web.routers.auth import router as auth_router
from web.routers.controls import router as controls_router
from web.routers.library import router as library_router
from web.routers.watch import router as watch_router
from web.routers.ytproxy import router as ytproxy_router
from web.shared import APP_TITLE, APP_VERSION, limiter

logger = logging.getLogger(__name__)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        {"error": "rate_limited", "message": "Too many requests. Please wait a moment and try again."},
        status_code=429,
    )


def create_app() -> FastAPI:
    """Build the app with all routers. State and middleware are added by the caller."""
    app = FastAPI(title=APP_TITLE, version=APP_VERSION)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.include_router(auth_router)
    app.include_router(watch_router)
    app.include_router(library_router)
    app.include_router(controls_router)
    app.include_router(ytproxy_router)
    return app


def resolve_session_secret(store, configured: str = "") -> str:
    """Priority: config value > persisted DB value > generate + persist new."""
    if configured:
        return configured
    secret = store.get_setting("session_secret")
    if not secret:
        secret = secrets.token_hex(32)
        store.set_setting("session_secret", secret)
        logger.info("Generated and persisted new session secret")
    return secret


def add_middleware(app: FastAPI, session_secret: str, mirror_pages: Iterable[str] = ()) -> None:
    """Must run before the first request. Last added runs first."""
    app.add_middleware(SecurityHeadersMiddleware, mirror_pages=list(mirror_pages))
    app.add_middleware(ProfileAuthMiddleware)
    app.add_middleware(SessionMiddleware, secret_key=session_secret, max_age=86400)
