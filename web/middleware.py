"""HTTP middleware: security headers + profile session authentication."""

import logging
from typing import Iterable
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from player.embed import YOUTUBE_HOST

logger = logging.getLogger(__name__)

# Paths reachable without a signed-in profile
_AUTH_EXEMPT = ("/login", "/api/yt-iframe-api.js", "/api/yt-widget-api.js")

_EMBED_FRAME_HOSTS = (
    YOUTUBE_HOST,
    "https://www.instagram.com",
    "https://www.tiktok.com",
    "https://platform.twitter.com",
    "https://www.facebook.com",
)


def _origins(urls: Iterable[str]) -> list[str]:
    out = []
    for url in urls:
        p = urlparse(url)
        if p.scheme and p.netloc:
            origin = f"{p.scheme}://{p.netloc}"
            if origin not in out:
                out.append(origin)
    return out


def build_csp(mirror_pages: Iterable[str] = ()) -> str:
    """Content-Security-Policy allowing the platform embeds and mirror pages.

    Fallback streams come from whichever mirror answered, so media-src
    accepts any https origin.
    """
    frames = " ".join(_origins([*_EMBED_FRAME_HOSTS, *mirror_pages]))
    return (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' https://i.ytimg.com https://img.youtube.com; "
        f"frame-src {frames}; "
        "connect-src 'self'; "
        "media-src 'self' https: blob:; "
        "object-src 'none'; "
        "base-uri 'self'"
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, mirror_pages: Iterable[str] = ()):
        super().__init__(app)
        self.csp = build_csp(mirror_pages)

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = self.csp
        return response


class ProfileAuthMiddleware(BaseHTTPMiddleware):
    """Require a signed-in profile for everything except login and the script proxies."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path.startswith(_AUTH_EXEMPT):
            return await call_next(request)

        if request.session.get("profile_id"):
            return await call_next(request)

        # Auto-login: a lone profile without a PIN needs no login step
        vs = getattr(request.app.state, "video_store", None)
        if vs:
            profiles = vs.get_profiles()
            if len(profiles) == 1 and not profiles[0]["pin"]:
                request.session["profile_id"] = profiles[0]["id"]
                return await call_next(request)

        logger.debug("Unauthenticated request to %s", request.url.path)
        return JSONResponse({"error": "unauthorized"}, status_code=401)
