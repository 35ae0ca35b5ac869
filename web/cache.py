"""App state initialization and the cached YouTube player-control scripts."""

import hashlib
import logging
import re
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

from player.registry import SessionRegistry

logger = logging.getLogger(__name__)

IFRAME_API_URL = "https://www.youtube.com/iframe_api"
WIDGET_PROXY_PATH = "/api/yt-widget-api.js"

_TTL = 86400  # 24 hours
_SCRIPT_URL_RE = re.compile(r"(var\s+scriptUrl\s*=\s*)'([^']+)'")
_ALLOWED_HOSTS = {"www.youtube.com", "youtube.com", "s.ytimg.com", "www.google.com"}


class YTScriptCache:
    """The embed API loader and the widget script it pulls in, served locally.

    The loader's `scriptUrl` is rewritten to our widget proxy so the browser
    never talks to youtube.com for scripts. A failed refresh keeps serving the
    previous copy.
    """

    def __init__(self, ttl: float = _TTL, client: Optional[httpx.AsyncClient] = None):
        self.ttl = ttl
        self._client = client
        self.iframe_api: Optional[str] = None
        self.widget_api: Optional[str] = None
        self.widget_url: Optional[str] = None
        self.fetched_at = 0.0

    @property
    def stale(self) -> bool:
        return self.fetched_at == 0.0 or (time.monotonic() - self.fetched_at) > self.ttl

    def _rewrite_loader(self, raw: str) -> str:
        m = _SCRIPT_URL_RE.search(raw)
        if not m:
            logger.warning("scriptUrl pattern not found in YouTube iframe API response")
            self.widget_url = None
            return raw
        url = m.group(2).replace("\\/", "/")
        host = urlparse(url).hostname
        if host not in _ALLOWED_HOSTS:
            logger.error("Rejected widget API URL with unexpected host: %s", host)
            self.widget_url = None
            return raw
        self.widget_url = url
        local = WIDGET_PROXY_PATH.replace("/", "\\\\/")
        return _SCRIPT_URL_RE.sub(rf"\1'{local}'", raw)

    async def refresh(self) -> None:
        client = self._client or httpx.AsyncClient(timeout=10)
        try:
            resp = await client.get(IFRAME_API_URL)
            resp.raise_for_status()
            loader = self._rewrite_loader(resp.text)
            self.iframe_api = loader
            logger.info("YT iframe API SHA-256: %s", hashlib.sha256(loader.encode()).hexdigest())

            if self.widget_url:
                resp = await client.get(self.widget_url)
                resp.raise_for_status()
                self.widget_api = resp.text
                logger.info("YT widget API SHA-256: %s",
                            hashlib.sha256(resp.text.encode()).hexdigest())
            self.fetched_at = time.monotonic()
        except httpx.HTTPError as e:
            if self.iframe_api is not None:
                logger.warning("Failed to refresh YouTube scripts, serving stale cache: %s", e)
            else:
                logger.error("Failed to fetch YouTube scripts (no cache available): %s", e)
        finally:
            if self._client is None:
                await client.aclose()

    async def get(self, name: str) -> Optional[str]:
        """`name` is "iframe" or "widget"; refreshes when missing or stale."""
        attr = "iframe_api" if name == "iframe" else "widget_api"
        if getattr(self, attr) is None or self.stale:
            await self.refresh()
        return getattr(self, attr)


def init_app_state(state):
    """Initialize runtime state on app.state. Called by main.py after setting deps."""
    state.registry = SessionRegistry()
    state.yt_scripts = YTScriptCache()
    state.background_tasks = set()
