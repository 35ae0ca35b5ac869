"""Platform embed contract: YouTube player config, iframe URLs, API readiness."""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

from access.models import ROLE_CHILD
from player.state import Platform, VideoRecord
from youtube.extractor import parse_video_url

logger = logging.getLogger(__name__)

YOUTUBE_HOST = "https://www.youtube-nocookie.com"
PLAYER_CONTAINER_ID = "youtube-player-container"

# Embed API PlayerState codes
YT_STATE_UNSTARTED = -1
YT_STATE_ENDED = 0
YT_STATE_PLAYING = 1
YT_STATE_PAUSED = 2
YT_STATE_BUFFERING = 3
YT_STATE_CUED = 5

IFRAME_SANDBOX = "allow-scripts allow-same-origin allow-presentation"
IFRAME_ALLOW = "autoplay; encrypted-media; picture-in-picture"


def youtube_player_vars(role: str = ROLE_CHILD, origin: str = "") -> dict:
    """playerVars for the embed API. Child viewers get keyboard input disabled."""
    player_vars = {
        "autoplay": 1,
        "controls": 1,
        "rel": 0,
        "iv_load_policy": 3,
        "modestbranding": 1,
        "playsinline": 1,
        "fs": 1,
        "cc_load_policy": 0,
    }
    if role == ROLE_CHILD:
        player_vars["disablekb"] = 1
    if origin:
        player_vars["origin"] = origin
    return player_vars


def youtube_player_config(video_id: str, role: str = ROLE_CHILD, origin: str = "") -> dict:
    """Arguments for `new YT.Player(containerId, options)` on the client."""
    return {
        "container_id": PLAYER_CONTAINER_ID,
        "api_script": "/api/yt-iframe-api.js",
        "options": {
            "videoId": video_id,
            "host": YOUTUBE_HOST,
            "playerVars": youtube_player_vars(role, origin),
            "events": ["onReady", "onStateChange", "onError"],
        },
    }


def embed_url(video: VideoRecord) -> str:
    """Sandboxed iframe URL for the video's own platform player."""
    if video.platform in (Platform.YOUTUBE, Platform.UNKNOWN):
        return f"{YOUTUBE_HOST}/embed/{video.id}?enablejsapi=1"
    parsed = parse_video_url(video.url) if video.url else None
    if parsed and parsed.embed_url:
        return parsed.embed_url
    if video.platform == Platform.TWITTER:
        return f"https://platform.twitter.com/embed/Tweet.html?id={quote(video.id)}"
    if video.platform == Platform.INSTAGRAM:
        return f"https://www.instagram.com/p/{quote(video.id)}/embed/?hidecaption=1"
    if video.platform == Platform.TIKTOK:
        return f"https://www.tiktok.com/embed/v2/{quote(video.id)}"
    return f"https://www.facebook.com/plugins/video.php?href={quote(video.url, safe='')}&show_text=false"


def iframe_config(url: str) -> dict:
    return {"src": url, "sandbox": IFRAME_SANDBOX, "allow": IFRAME_ALLOW}


class EmbedApiLoader:
    """Readiness signal for the deferred-load embed API, owned by one session.

    Setup code awaits `wait()`; the client reports readiness with
    `mark_ready()`. After `reset()` the loader is inert, so a late readiness
    report for a closed session is dropped instead of driving stale setup.
    """

    def __init__(self):
        self._event: Optional[asyncio.Event] = None
        self._ready = False
        self._closed = False

    @property
    def ready(self) -> bool:
        return self._ready

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._ready:
                self._event.set()
        return self._event

    def mark_ready(self) -> bool:
        """Record readiness. Returns False if the loader was already reset."""
        if self._closed:
            logger.debug("Dropping embed API readiness for a closed session")
            return False
        self._ready = True
        if self._event is not None:
            self._event.set()
        return True

    async def wait(self, timeout: float) -> bool:
        """True once ready; False on timeout or after reset."""
        if self._closed:
            return False
        if self._ready:
            return True
        try:
            await asyncio.wait_for(self._get_event().wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self._ready and not self._closed

    def reset(self) -> None:
        self._closed = True
        self._ready = False
