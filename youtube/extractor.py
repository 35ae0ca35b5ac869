from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import quote

import yt_dlp

from player.state import Platform

logger = logging.getLogger(__name__)

_YOUTUBE_PATTERNS = (
    re.compile(
        r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/shorts/)'
        r'([a-zA-Z0-9_-]{11})'
    ),
    re.compile(r'^([a-zA-Z0-9_-]{11})$'),
)
_INSTAGRAM_PATTERNS = (
    re.compile(r'instagram\.com/(?:p|reel|reels|tv)/([a-zA-Z0-9_-]+)'),
    re.compile(r'instagr\.am/p/([a-zA-Z0-9_-]+)'),
)
_TIKTOK_FULL = re.compile(r'tiktok\.com/@([^/]+)/video/(\d+)')
_TIKTOK_SHORT = (
    re.compile(r'tiktok\.com/t/([a-zA-Z0-9]+)'),
    re.compile(r'vm\.tiktok\.com/([a-zA-Z0-9]+)'),
)
_TWITTER_PATTERN = re.compile(r'(?:twitter\.com|x\.com)/[^/]+/status/(\d+)')
_FACEBOOK_PATTERNS = (
    re.compile(r'facebook\.com/.*/videos/(\d+)'),
    re.compile(r'facebook\.com/watch/?\?v=(\d+)'),
    re.compile(r'fb\.watch/([a-zA-Z0-9_-]+)'),
)

_PLATFORM_NAMES = {
    Platform.YOUTUBE: "YouTube",
    Platform.INSTAGRAM: "Instagram",
    Platform.TIKTOK: "TikTok",
    Platform.TWITTER: "X (Twitter)",
    Platform.FACEBOOK: "Facebook",
    Platform.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class ParsedVideoUrl:
    platform: Platform
    video_id: str
    original_url: str
    embed_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


def _first_match(patterns, url: str) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(url)
        if m and m.group(1):
            return m.group(1)
    return None


def extract_video_id(url_or_id: str) -> Optional[str]:
    """Extract YouTube video ID from URL or return as-is if already an ID."""
    return _first_match(_YOUTUBE_PATTERNS, url_or_id.strip())


def parse_video_url(url: str) -> ParsedVideoUrl:
    """Detect the platform of a shared video link and derive its embed URL."""
    url = url.strip()

    yt_id = extract_video_id(url)
    if yt_id:
        return ParsedVideoUrl(
            Platform.YOUTUBE, yt_id, url,
            embed_url=(f"https://www.youtube-nocookie.com/embed/{yt_id}"
                       "?rel=0&modestbranding=1&autoplay=1&controls=1"),
            thumbnail_url=f"https://img.youtube.com/vi/{yt_id}/hqdefault.jpg",
        )

    ig_id = _first_match(_INSTAGRAM_PATTERNS, url)
    if ig_id:
        return ParsedVideoUrl(
            Platform.INSTAGRAM, ig_id, url,
            embed_url=f"https://www.instagram.com/p/{ig_id}/embed/?hidecaption=1",
        )

    m = _TIKTOK_FULL.search(url)
    tt_id = m.group(2) if m else _first_match(_TIKTOK_SHORT, url)
    if tt_id:
        return ParsedVideoUrl(
            Platform.TIKTOK, tt_id, url,
            embed_url=f"https://www.tiktok.com/embed/v2/{tt_id}",
        )

    m = _TWITTER_PATTERN.search(url)
    if m:
        # Tweets have no plain video embed; the widget page is the closest match
        return ParsedVideoUrl(
            Platform.TWITTER, m.group(1), url,
            embed_url=f"https://platform.twitter.com/embed/Tweet.html?id={m.group(1)}",
        )

    fb_id = _first_match(_FACEBOOK_PATTERNS, url)
    if fb_id:
        return ParsedVideoUrl(
            Platform.FACEBOOK, fb_id, url,
            embed_url=("https://www.facebook.com/plugins/video.php"
                       f"?href={quote(url, safe='')}&show_text=false"),
        )

    return ParsedVideoUrl(Platform.UNKNOWN, "", url)


def is_valid_video_url(url: str) -> bool:
    parsed = parse_video_url(url)
    return parsed.platform != Platform.UNKNOWN and parsed.video_id != ""


def platform_display_name(platform: Platform) -> str:
    return _PLATFORM_NAMES.get(platform, "Unknown")


_YDL_TIMEOUT = 30  # default; overridden by configure_timeout()


def configure_timeout(seconds: int):
    """Set yt-dlp timeout from config."""
    global _YDL_TIMEOUT
    _YDL_TIMEOUT = seconds


def _ydl_opts() -> dict:
    """Common yt-dlp options - no download, just metadata."""
    return {
        'quiet': True,
        'no_warnings': True,
        'extract_flat': False,
        'skip_download': True,
        'ignore_no_formats_error': True,
        'socket_timeout': _YDL_TIMEOUT,
    }


async def extract_metadata(url: str) -> Optional[dict]:
    """Title and duration for a shared video link (any yt-dlp supported site)."""
    def _extract():
        try:
            with yt_dlp.YoutubeDL(_ydl_opts()) as ydl:
                info = ydl.extract_info(url, download=False)
                if not info:
                    return None
                return {
                    'title': info.get('title') or 'Untitled video',
                    'duration': int(info.get('duration') or 0),
                    'thumbnail_url': info.get('thumbnail'),
                }
        except Exception as e:
            logger.error(f"Failed to extract metadata for {url}: {e}")
            return None
    try:
        return await asyncio.wait_for(asyncio.to_thread(_extract), timeout=_YDL_TIMEOUT)
    except asyncio.TimeoutError:
        logger.error(f"Metadata extraction timed out for {url}")
        return None


def format_duration(seconds) -> str:
    """Format seconds as H:MM:SS or M:SS."""
    if not seconds:
        return ""
    seconds = int(seconds)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


# ---------------------------------------------------------------------------
# Class wrapper + Protocol for dependency injection / mocking
# ---------------------------------------------------------------------------

@runtime_checkable
class VideoMetadataProtocol(Protocol):
    """Protocol for video metadata lookup, used for type hints and test mocks."""

    async def extract_metadata(self, url: str) -> Optional[dict]: ...


class VideoMetadataExtractor:
    """Concrete implementation wrapping yt-dlp; satisfies VideoMetadataProtocol."""

    async def extract_metadata(self, url: str) -> Optional[dict]:
        return await extract_metadata(url)
