"""Fallback mirror providers.

Tier A instances expose `{base}/streams/{id}` with direct stream descriptors.
Tier B instances expose `{base}/api/v1/videos/{id}` with format streams and an
embeddable page at `{base}/embed/{id}`. All of them are best-effort public
mirrors, so every call is bounded and any failure becomes a ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional, Sequence, TypeVar
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 2.0

# (quality, container) preferences per tier
TIER_A_PREFERRED = ("720p", "WEBM")
TIER_B_PREFERRED = ("720p", "mp4")


class ProviderError(Exception):
    """A single provider could not serve a stream."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Fisher-Yates shuffle of a copy of `items`."""
    rng = rng or random.Random()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _pick(streams, quality_key: str, container_key: str, preferred: tuple[str, str]) -> Optional[dict]:
    """Preferred quality+container entry, else the first usable entry, else None.

    Only entries with a non-empty string `url` are usable.
    """
    if not isinstance(streams, list):
        return None
    usable = [s for s in streams if isinstance(s, dict) and isinstance(s.get("url"), str) and s["url"]]
    quality, container = preferred
    for s in usable:
        if s.get(quality_key) == quality and s.get(container_key) == container:
            return s
    return usable[0] if usable else None


def embed_page_url(base_url: str, video_id: str) -> str:
    """Tier B embeddable page with autoplay on."""
    return f"{base_url.rstrip('/')}/embed/{video_id}?autoplay=1"


class ProviderClient:
    """HTTP access to both provider families through one httpx client."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT):
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, base_url: str, path: str):
        url = f"{base_url.rstrip('/')}{path}"
        try:
            resp = await asyncio.wait_for(
                self._client.get(url, timeout=self._timeout), timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(base_url, f"{base_url} timed out after {self._timeout:g}s")
        except httpx.HTTPError as e:
            raise ProviderError(base_url, f"{base_url} request failed: {e}") from e
        if not resp.is_success:
            raise ProviderError(base_url, f"{base_url} responded with status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(base_url, f"{base_url} returned malformed JSON") from e

    async def direct_stream(self, base_url: str, video_id: str) -> str:
        """Tier A: resolve a playable stream URL (relative URLs join the base)."""
        data = await self._get_json(base_url, f"/streams/{video_id}")
        streams = data.get("videoStreams") if isinstance(data, dict) else None
        stream = _pick(streams, "quality", "format", TIER_A_PREFERRED)
        if stream is None:
            raise ProviderError(base_url, f"{base_url} returned no video streams")
        return urljoin(base_url.rstrip("/") + "/", stream["url"])

    async def metadata_stream(self, base_url: str, video_id: str) -> str:
        """Tier B: resolve a stream URL from the video metadata API."""
        data = await self._get_json(base_url, f"/api/v1/videos/{video_id}")
        streams = data.get("formatStreams") if isinstance(data, dict) else None
        stream = _pick(streams, "qualityLabel", "container", TIER_B_PREFERRED)
        if stream is None:
            raise ProviderError(base_url, f"{base_url} returned no format streams")
        return urljoin(base_url.rstrip("/") + "/", stream["url"])
