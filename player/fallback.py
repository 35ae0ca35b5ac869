"""Fallback resolution: tiered search across mirror providers."""

import logging
import random
from typing import Callable, Optional, Sequence

from player.providers import ProviderClient, ProviderError, embed_page_url, shuffled
from player.state import FallbackIframe, FallbackVideo, PlaybackError, PlayerState

logger = logging.getLogger(__name__)

NO_PROVIDER_MESSAGE = "Even my best tricks didn't work for this video. So sorry!"


class FallbackResolver:
    """Resolves a replacement player for a video whose primary embed failed.

    Tier 1 asks direct-stream providers, tier 2 asks metadata-API providers,
    tier 3 embeds the first (shuffled) metadata-API provider's page without
    validation. Provider order is reshuffled on every resolve.
    """

    def __init__(
        self,
        client: ProviderClient,
        tier_a: Sequence[str],
        tier_b: Sequence[str],
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.tier_a = list(tier_a)
        self.tier_b = list(tier_b)
        self._rng = rng or random.Random()

    async def resolve(
        self, video_id: str, still_current: Callable[[], bool] = lambda: True,
    ) -> Optional[PlayerState]:
        """Return the terminal state to apply, or None if the caller moved on.

        `still_current` is consulted after every network call; once it turns
        false the remaining providers are skipped and nothing is returned.
        """
        last_error: Optional[ProviderError] = None
        tier_a = shuffled(self.tier_a, self._rng)
        tier_b = shuffled(self.tier_b, self._rng)

        logger.info("Fallback tier 1 for %s: %d direct-stream providers", video_id, len(tier_a))
        for base in tier_a:
            try:
                url = await self.client.direct_stream(base, video_id)
            except ProviderError as e:
                logger.warning("Tier 1 provider failed: %s", e)
                last_error = e
                if not still_current():
                    return None
                continue
            if not still_current():
                return None
            logger.info("Fallback stream for %s from %s", video_id, base)
            return FallbackVideo(url=url, provider=base)

        logger.info("Fallback tier 2 for %s: %d metadata providers", video_id, len(tier_b))
        for base in tier_b:
            try:
                url = await self.client.metadata_stream(base, video_id)
            except ProviderError as e:
                logger.warning("Tier 2 provider failed: %s", e)
                last_error = e
                if not still_current():
                    return None
                continue
            if not still_current():
                return None
            logger.info("Fallback stream for %s from %s", video_id, base)
            return FallbackVideo(url=url, provider=base)

        if tier_b:
            base = tier_b[0]
            logger.info("Fallback tier 3 for %s: embedding %s", video_id, base)
            return FallbackIframe(url=embed_page_url(base, video_id), provider=base)

        logger.error("All fallback attempts failed for %s: %s", video_id, last_error)
        if last_error is not None:
            return PlaybackError(message=f"All fallback attempts failed:\n{last_error}")
        return PlaybackError(message=NO_PROVIDER_MESSAGE)
