"""Watch timer: credits one second of quota per second of verified playback."""

import asyncio
import logging
from typing import Callable, Optional

from player.state import VideoRecord

logger = logging.getLogger(__name__)

TimeUpdateCallback = Callable[[int], None]
VideoUpdateCallback = Callable[[VideoRecord], None]


class WatchTimer:
    """1 Hz asyncio ticker bound to one video session.

    Every tick reports +1 second through `on_time_update` and advances the
    session's accumulated seconds, clamped at the video's total duration, then
    hands the updated record to `on_update_video`. Both happen inside one
    synchronous call, so a stop between them is impossible.
    """

    def __init__(
        self,
        video: VideoRecord,
        on_time_update: TimeUpdateCallback,
        on_update_video: Optional[VideoUpdateCallback] = None,
        interval: float = 1.0,
        is_attached: Optional[Callable[[], bool]] = None,
    ):
        self._video = video
        self._on_time_update = on_time_update
        self._on_update_video = on_update_video
        self._interval = interval
        self._is_attached = is_attached or (lambda: True)
        self._task: Optional[asyncio.Task] = None
        self.accumulated_seconds = video.watch_duration_seconds

    @property
    def running(self) -> bool:
        return self._task is not None

    @property
    def video(self) -> VideoRecord:
        return self._video

    def start(self) -> None:
        """Start ticking. A second start while running keeps the existing ticker."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Watch timer started for %s", self._video.id)

    def stop(self) -> None:
        """Stop ticking. Safe to call when not running."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        logger.debug("Watch timer stopped for %s at %ds", self._video.id, self.accumulated_seconds)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.tick()

    def tick(self) -> None:
        """Credit one second. No-op after stop or once the media is gone."""
        if self._task is None or not self._is_attached():
            logger.debug("Ignoring stale watch tick for %s", self._video.id)
            return
        total = self._video.total_duration_seconds
        if self.accumulated_seconds < total:
            self.accumulated_seconds += 1
        self._video = self._video.with_watch_duration(self.accumulated_seconds)
        self._on_time_update(1)
        if self._on_update_video is not None:
            self._on_update_video(self._video)
