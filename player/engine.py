"""Playback resilience engine: one state machine per opened video.

    platform-native -> loading-fallback -> fallback-video | fallback-iframe | error

Any state may move to closed. Terminal states never re-enter the fallback
procedure; the viewer has to reopen the video to retry.
"""

import asyncio
import logging
import secrets
from typing import Callable, Optional, Protocol

from access.models import ROLE_CHILD
from player.embed import (
    EmbedApiLoader, YT_STATE_PLAYING, embed_url, iframe_config, youtube_player_config,
)
from player.fallback import FallbackResolver
from player.state import (
    Closed, FallbackIframe, FallbackVideo, LoadingFallback, NativeEmbed, PlaybackError, Platform,
    PlayerMode, PlayerState, VideoRecord, is_terminal, state_to_dict,
)
from player.timer import TimeUpdateCallback, VideoUpdateCallback, WatchTimer

logger = logging.getLogger(__name__)

_ALLOWED = {
    PlayerMode.NATIVE: {PlayerMode.LOADING_FALLBACK, PlayerMode.CLOSED},
    PlayerMode.LOADING_FALLBACK: {
        PlayerMode.FALLBACK_VIDEO, PlayerMode.FALLBACK_IFRAME, PlayerMode.ERROR, PlayerMode.CLOSED,
    },
    PlayerMode.FALLBACK_VIDEO: {PlayerMode.CLOSED},
    PlayerMode.FALLBACK_IFRAME: {PlayerMode.CLOSED},
    PlayerMode.ERROR: {PlayerMode.CLOSED},
    PlayerMode.CLOSED: set(),
}

EVENTS = (
    "api_ready", "ready", "state_change", "error", "iframe_load",
    "media_play", "media_pause", "media_ended",
)


class NativePlayer(Protocol):
    """Handle on a platform player instance; must release it on destroy()."""

    def destroy(self) -> None: ...


class PlaybackSession:
    """State machine for one opened video, driving its watch timer."""

    def __init__(
        self,
        video: VideoRecord,
        resolver: FallbackResolver,
        on_time_update: TimeUpdateCallback,
        on_update_video: Optional[VideoUpdateCallback] = None,
        *,
        role: str = ROLE_CHILD,
        origin: str = "",
        api_load_timeout: float = 10.0,
        timer_interval: float = 1.0,
        session_id: str = "",
    ):
        self.session_id = session_id or secrets.token_hex(8)
        self.video = video
        self.role = role
        self.origin = origin
        self._resolver = resolver
        self._on_update_video = on_update_video
        self._api_load_timeout = api_load_timeout
        self._state: Optional[PlayerState] = None
        self._generation = 0
        self._player: Optional[NativePlayer] = None
        self._loader = EmbedApiLoader()
        self._watchdog: Optional[asyncio.Task] = None
        self._resolution: Optional[asyncio.Task] = None
        self.timer = WatchTimer(
            video, on_time_update, self._video_updated,
            interval=timer_interval, is_attached=self._media_attached,
        )

    # --- State ---

    @property
    def state(self) -> Optional[PlayerState]:
        return self._state

    @property
    def mode(self) -> Optional[PlayerMode]:
        return self._state.mode if self._state is not None else None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def platform(self) -> Platform:
        if self.video.platform == Platform.UNKNOWN:
            return Platform.YOUTUBE
        return self.video.platform

    def is_current(self, token: int) -> bool:
        return token == self._generation and self.mode is not PlayerMode.CLOSED

    def _media_attached(self) -> bool:
        return self.mode in (PlayerMode.NATIVE, PlayerMode.FALLBACK_VIDEO, PlayerMode.FALLBACK_IFRAME)

    def _transition(self, new_state: PlayerState) -> bool:
        current = self.mode
        if current is not None and new_state.mode not in _ALLOWED[current]:
            logger.warning("Session %s: ignoring %s -> %s",
                           self.session_id, current.value, new_state.mode.value)
            return False
        # A new player takes over the slot, so the old ticker must stop first
        self.timer.stop()
        self._state = new_state
        self._generation += 1
        logger.info("Session %s (%s): %s -> %s", self.session_id, self.video.id,
                    current.value if current else "new", new_state.mode.value)
        return True

    def _video_updated(self, video: VideoRecord) -> None:
        self.video = video
        if self._on_update_video is not None:
            self._on_update_video(video)

    # --- Lifecycle ---

    def open(self) -> PlayerState:
        """Enter the platform-native state. Requires a running event loop."""
        if self._state is not None:
            return self._state
        if self.video.status == "unseen":
            self.video.status = "seen"
            self._video_updated(self.video)
        platform = self.platform
        self._transition(NativeEmbed(platform=platform, embed_url=embed_url(self.video)))
        if platform == Platform.YOUTUBE:
            token = self._generation
            self._watchdog = asyncio.get_running_loop().create_task(self._await_embed_api(token))
        return self._state

    async def _await_embed_api(self, token: int) -> None:
        ready = await self._loader.wait(self._api_load_timeout)
        if ready or not self.is_current(token):
            return
        logger.warning("Session %s: embed API not ready after %.0fs, falling back",
                       self.session_id, self._api_load_timeout)
        self._begin_fallback()

    def close(self) -> None:
        """Tear down synchronously: timer, native player, API hook, watchdog."""
        if self.mode is PlayerMode.CLOSED:
            return
        self.timer.stop()
        self._destroy_player()
        self._loader.reset()
        if self._watchdog is not None and not self._watchdog.done():
            self._watchdog.cancel()
        self._watchdog = None
        # An in-flight resolution is left to finish; the generation bump makes it inert
        self._transition(Closed())

    async def wait_settled(self) -> Optional[PlayerState]:
        """Wait for an in-flight fallback resolution, then return the state."""
        task = self._resolution
        if task is not None:
            await task
        return self._state

    # --- Native player (YouTube embed API) ---

    def api_ready(self) -> Optional[dict]:
        """The client loaded the embed API; returns the player config to build."""
        if self.mode is not PlayerMode.NATIVE or self.platform != Platform.YOUTUBE:
            return None
        if not self._loader.mark_ready():
            return None
        return youtube_player_config(self.video.id, self.role, self.origin)

    def attach_player(self, player: NativePlayer) -> bool:
        if self.mode is not PlayerMode.NATIVE:
            logger.debug("Session %s: refusing player attach in %s", self.session_id, self.mode)
            return False
        self._destroy_player()
        self._player = player
        return True

    def _destroy_player(self) -> None:
        player, self._player = self._player, None
        if player is None:
            return
        try:
            player.destroy()
        except Exception as e:
            logger.warning("Session %s: player destroy failed: %s", self.session_id, e)

    def on_ready(self) -> None:
        if self.mode is not PlayerMode.NATIVE:
            return
        play = getattr(self._player, "play_video", None)
        if callable(play):
            play()

    def on_state_change(self, code: int) -> None:
        if self.mode is not PlayerMode.NATIVE:
            return
        if code == YT_STATE_PLAYING:
            self.timer.start()
        else:
            self.timer.stop()

    def on_error(self, code: Optional[int] = None) -> None:
        if self.mode is not PlayerMode.NATIVE or self.platform != Platform.YOUTUBE:
            logger.debug("Session %s: ignoring player error %s in %s", self.session_id, code, self.mode)
            return
        logger.error("Session %s: YouTube player error code %s", self.session_id, code)
        self.timer.stop()
        self._destroy_player()
        self._begin_fallback()

    def _begin_fallback(self) -> None:
        if not self._transition(LoadingFallback()):
            return
        watchdog, self._watchdog = self._watchdog, None
        if watchdog is not None and watchdog is not asyncio.current_task():
            watchdog.cancel()
        token = self._generation
        self._resolution = asyncio.get_running_loop().create_task(self._run_fallback(token))

    async def _run_fallback(self, token: int) -> None:
        try:
            result = await self._resolver.resolve(self.video.id, lambda: self.is_current(token))
        except Exception as e:
            logger.exception("Session %s: fallback resolution failed unexpectedly", self.session_id)
            result = PlaybackError(message=f"All fallback attempts failed:\n{e}")
        if result is None:
            logger.debug("Session %s: fallback abandoned", self.session_id)
            return
        self._apply(token, result)

    def _apply(self, token: int, new_state: PlayerState) -> bool:
        """Apply a resolution result only if no transition happened meanwhile."""
        if not is_terminal(new_state):
            logger.warning("Session %s: resolution produced non-final %s", self.session_id, new_state.mode.value)
            return False
        if not self.is_current(token):
            logger.debug("Session %s: dropping stale %s", self.session_id, new_state.mode.value)
            return False
        if not self._transition(new_state):
            return False
        if isinstance(new_state, FallbackIframe):
            # No play/pause signal from a mirror page: credit from load
            self.timer.start()
        return True

    # --- Iframe embeds and fallback media element ---

    def on_iframe_load(self) -> None:
        if self.mode is PlayerMode.NATIVE and self.platform != Platform.YOUTUBE:
            self.timer.start()
        elif self.mode is PlayerMode.FALLBACK_IFRAME:
            self.timer.start()

    def on_media_play(self) -> None:
        if self.mode is PlayerMode.FALLBACK_VIDEO:
            self.timer.start()

    def on_media_pause(self) -> None:
        if self.mode is PlayerMode.FALLBACK_VIDEO:
            self.timer.stop()

    on_media_ended = on_media_pause

    def dispatch(self, event: str, code: Optional[int] = None):
        """Route a client-reported player event by name."""
        if event not in EVENTS:
            raise ValueError(f"Unknown player event: {event}")
        if event == "api_ready":
            return self.api_ready()
        if event == "ready":
            return self.on_ready()
        if event == "state_change":
            return self.on_state_change(code if code is not None else -1)
        if event == "error":
            return self.on_error(code)
        if event == "iframe_load":
            return self.on_iframe_load()
        if event == "media_play":
            return self.on_media_play()
        if event == "media_pause":
            return self.on_media_pause()
        return self.on_media_ended()

    def snapshot(self) -> dict:
        data = {
            "session_id": self.session_id,
            "video": self.video.to_dict(),
            "state": state_to_dict(self._state) if self._state is not None else None,
            "terminal": self._state is not None and is_terminal(self._state),
            "watching": self.timer.running,
            "accumulated_seconds": self.timer.accumulated_seconds,
        }
        state = self._state
        if isinstance(state, NativeEmbed):
            if state.platform == Platform.YOUTUBE:
                data["player"] = youtube_player_config(self.video.id, self.role, self.origin)
            else:
                data["iframe"] = iframe_config(state.embed_url)
        elif isinstance(state, FallbackIframe):
            data["iframe"] = iframe_config(state.url)
        elif isinstance(state, FallbackVideo):
            data["media"] = {"src": state.url, "controls": True, "autoplay": True}
        return data


def make_session_factory(resolver: FallbackResolver, api_load_timeout: float = 10.0,
                         origin: str = "") -> Callable[..., PlaybackSession]:
    """Bind shared engine settings once; callers supply per-open arguments."""
    def factory(video, on_time_update, on_update_video=None, role=ROLE_CHILD):
        return PlaybackSession(
            video, resolver, on_time_update, on_update_video,
            role=role, origin=origin, api_load_timeout=api_load_timeout,
        )
    return factory
