"""Video record and the player state machine's state values.

PlayerState is a closed union of frozen dataclasses. Each variant carries
exactly the data its mode needs, so a stream URL without a fallback mode or an
error message during playback cannot be expressed.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Union


class Platform(str, Enum):
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "Platform":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class PlayerMode(str, Enum):
    NATIVE = "platform-native"
    LOADING_FALLBACK = "loading-fallback"
    FALLBACK_VIDEO = "fallback-video"
    FALLBACK_IFRAME = "fallback-iframe"
    ERROR = "error"
    CLOSED = "closed"


@dataclass
class VideoRecord:
    """A curated video as supplied by the library."""
    id: str
    url: str = ""
    platform: Platform = Platform.YOUTUBE
    total_duration_seconds: int = 0
    watch_duration_seconds: int = 0
    title: str = ""
    status: str = "unseen"

    @classmethod
    def from_row(cls, row: dict) -> "VideoRecord":
        return cls(
            id=row["id"],
            url=row.get("url") or "",
            platform=Platform.parse(row.get("platform") or "youtube"),
            total_duration_seconds=int(row.get("total_duration") or 0),
            watch_duration_seconds=int(row.get("watch_duration") or 0),
            title=row.get("title") or "",
            status=row.get("status") or "unseen",
        )

    def with_watch_duration(self, seconds: int) -> "VideoRecord":
        return replace(self, watch_duration_seconds=seconds)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "platform": self.platform.value,
            "title": self.title,
            "status": self.status,
            "totalDuration": self.total_duration_seconds,
            "watchDuration": self.watch_duration_seconds,
        }


@dataclass(frozen=True)
class NativeEmbed:
    mode: ClassVar[PlayerMode] = PlayerMode.NATIVE
    platform: Platform
    embed_url: str = ""


@dataclass(frozen=True)
class LoadingFallback:
    mode: ClassVar[PlayerMode] = PlayerMode.LOADING_FALLBACK


@dataclass(frozen=True)
class FallbackVideo:
    mode: ClassVar[PlayerMode] = PlayerMode.FALLBACK_VIDEO
    url: str
    provider: str = ""


@dataclass(frozen=True)
class FallbackIframe:
    mode: ClassVar[PlayerMode] = PlayerMode.FALLBACK_IFRAME
    url: str
    provider: str = ""


@dataclass(frozen=True)
class PlaybackError:
    mode: ClassVar[PlayerMode] = PlayerMode.ERROR
    message: str = field(default="This video can't be played right now.")


@dataclass(frozen=True)
class Closed:
    mode: ClassVar[PlayerMode] = PlayerMode.CLOSED


PlayerState = Union[NativeEmbed, LoadingFallback, FallbackVideo, FallbackIframe, PlaybackError, Closed]

_TERMINAL = (FallbackVideo, FallbackIframe, PlaybackError, Closed)


def is_terminal(state: PlayerState) -> bool:
    """True once the session can no longer change mode on its own."""
    return isinstance(state, _TERMINAL)


def state_to_dict(state: PlayerState) -> dict:
    """JSON view of a state: always `mode`, plus the variant's own fields."""
    data = {"mode": state.mode.value}
    if isinstance(state, NativeEmbed):
        data["platform"] = state.platform.value
        data["embed_url"] = state.embed_url
    elif isinstance(state, (FallbackVideo, FallbackIframe)):
        data["url"] = state.url
        data["provider"] = state.provider
    elif isinstance(state, PlaybackError):
        data["message"] = state.message
    return data
