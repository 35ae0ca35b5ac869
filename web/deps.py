"""FastAPI dependency providers: read from app.state, set by main.py."""

from fastapi import Request

from data.controls_store import ControlsStore
from player.registry import SessionRegistry


def get_video_store(request: Request):
    """VideoStore instance."""
    return request.app.state.video_store


def get_controls_store(request: Request) -> ControlsStore:
    """Parental controls and the shared watch quota."""
    return request.app.state.controls_store


def get_registry(request: Request) -> SessionRegistry:
    """Open playback sessions."""
    return request.app.state.registry


def get_session_factory(request: Request):
    """Builds a PlaybackSession for a video (see player.engine.make_session_factory)."""
    return request.app.state.session_factory


def get_extractor(request: Request):
    """Video metadata extractor (VideoMetadataProtocol)."""
    return request.app.state.extractor


def get_web_config(request: Request):
    """WebConfig instance."""
    return request.app.state.web_config


def get_wl_config(request: Request):
    """WatchLimitsConfig instance."""
    return request.app.state.wl_config


def get_notifier(request: Request):
    """LimitNotifier, or None when Telegram is not configured."""
    return getattr(request.app.state, "notifier", None)
