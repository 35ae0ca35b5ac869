"""Shared models and helpers used across web routers."""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from access.gate import describe
from access.models import AccessDecision, LockReason, User
from access.quota import evaluate_now, remaining_seconds
from player.state import VideoRecord
from utils import get_today_str, now_local

logger = logging.getLogger(__name__)

_ERROR_MESSAGES = {
    "invalid_video": "That doesn't look like a supported video link.",
    "locked": "Videos are locked right now.",
}


class LoginRequest(BaseModel):
    profile_id: str = Field(max_length=50)
    pin: str = Field("", max_length=20)


class ProfileRequest(BaseModel):
    id: str = Field(min_length=1, max_length=50, pattern=r"^[a-z0-9_-]+$")
    display_name: str = Field(min_length=1, max_length=50)
    pin: str = Field("", max_length=20)


class AddVideoRequest(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    title: str = Field("", max_length=200)


class PlayerEventRequest(BaseModel):
    event: str
    code: Optional[int] = None


class ScheduleModel(BaseModel):
    start: str
    end: str


class ControlsRequest(BaseModel):
    """Same shape as ParentalControls.to_dict()."""
    isEnabled: bool
    dailyTimeLimit: int = Field(ge=0, le=1440)
    schedule: ScheduleModel


def error_response(error: str, status_code: int, **extra) -> JSONResponse:
    body = {"error": error}
    if error in _ERROR_MESSAGES:
        body["message"] = _ERROR_MESSAGES[error]
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


# ---------------------------------------------------------------------------
# Viewer
# ---------------------------------------------------------------------------

def user_for_profile(state, profile_id: Optional[str]) -> Optional[User]:
    if not profile_id:
        return None
    profile = state.video_store.get_profile(profile_id)
    return User.from_profile(profile) if profile else None


def current_user(request: Request) -> Optional[User]:
    """The signed-in family member, or None if the profile is gone."""
    return user_for_profile(request.app.state, request.session.get("profile_id"))


def parent_only(request: Request):
    """Returns (user, None) for a parent, or (None, error response)."""
    user = current_user(request)
    if user is None:
        return None, error_response("unauthorized", 401)
    if user.is_child:
        return None, error_response("forbidden", 403)
    return user, None


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------

def _tz(state) -> str:
    wl_cfg = getattr(state, "wl_config", None)
    return wl_cfg.timezone if wl_cfg else ""


def check_access(state, user: Optional[User]) -> tuple[AccessDecision, dict]:
    """Run the daily reset and the gate for `user`. Returns (decision, payload)."""
    tz = _tz(state)
    cs = state.controls_store
    controls = cs.get_controls()
    quota = cs.current_quota(get_today_str(tz))
    decision = evaluate_now(user, controls, quota, now_local(tz))
    limited = user is not None and user.is_child
    payload = {
        "locked": decision.locked,
        "reason": decision.reason.value if decision.reason else None,
        "message": describe(decision, controls),
        "remaining_sec": remaining_seconds(controls, quota) if limited else -1,
        "used_sec": quota.daily_watch_time_seconds,
    }
    return decision, payload


def enforce_access(state) -> int:
    """Close every open session whose viewer is locked right now.

    Runs after a controls save and from the periodic loop in main.py. The
    daily reset is applied first, so it lands at midnight even when nobody is
    watching.
    """
    state.controls_store.current_quota(get_today_str(_tz(state)))
    registry = state.registry
    closed = 0
    for session in registry.active():
        slot = registry.slot_of(session.session_id)
        user = user_for_profile(state, slot)
        decision, _ = check_access(state, user)
        if decision.locked:
            logger.info("Closing session %s for %s: %s",
                        session.session_id, slot, decision.reason.value)
            registry.close(session.session_id)
            closed += 1
    return closed


# ---------------------------------------------------------------------------
# Session callbacks
# ---------------------------------------------------------------------------

def _spawn(state, coro) -> None:
    tasks = state.background_tasks
    task = asyncio.get_running_loop().create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)


def make_time_update(state, user: User) -> Callable[[int], None]:
    """Timer callback: credit the shared quota, then lock in the same step.

    The slot's session is closed before returning, so no further tick can be
    credited once the gate says locked.
    """
    tz = _tz(state)

    def on_time_update(seconds: int) -> None:
        cs = state.controls_store
        quota = cs.add_watch_seconds(seconds, get_today_str(tz))
        controls = cs.get_controls()
        decision = evaluate_now(user, controls, quota, now_local(tz))
        if not decision.locked:
            return
        logger.info("Access locked for %s (%s), stopping playback", user.id, decision.reason.value)
        state.registry.close_slot(user.id)
        if decision.reason is LockReason.TIME_LIMIT:
            notifier = getattr(state, "notifier", None)
            wl_cfg = getattr(state, "wl_config", None)
            if notifier is not None and (wl_cfg is None or wl_cfg.notify_on_limit):
                _spawn(state, notifier.notify_time_limit_reached(
                    user.id, user.name, quota.daily_watch_time_seconds,
                    controls.daily_time_limit_minutes,
                ))

    return on_time_update


def make_video_update(state) -> Callable[[VideoRecord], None]:
    """Persist watch progress and seen status for the library entry."""
    def on_update_video(video: VideoRecord) -> None:
        state.video_store.update_video(
            video.id,
            watch_duration=video.watch_duration_seconds,
            status=video.status,
        )
    return on_update_video
