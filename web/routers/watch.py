"""Access checks and playback session routes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from player.state import VideoRecord
from web.deps import get_registry, get_session_factory, get_video_store
from web.helpers import (
    PlayerEventRequest, check_access, current_user, error_response,
    make_time_update, make_video_update,
)
from web.shared import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/access")
async def access_status(request: Request):
    """Lock state for the signed-in viewer (runs the daily reset)."""
    user = current_user(request)
    if user is None:
        return error_response("unauthorized", 401)
    _, payload = check_access(request.app.state, user)
    return JSONResponse(payload)


@router.post("/api/videos/{video_id}/play")
@limiter.limit("30/minute")
async def play_video(request: Request, video_id: str):
    """Open a playback session for a library video, unless access is locked."""
    user = current_user(request)
    if user is None:
        return error_response("unauthorized", 401)
    row = get_video_store(request).get_video(video_id)
    if not row:
        return error_response("not_found", 404)

    state = request.app.state
    decision, payload = check_access(state, user)
    if decision.locked:
        return error_response("locked", 403, reason=payload["reason"], access=payload)

    factory = get_session_factory(request)
    session = factory(
        VideoRecord.from_row(row),
        make_time_update(state, user),
        make_video_update(state),
        role=user.role,
    )
    get_registry(request).open(user.id, session)
    return JSONResponse(session.snapshot(), status_code=201)


def _own_session(request: Request, session_id: str):
    """The session if it belongs to the signed-in viewer."""
    user = current_user(request)
    registry = get_registry(request)
    if user is None or registry.slot_of(session_id) != user.id:
        return None
    return registry.get(session_id)


@router.get("/api/sessions/{session_id}")
async def get_session(request: Request, session_id: str):
    session = _own_session(request, session_id)
    if session is None:
        return error_response("not_found", 404)
    return JSONResponse(session.snapshot())


@router.post("/api/sessions/{session_id}/events")
async def session_event(request: Request, session_id: str, body: PlayerEventRequest):
    """Relay a client player event (ready, state change, error, media play/pause...)."""
    session = _own_session(request, session_id)
    if session is None:
        return error_response("not_found", 404)
    try:
        result = session.dispatch(body.event, body.code)
    except ValueError:
        return error_response("unknown_event", 400, event=body.event)
    data = session.snapshot()
    if result is not None:
        data["result"] = result
    return JSONResponse(data)


@router.delete("/api/sessions/{session_id}")
async def close_session(request: Request, session_id: str):
    if _own_session(request, session_id) is None:
        return error_response("not_found", 404)
    get_registry(request).close(session_id)
    return JSONResponse({"closed": session_id})
