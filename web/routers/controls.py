"""Parental controls routes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from access.models import ParentalControls
from web.deps import get_controls_store
from web.helpers import ControlsRequest, current_user, enforce_access, error_response, parent_only
from utils import format_time_12h, parse_time_input

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/controls")
async def get_controls(request: Request):
    if current_user(request) is None:
        return error_response("unauthorized", 401)
    controls = get_controls_store(request).get_controls()
    data = controls.to_dict()
    data["hours"] = f"{format_time_12h(controls.schedule_start)} - {format_time_12h(controls.schedule_end)}"
    return JSONResponse(data)


@router.put("/api/controls")
async def save_controls(request: Request, body: ControlsRequest):
    """Save controls (parent only) and stop any playback they now forbid."""
    _, err = parent_only(request)
    if err:
        return err
    start = parse_time_input(body.schedule.start)
    end = parse_time_input(body.schedule.end)
    if start is None or end is None:
        return error_response("invalid_schedule", 400)
    try:
        controls = ParentalControls(
            is_enabled=body.isEnabled,
            daily_time_limit_minutes=body.dailyTimeLimit,
            schedule_start=start,
            schedule_end=end,
        )
    except ValueError as e:
        return error_response("invalid_controls", 400, detail=str(e))

    get_controls_store(request).save_controls(controls)
    closed = enforce_access(request.app.state)
    if closed:
        logger.info("Controls change closed %d session(s)", closed)
    return JSONResponse({**controls.to_dict(), "closed_sessions": closed})
