"""Video library routes: list, add by shared link, remove."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from player.state import VideoRecord
from web.deps import get_extractor, get_registry, get_video_store
from web.helpers import AddVideoRequest, current_user, error_response, parent_only
from web.shared import limiter
from youtube.extractor import format_duration, is_valid_video_url, parse_video_url, platform_display_name

logger = logging.getLogger(__name__)

router = APIRouter()


def _video_json(row: dict) -> dict:
    record = VideoRecord.from_row(row)
    data = record.to_dict()
    parsed = parse_video_url(record.url) if record.url else None
    data["platformName"] = platform_display_name(record.platform)
    data["duration"] = format_duration(row.get("total_duration"))
    data["thumbnail"] = parsed.thumbnail_url if parsed else None
    return data


@router.get("/api/videos")
async def list_videos(request: Request):
    if current_user(request) is None:
        return error_response("unauthorized", 401)
    return JSONResponse([_video_json(v) for v in get_video_store(request).get_videos()])


@router.post("/api/videos")
@limiter.limit("10/minute")
async def add_video(request: Request, body: AddVideoRequest):
    """Add a shared video link to the library (parent only)."""
    user, err = parent_only(request)
    if err:
        return err
    url = body.url.strip()
    if not is_valid_video_url(url):
        return error_response("invalid_video", 400)
    parsed = parse_video_url(url)

    metadata = await get_extractor(request).extract_metadata(url)
    if metadata is None:
        logger.warning("No metadata for %s, adding with defaults", url)
        metadata = {}
    title = body.title.strip() or metadata.get("title") or "Untitled video"

    row = get_video_store(request).add_video(
        video_id=parsed.video_id,
        url=url,
        title=title,
        platform=parsed.platform.value,
        total_duration=metadata.get("duration") or 0,
        added_by=user.id,
    )
    logger.info("Added %s video %s: %s", parsed.platform.value, parsed.video_id, title)
    return JSONResponse(_video_json(row), status_code=201)


@router.delete("/api/videos/{video_id}")
async def delete_video(request: Request, video_id: str):
    """Remove a video; any session playing it is closed first."""
    _, err = parent_only(request)
    if err:
        return err
    closed = get_registry(request).close_for_video(video_id)
    if not get_video_store(request).delete_video(video_id):
        return error_response("not_found", 404)
    return JSONResponse({"deleted": video_id, "closed_sessions": closed})
