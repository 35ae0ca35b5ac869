"""Authentication routes: PIN login, logout, the family roster."""

import hmac
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from access.models import ROLE_CHILD
from web.deps import get_registry, get_video_store
from web.helpers import LoginRequest, ProfileRequest, current_user, error_response, parent_only
from web.shared import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


def _public_profile(p: dict) -> dict:
    return {
        "id": p["id"],
        "display_name": p["display_name"],
        "role": p["role"],
        "has_pin": bool(p["pin"]),
    }


@router.post("/login")
@limiter.limit("5/minute")
async def login(request: Request, body: LoginRequest):
    """Validate the PIN and bind the profile to this session."""
    vs = get_video_store(request)
    profile = vs.get_profile(body.profile_id)
    if not profile:
        return error_response("unknown_profile", 404)

    if profile["pin"] and not hmac.compare_digest(body.pin.encode(), profile["pin"].encode()):
        logger.warning("Failed PIN for profile %s", profile["id"])
        return error_response("invalid_pin", 401)

    request.session.clear()
    request.session["profile_id"] = profile["id"]
    return JSONResponse(_public_profile(profile))


@router.post("/logout")
async def logout(request: Request):
    """Close the viewer's player and forget the profile."""
    profile_id = request.session.pop("profile_id", None)
    if profile_id:
        get_registry(request).close_slot(profile_id)
    return JSONResponse({"ok": True})


@router.get("/api/me")
async def me(request: Request):
    user = current_user(request)
    if user is None:
        return error_response("unauthorized", 401)
    return JSONResponse({"id": user.id, "display_name": user.name, "role": user.role})


@router.get("/api/profiles")
async def list_profiles(request: Request):
    vs = get_video_store(request)
    return JSONResponse([_public_profile(p) for p in vs.get_profiles()])


@router.post("/api/profiles")
async def create_profile(request: Request, body: ProfileRequest):
    """Add a child profile (parent only)."""
    _, err = parent_only(request)
    if err:
        return err
    vs = get_video_store(request)
    if not vs.create_profile(body.id, body.display_name, role=ROLE_CHILD, pin=body.pin):
        return error_response("profile_exists", 409)
    logger.info("Created child profile %s", body.id)
    return JSONResponse(_public_profile(vs.get_profile(body.id)), status_code=201)


@router.delete("/api/profiles/{profile_id}")
async def delete_profile(request: Request, profile_id: str):
    user, err = parent_only(request)
    if err:
        return err
    if profile_id == user.id:
        return error_response("cannot_delete_self", 400)
    get_registry(request).close_slot(profile_id)
    if not get_video_store(request).delete_profile(profile_id):
        return error_response("not_found", 404)
    return JSONResponse({"deleted": profile_id})
