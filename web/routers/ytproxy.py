"""YouTube script proxy routes: embed API loader + widget API."""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter()


async def _serve(request: Request, name: str) -> PlainTextResponse:
    body = await request.app.state.yt_scripts.get(name)
    if not body:
        body = f"// {name} API unavailable"
    return PlainTextResponse(body, media_type="application/javascript")


@router.get("/api/yt-iframe-api.js")
async def yt_iframe_api_proxy(request: Request):
    """Embed API loader with its widget URL rewritten to the local proxy."""
    return await _serve(request, "iframe")


@router.get("/api/yt-widget-api.js")
async def yt_widget_api_proxy(request: Request):
    return await _serve(request, "widget")
