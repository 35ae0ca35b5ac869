"""Tests for web/cache.py: the locally served YouTube embed scripts."""

import asyncio

import httpx

from web.cache import IFRAME_API_URL, YTScriptCache

LOADER = (
    "var scriptUrl = 'https:\\/\\/www.youtube.com\\/s\\/player\\/abc\\/www-widgetapi.vflset\\/www-widgetapi.js';"
    "try{var ttPolicy=window.trustedTypes}catch(e){}"
)
WIDGET_URL = "https://www.youtube.com/s/player/abc/www-widgetapi.vflset/www-widgetapi.js"


def _client(routes: dict, calls: list = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(503)
        return httpx.Response(200, text=body)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_loader_rewritten_to_local_proxy():
    cache = YTScriptCache(client=_client({IFRAME_API_URL: LOADER, WIDGET_URL: "/* widget */"}))
    iframe = asyncio.run(cache.get("iframe"))
    assert "var scriptUrl = '\\/api\\/yt-widget-api.js'" in iframe
    assert "www-widgetapi.js'" not in iframe
    assert cache.widget_url == WIDGET_URL
    assert cache.widget_api == "/* widget */"


def test_unexpected_widget_host_rejected():
    evil = "var scriptUrl = 'https:\\/\\/evil.example\\/widget.js';"
    calls = []
    cache = YTScriptCache(client=_client({IFRAME_API_URL: evil}, calls))
    iframe = asyncio.run(cache.get("iframe"))
    assert iframe == evil
    assert cache.widget_url is None
    assert calls == [IFRAME_API_URL]


def test_fresh_copy_served_without_refetch():
    calls = []
    cache = YTScriptCache(client=_client({IFRAME_API_URL: LOADER, WIDGET_URL: "w"}, calls))

    async def scenario():
        await cache.get("iframe")
        await cache.get("widget")
        await cache.get("iframe")

    asyncio.run(scenario())
    assert calls == [IFRAME_API_URL, WIDGET_URL]


def test_failed_refresh_keeps_stale_copy():
    routes = {IFRAME_API_URL: LOADER, WIDGET_URL: "w"}
    cache = YTScriptCache(ttl=-1, client=_client(routes))

    async def scenario():
        first = await cache.get("iframe")
        routes.clear()
        second = await cache.get("iframe")
        return first, second

    first, second = asyncio.run(scenario())
    assert first is not None
    assert second == first


def test_nothing_cached_and_upstream_down():
    cache = YTScriptCache(client=_client({}))
    assert asyncio.run(cache.get("widget")) is None
    assert cache.stale is True
