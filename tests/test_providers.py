"""Tests for player/providers.py — mirror clients against a mock transport."""

import asyncio
import random

import httpx
import pytest

from player.providers import ProviderClient, ProviderError, embed_page_url, shuffled

VID = "abc12345678"


def _call(handler, method, base):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = ProviderClient(client=http, timeout=2.0)
            return await getattr(client, method)(base, VID)
    return asyncio.run(scenario())


class TestDirectStream:
    def test_prefers_720p_webm(self):
        def handler(request):
            assert request.url.path == f"/streams/{VID}"
            return httpx.Response(200, json={"videoStreams": [
                {"quality": "360p", "format": "MPEG_4", "url": "https://cdn.example/360.mp4"},
                {"quality": "720p", "format": "MPEG_4", "url": "https://cdn.example/720.mp4"},
                {"quality": "720p", "format": "WEBM", "url": "https://cdn.example/720.webm"},
            ]})
        assert _call(handler, "direct_stream", "https://a.example") == "https://cdn.example/720.webm"

    def test_falls_back_to_first_stream(self):
        def handler(request):
            return httpx.Response(200, json={"videoStreams": [
                {"quality": "360p", "format": "MPEG_4", "url": "https://cdn.example/360.mp4"},
                {"quality": "1080p", "format": "WEBM", "url": "https://cdn.example/1080.webm"},
            ]})
        assert _call(handler, "direct_stream", "https://a.example") == "https://cdn.example/360.mp4"

    def test_relative_url_joined_to_base(self):
        def handler(request):
            return httpx.Response(200, json={"videoStreams": [
                {"quality": "720p", "format": "WEBM", "url": "/videoplayback?id=1"},
            ]})
        url = _call(handler, "direct_stream", "https://a.example/")
        assert url == "https://a.example/videoplayback?id=1"

    @pytest.mark.parametrize("response", [
        httpx.Response(503, text="down"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"videoStreams": []}),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"videoStreams": [{"quality": "720p", "format": "WEBM", "url": 123}]}),
        httpx.Response(200, json={"videoStreams": [{"quality": "720p", "format": "WEBM", "url": ["x"]}]}),
    ])
    def test_failures_become_provider_error(self, response):
        with pytest.raises(ProviderError) as exc:
            _call(lambda request: response, "direct_stream", "https://a.example")
        assert exc.value.provider == "https://a.example"

    def test_skips_entries_without_string_url(self):
        def handler(request):
            return httpx.Response(200, json={"videoStreams": [
                {"quality": "720p", "format": "WEBM", "url": 123},
                {"quality": "360p", "format": "MPEG_4", "url": "https://cdn.example/360.mp4"},
            ]})
        assert _call(handler, "direct_stream", "https://a.example") == "https://cdn.example/360.mp4"

    def test_status_message(self):
        with pytest.raises(ProviderError, match="responded with status 503"):
            _call(lambda r: httpx.Response(503), "direct_stream", "https://a.example")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)
        with pytest.raises(ProviderError, match="request failed"):
            _call(handler, "direct_stream", "https://a.example")


class TestMetadataStream:
    def test_prefers_720p_mp4(self):
        def handler(request):
            assert request.url.path == f"/api/v1/videos/{VID}"
            return httpx.Response(200, json={"formatStreams": [
                {"qualityLabel": "360p", "container": "mp4", "url": "https://b.example/360"},
                {"qualityLabel": "720p", "container": "mp4", "url": "https://b.example/720"},
            ]})
        assert _call(handler, "metadata_stream", "https://b.example") == "https://b.example/720"

    def test_missing_format_streams(self):
        with pytest.raises(ProviderError, match="no format streams"):
            _call(lambda r: httpx.Response(200, json={"title": "x"}), "metadata_stream", "https://b.example")

    def test_non_string_url_is_provider_error(self):
        payload = {"formatStreams": [{"qualityLabel": "720p", "container": "mp4", "url": {"href": "x"}}]}
        with pytest.raises(ProviderError, match="no format streams"):
            _call(lambda r: httpx.Response(200, json=payload), "metadata_stream", "https://b.example")


class TestHelpers:
    def test_embed_page_url(self):
        assert embed_page_url("https://b.example/", VID) == f"https://b.example/embed/{VID}?autoplay=1"

    def test_shuffle_copies_and_permutes(self):
        items = ["a", "b", "c", "d", "e"]
        out = shuffled(items, random.Random(1))
        assert sorted(out) == items
        assert items == ["a", "b", "c", "d", "e"]

    def test_shuffle_reproducible_with_seed(self):
        items = list(range(10))
        assert shuffled(items, random.Random(42)) == shuffled(items, random.Random(42))

    def test_shuffle_empty_and_single(self):
        assert shuffled([]) == []
        assert shuffled(["only"]) == ["only"]
