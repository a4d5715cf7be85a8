from __future__ import annotations

import asyncio

import httpx

from artindex.adapters.http_resilience import ResilienceConfig
from artindex.adapters.media import PROBE_HEAD_BYTES, HttpMediaProbe
from tests.support.http import Handler, make_client_factory

CONFIG = ResilienceConfig(name="media-probe", default_headers={"Range": "bytes=0-8191"})


def _probe(handler: Handler) -> HttpMediaProbe:
    return HttpMediaProbe(config=CONFIG, client_factory=make_client_factory(handler))


def test_probe_returns_content_type_and_head() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            206,
            headers={"Content-Type": "Image/PNG; charset=binary"},
            content=b"\x89PNG\r\n\x1a\n" + b"0" * (PROBE_HEAD_BYTES * 2),
        )

    result = asyncio.run(_probe(handler).probe("https://img.example/1.png"))

    assert result is not None
    assert result.content_type == "image/png"
    assert len(result.head) == PROBE_HEAD_BYTES
    assert result.head.startswith(b"\x89PNG")
    assert seen[0].headers["Range"] == "bytes=0-8191"


def test_probe_follows_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://img.example/new"})
        return httpx.Response(200, headers={"Content-Type": "video/mp4"}, content=b"")

    result = asyncio.run(_probe(handler).probe("https://img.example/old"))

    assert result is not None
    assert result.content_type == "video/mp4"


def test_probe_ignores_error_status_and_non_http_urls() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    probe = _probe(handler)

    assert asyncio.run(probe.probe("https://img.example/private.png")) is None
    assert asyncio.run(probe.probe("ar://arweave-id")) is None


def test_probe_closes_client_on_exit() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"{}")

    async def run() -> HttpMediaProbe:
        async with _probe(handler) as probe:
            result = await probe.probe("https://meta.example/1.json")
            assert result is not None
            assert result.content_type is None
        return probe

    probe = asyncio.run(run())

    assert probe._client is None  # noqa: SLF001
