from __future__ import annotations

import asyncio

import httpx
import pytest

from artindex.adapters.http_resilience import (
    CacheConfig,
    ResilienceConfig,
    ResilientClient,
    raise_for_provider_status,
)
from artindex.domain.ingest_pipeline import (
    ProviderShapeMismatch,
    RateLimitedError,
    TransientNetworkError,
)
from tests.support.http import make_client_factory

CONFIG = ResilienceConfig(name="provider", base_url="https://api.provider.test/")


def _client(**responses: httpx.Response) -> ResilientClient:
    def respond(request: httpx.Request) -> httpx.Response:
        return responses[request.url.path.strip("/").replace("/", "_")]

    return make_client_factory(respond)(CONFIG)


def test_get_json_decodes_body() -> None:
    client = _client(items=httpx.Response(200, json={"ok": True}))

    assert asyncio.run(client.get_json("items")) == {"ok": True}


def test_get_json_allows_not_found() -> None:
    client = _client(missing=httpx.Response(404))

    assert asyncio.run(client.get_json("missing", allow_not_found=True)) is None
    with pytest.raises(TransientNetworkError) as excinfo:
        asyncio.run(client.get_json("missing"))
    assert excinfo.value.status_code == 404


def test_rate_limit_status_maps_to_rate_limited_error() -> None:
    client = _client(busy=httpx.Response(429, headers={"Retry-After": "soon"}))

    with pytest.raises(RateLimitedError) as excinfo:
        asyncio.run(client.get_json("busy"))

    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after is None


def test_non_json_body_is_shape_mismatch() -> None:
    client = _client(html=httpx.Response(200, text="<html>maintenance</html>"))

    with pytest.raises(ProviderShapeMismatch):
        asyncio.run(client.get_json("html"))


def test_transport_errors_become_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client_factory(handler)(CONFIG)

    with pytest.raises(TransientNetworkError, match="connection refused"):
        asyncio.run(client.get("anything"))


def test_raise_for_provider_status_passes_success() -> None:
    response = httpx.Response(204, request=httpx.Request("GET", "https://api.provider.test/x"))

    raise_for_provider_status(response, provider="provider")


def test_unsupported_cache_backend_is_rejected() -> None:
    config = ResilienceConfig(
        name="provider",
        cache=CacheConfig(backend="redis"),  # type: ignore[arg-type]
    )

    with pytest.raises(ValueError, match="Unsupported cache backend"):
        ResilientClient(config)
