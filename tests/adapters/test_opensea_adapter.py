from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from artindex.adapters.http_resilience import ResilienceConfig
from artindex.adapters.opensea import OpenSeaAdapter, OpenSeaAPIError
from artindex.config.providers import OpenSeaConfig
from artindex.domain.ingest_pipeline import (
    ProviderShapeMismatch,
    RateLimitedError,
    RateLimiterConfig,
)
from artindex.domain.ingest_pipeline.normalization import normalize_opensea
from artindex.domain.model import Attribute, OpenSeaRecord
from tests.support.http import Handler, make_client_factory
from tests.support.records import ARTIST_WALLET, CONTRACT, WALLET

BASE_URL = "https://api.opensea.test/api/v2/"
NO_DELAY = RateLimiterConfig(base_delay=0.0, max_delay=0.0, max_retries=1)


def _config() -> OpenSeaConfig:
    return OpenSeaConfig(
        api_key="test-key",
        chain="ethereum",
        resilience=ResilienceConfig(name="opensea", base_url=BASE_URL),
        metadata_resilience=ResilienceConfig(name="opensea-metadata", base_url=BASE_URL),
    )


def _adapter(handler: Handler, **kwargs: Any) -> OpenSeaAdapter:
    return OpenSeaAdapter(
        config=_config(),
        client_factory=make_client_factory(handler),
        limiter_config=NO_DELAY,
        **kwargs,
    )


def _nft(identifier: str | int, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "identifier": identifier,
        "collection": "studies",
        "contract": CONTRACT,
        "token_standard": "erc721",
        "name": f"Study #{identifier}",
        "description": "",
        "image_url": f"https://i.seadn.test/{identifier}.png",
        "display_image_url": "",
        "metadata_url": f"ipfs://meta/{identifier}",
        "updated_at": "2024-02-03T04:05:06.000000",
        "is_disabled": False,
        "is_nsfw": False,
        "creator": ARTIST_WALLET,
        "traits": [
            {"trait_type": "Palette", "value": "Warm", "display_type": None},
            {"trait_type": "Edition", "value": 3},
            {"trait_type": "Empty", "value": None},
        ],
    }
    payload.update(overrides)
    return payload


def test_fetch_page_parses_items_and_cursor() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"nfts": [_nft("1"), {"identifier": "2"}], "next": "cursor-2"},
        )

    adapter = _adapter(handler)
    page = asyncio.run(adapter.fetch_page(WALLET, page_size=500))

    request = seen[0]
    assert request.url.path == f"/api/v2/chain/ethereum/account/{WALLET}/nfts"
    assert request.url.params["limit"] == "200"
    assert "next" not in request.url.params
    assert page.next_cursor == "cursor-2"
    assert page.skipped == 1
    assert len(page.records) == 1
    record = page.records[0]
    assert isinstance(record, OpenSeaRecord)
    assert record.identifier == "1"
    assert record.description is None
    assert record.display_image_url is None
    assert record.collection_slug == "studies"
    assert record.traits == (Attribute("Palette", "Warm"), Attribute("Edition", "3"))
    assert record.chain == "ethereum"


def test_fetch_page_passes_cursor_and_blank_next_ends_chain() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"nfts": [_nft(1)], "next": ""})

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=20, cursor="abc"))

    assert seen[0].url.params["next"] == "abc"
    assert seen[0].url.params["limit"] == "20"
    assert page.next_cursor is None
    assert page.records[0].identifier == "1"  # type: ignore[union-attr]


def test_fetch_page_rejects_unexpected_envelope() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"assets": []})

    with pytest.raises(ProviderShapeMismatch):
        asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=50))


def test_fetch_page_surfaces_rate_limit() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "3"})

    with pytest.raises(RateLimitedError) as excinfo:
        asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=50))

    assert excinfo.value.retry_after == 3.0


def test_fetch_page_with_enrichment_attaches_profiles_and_collections() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/nfts"):
            return httpx.Response(200, json={"nfts": [_nft("1"), _nft("2")]})
        if path == f"/api/v2/accounts/{ARTIST_WALLET}":
            return httpx.Response(
                200,
                json={"address": ARTIST_WALLET, "username": "painter", "bio": "", "website": None},
            )
        if path == "/api/v2/collections/studies":
            return httpx.Response(
                200,
                json={
                    "collection": "studies",
                    "name": "Studies",
                    "project_url": "",
                    "opensea_url": "https://opensea.io/collection/studies",
                    "contracts": [{"address": CONTRACT.upper().replace("0X", "0x"), "chain": "ethereum"}],
                },
            )
        return httpx.Response(404)

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=50, enrichment=True))

    for record in page.records:
        assert isinstance(record, OpenSeaRecord)
        assert record.creator_profile is not None
        assert record.creator_profile.username == "painter"
        assert record.creator_profile.bio is None
        assert record.collection is not None
        assert record.collection.title == "Studies"
        assert record.collection.contract_address == CONTRACT
        assert record.collection.external_url == "https://opensea.io/collection/studies"


def test_enrichment_failures_leave_records_untouched() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/nfts"):
            return httpx.Response(200, json={"nfts": [_nft("1")]})
        return httpx.Response(503)

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=50, enrichment=True))

    record = page.records[0]
    assert isinstance(record, OpenSeaRecord)
    assert record.creator_profile is None
    assert record.collection is None


def test_missing_account_is_remembered_for_a_minute() -> None:
    calls = 0
    now = 0.0

    def handler(_: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404, json={"errors": ["not found"]})

    adapter = _adapter(handler, clock=lambda: now)

    async def lookups() -> list[object]:
        first = await adapter.get_account(ARTIST_WALLET)
        second = await adapter.get_account(ARTIST_WALLET.upper().replace("0X", "0x"))
        return [first, second]

    assert asyncio.run(lookups()) == [None, None]
    assert calls == 1

    now = 61.0
    assert asyncio.run(adapter.get_account(ARTIST_WALLET)) is None
    assert calls == 2


def test_malformed_collection_raises_api_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "no slug"})

    with pytest.raises(OpenSeaAPIError):
        asyncio.run(_adapter(handler).get_collection("studies"))


def test_owned_count_is_unknown() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert asyncio.run(_adapter(handler).get_owned_count(WALLET)) is None


def test_listing_update_time_is_not_a_mint_date() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"nfts": [_nft("1")]})

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=50))

    record = page.records[0]
    assert isinstance(record, OpenSeaRecord)
    assert normalize_opensea(record).mint_date is None
