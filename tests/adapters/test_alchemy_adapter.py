from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from artindex.adapters.alchemy import AlchemyAdapter
from artindex.adapters.http_resilience import ResilienceConfig
from artindex.config.providers import AlchemyConfig
from artindex.domain.ingest_pipeline import (
    PaginationOrchestrator,
    PaginationPolicy,
    ProviderShapeMismatch,
    RateLimiter,
    RateLimiterConfig,
    RateLimitPressure,
)
from artindex.domain.model import AlchemyRecord, Attribute, Blockchain
from tests.support.http import Handler, make_client_factory
from tests.support.providers import SleepRecorder
from tests.support.records import ARTIST_WALLET, CONTRACT, WALLET

BASE_URL = "https://base-mainnet.g.alchemy.test/nft/v3/test-key/"
SPAM_CONTRACT = "0x5a4a000000000000000000000000000000000005"
NO_DELAY = RateLimiterConfig(base_delay=0.0, max_delay=0.0, max_retries=1)


def _adapter(handler: Handler, **kwargs: Any) -> AlchemyAdapter:
    config = AlchemyConfig(
        api_key="test-key",
        network="base",
        resilience=ResilienceConfig(name="alchemy", base_url=BASE_URL),
    )
    return AlchemyAdapter(
        config=config,
        client_factory=make_client_factory(handler),
        limiter_config=NO_DELAY,
        **kwargs,
    )


def _nft(token_id: str, *, contract: str = CONTRACT, spam: bool = False, **overrides: object) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "contract": {
            "address": contract,
            "name": "Studies",
            "tokenType": "ERC721",
            "contractDeployer": "0xdeployer",
            "isSpam": spam,
            "spamClassifications": ["Erc721DishonestTotalSupply"] if spam else [],
            "openSeaMetadata": {
                "collectionName": "Studies",
                "collectionSlug": "studies",
                "imageUrl": "",
                "externalUrl": "https://studies.example",
            },
        },
        "tokenId": token_id,
        "tokenType": "ERC721",
        "name": f"Study #{token_id}",
        "description": "",
        "tokenUri": "",
        "image": {
            "originalUrl": f"ipfs://img/{token_id}.png",
            "cachedUrl": f"https://nft-cdn.test/{token_id}.png",
            "thumbnailUrl": f"https://nft-cdn.test/{token_id}-thumb.png",
            "contentType": "image/png",
        },
        "raw": {
            "tokenUri": f"ipfs://meta/{token_id}",
            "metadata": {
                "attributes": [
                    {"trait_type": "Width", "value": 1000},
                    {"trait_type": "Height", "value": 500},
                    "not a trait",
                ],
                "animation_url": "",
            },
        },
        "mint": {"mintAddress": ARTIST_WALLET, "blockNumber": 1, "timestamp": "2023-02-03T04:05:06Z"},
        "timeLastUpdated": "2024-01-01T00:00:00Z",
        "balance": "1",
    }
    payload.update(overrides)
    return payload


def test_fetch_page_builds_request_and_translates_items() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "ownedNfts": [_nft("1"), {"tokenId": "2"}],
                "pageKey": "next-key",
                "totalCount": 7,
            },
        )

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=250, cursor="key-1"))

    params = seen[0].url.params
    assert seen[0].url.path == "/nft/v3/test-key/getNFTsForOwner"
    assert params["owner"] == WALLET
    assert params["pageSize"] == "100"
    assert params["withMetadata"] == "true"
    assert params["pageKey"] == "key-1"
    assert page.next_cursor == "next-key"
    assert page.total_count == 7
    assert page.skipped == 1

    record = page.records[0]
    assert isinstance(record, AlchemyRecord)
    assert record.blockchain is Blockchain.BASE
    assert record.name == "Study #1"
    assert record.description is None
    assert record.token_uri == "ipfs://meta/1"
    assert record.original_url == "ipfs://img/1.png"
    assert record.animation_url is None
    assert record.balance == 1
    assert record.mint_timestamp == datetime(2023, 2, 3, 4, 5, 6, tzinfo=UTC)
    assert record.collection_slug == "studies"
    assert record.collection_external_url == "https://studies.example"
    assert record.collection_image_url is None
    assert record.creators.mint_address == ARTIST_WALLET
    assert record.creators.deployer_address == "0xdeployer"
    assert record.attributes == (Attribute("Width", "1000"), Attribute("Height", "500"))
    assert not record.spam


def test_fetch_page_filters_spam_when_enabled() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"ownedNfts": [_nft("1"), _nft("2", contract=SPAM_CONTRACT, spam=True)]},
        )

    kept = asyncio.run(_adapter(handler, filter_spam=True).fetch_page(WALLET, page_size=100))
    unfiltered = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=100))

    assert [record.token_id for record in kept.records] == ["1"]  # type: ignore[union-attr]
    assert len(unfiltered.records) == 2
    assert kept.next_cursor is None


def test_fetch_page_rejects_unexpected_envelope() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"nfts": []})

    with pytest.raises(ProviderShapeMismatch):
        asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=100))


def test_owned_count_reads_total_from_single_item_page() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ownedNfts": [], "totalCount": 42})

    assert asyncio.run(_adapter(handler).get_owned_count(WALLET)) == 42
    assert seen[0].url.params["pageSize"] == "1"
    assert seen[0].url.params["withMetadata"] == "false"


def test_owned_count_without_spam_walks_every_page() -> None:
    pages = {
        None: {
            "ownedNfts": [_nft("1"), _nft("2", contract=SPAM_CONTRACT, spam=True)],
            "pageKey": "p2",
            "totalCount": 3,
        },
        "p2": {"ownedNfts": [_nft("3")], "totalCount": 3},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("pageKey")])

    count = asyncio.run(_adapter(handler).get_owned_count(WALLET, filter_spam=True))

    assert count == 2


def test_enrichment_fills_deployer_from_contract_metadata() -> None:
    seen_paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_paths.append(request.url.path)
        if request.url.path.endswith("getNFTsForOwner"):
            item = _nft("1")
            item["contract"]["contractDeployer"] = None
            item["contract"]["openSeaMetadata"] = None
            item["tokenType"] = None
            item["contract"]["tokenType"] = ""
            return httpx.Response(200, json={"ownedNfts": [item]})
        assert request.url.params["contractAddress"] == CONTRACT
        return httpx.Response(
            200,
            json={
                "address": CONTRACT,
                "tokenType": "ERC1155",
                "contractDeployer": "0xfeed",
                "openSeaMetadata": {"collectionSlug": "studies-enriched"},
            },
        )

    page = asyncio.run(_adapter(handler).fetch_page(WALLET, page_size=100, enrichment=True))

    record = page.records[0]
    assert isinstance(record, AlchemyRecord)
    assert record.creators.deployer_address == "0xfeed"
    assert record.token_type == "ERC1155"
    assert record.collection_slug == "studies-enriched"
    assert record.collection_name == "Studies"
    assert seen_paths[-1].endswith("getContractMetadata")


def test_missing_contract_metadata_is_none() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    assert asyncio.run(_adapter(handler).get_contract_metadata(CONTRACT)) is None


def test_owned_count_stops_on_repeated_page_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ownedNfts": [_nft(str(len(seen)))], "pageKey": "loop"})

    count = asyncio.run(_adapter(handler).get_owned_count(WALLET, filter_spam=True))

    assert count is None
    assert len(seen) == 2


def test_owned_count_stops_at_page_limit() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ownedNfts": [_nft(str(len(seen)))], "pageKey": f"k{len(seen)}"})

    adapter = _adapter(handler, pagination_policy=PaginationPolicy(max_pages=2))
    count = asyncio.run(adapter.get_owned_count(WALLET, filter_spam=True))

    assert count is None
    assert len(seen) == 2


def test_spam_only_pages_are_walked_through() -> None:
    spam = [_nft(f"9{index}", contract=SPAM_CONTRACT, spam=True) for index in range(2)]
    pages: dict[str | None, dict[str, Any]] = {
        None: {"ownedNfts": spam, "pageKey": "k1", "totalCount": 8},
        "k1": {"ownedNfts": spam, "pageKey": "k2", "totalCount": 8},
        "k2": {"ownedNfts": spam, "pageKey": "k3", "totalCount": 8},
        "k3": {"ownedNfts": [_nft("1"), _nft("2")], "totalCount": 8},
    }
    requested: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.params.get("pageKey")
        requested.append(key)
        return httpx.Response(200, json=pages[key])

    adapter = _adapter(handler, filter_spam=True)
    limiter = RateLimiter(NO_DELAY, sleep=SleepRecorder(), clock=lambda: 0.0)
    policy = PaginationPolicy(page_size=2, page_delay=0.0, max_consecutive_empty_pages=3)
    orchestrator = PaginationOrchestrator(adapter, limiter, policy=policy)

    result = asyncio.run(orchestrator.fetch_all(WALLET))

    assert sorted(record.token_id for record in result.records) == ["1", "2"]
    assert result.expected_count == 2
    assert result.warnings == []
    assert requested.count("k3") == 2


def _rate_limited_metadata_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("getNFTsForOwner"):
        item = _nft("1")
        item["contract"]["contractDeployer"] = None
        return httpx.Response(200, json={"ownedNfts": [item]})
    return httpx.Response(429, headers={"Retry-After": "0"})


def test_enrichment_rate_limits_count_against_given_limiter() -> None:
    pressure = RateLimitPressure()
    limiter = RateLimiter(NO_DELAY, pressure=pressure, sleep=SleepRecorder(), clock=lambda: 0.0)

    page = asyncio.run(
        _adapter(_rate_limited_metadata_handler).fetch_page(
            WALLET, page_size=100, enrichment=True, enrichment_limiter=limiter
        )
    )

    record = page.records[0]
    assert isinstance(record, AlchemyRecord)
    assert record.creators.deployer_address is None
    assert pressure.hits == 1


def test_enrichment_without_limiter_uses_shared_pressure() -> None:
    pressure = RateLimitPressure()
    adapter = _adapter(_rate_limited_metadata_handler, pressure=pressure)

    asyncio.run(adapter.fetch_page(WALLET, page_size=100, enrichment=True))
    asyncio.run(adapter.fetch_page(WALLET, page_size=100, enrichment=True))

    assert pressure.hits == 2
