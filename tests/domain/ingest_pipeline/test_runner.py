from __future__ import annotations

import asyncio

import pytest

from artindex.domain.ingest_pipeline import (
    PRIMARY_STRATEGY,
    IngestOptions,
    MimeSniffer,
    PaginationPolicy,
    RateLimiter,
    ingest_wallet,
    normalize_manual_record,
)
from artindex.domain.model import Blockchain, ManualRecord, Provider
from artindex.domain.ports.fetching import MediaProbeResult
from tests.support.providers import (
    FAST_LIMITER,
    ScriptedAdapter,
    SleepRecorder,
    alchemy_pages,
    cursor_script,
)
from tests.support.records import WALLET


class GifProbe:
    async def probe(self, url: str) -> MediaProbeResult | None:
        _ = url
        return MediaProbeResult(content_type="image/gif")


def _limiter() -> RateLimiter:
    return RateLimiter(FAST_LIMITER, sleep=SleepRecorder(), clock=lambda: 0.0)


def _adapter(token_ids: list[str], page_size: int = 2) -> ScriptedAdapter:
    return ScriptedAdapter(
        script=cursor_script(alchemy_pages(token_ids, page_size)),
        owned_count=len(token_ids),
        pagination_policy=PaginationPolicy(page_size=page_size),
    )


def test_ingest_wallet_happy_path() -> None:
    result = asyncio.run(ingest_wallet(f"  {WALLET} ", _adapter(["1", "2", "3"]), limiter=_limiter()))

    assert result.wallet == WALLET
    assert result.source is Provider.ALCHEMY
    assert [record.token_id for record in result.records] == ["1", "2", "3"]
    assert result.strategies_used == [PRIMARY_STRATEGY]
    assert result.warnings == []
    assert result.expected_count == 3
    assert result.pages_processed == 2
    assert {source for _record, source in result.queue_items()} == {Provider.ALCHEMY}


def test_ingest_wallet_source_override() -> None:
    result = asyncio.run(
        ingest_wallet(
            WALLET,
            _adapter(["1"]),
            options=IngestOptions(source_override=Provider.MANUAL),
            limiter=_limiter(),
        )
    )

    assert result.source is Provider.MANUAL
    assert [source for _record, source in result.queue_items()] == [Provider.MANUAL]


def test_ingest_wallet_sniffs_missing_mime() -> None:
    result = asyncio.run(
        ingest_wallet(WALLET, _adapter(["1", "2"]), limiter=_limiter(), sniffer=MimeSniffer(GifProbe()))
    )

    assert [record.mime for record in result.records] == ["image/gif", "image/gif"]


def test_ingest_wallet_rejects_blank_wallet() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        asyncio.run(ingest_wallet("   ", _adapter(["1"]), limiter=_limiter()))


def test_normalize_manual_record_tags_by_chain() -> None:
    record = ManualRecord(
        contract_address="KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton",
        token_id="5",
        fields={"name": "Objkt", "display_uri": "https://img.example/5.png"},
    )

    normalized, source = asyncio.run(normalize_manual_record(record))

    assert normalized.blockchain is Blockchain.TEZOS
    assert source is Provider.OBJKT


def test_normalize_manual_record_respects_explicit_source() -> None:
    record = ManualRecord(
        contract_address="0xabc",
        token_id="5",
        source=Provider.MANUAL,
        fields={"image_url": "https://img.example/5.webp"},
    )

    normalized, source = asyncio.run(
        normalize_manual_record(record, sniffer=MimeSniffer())
    )

    assert source is Provider.MANUAL
    assert normalized.mime == "image/webp"
