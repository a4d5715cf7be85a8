"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import AsyncExitStack
from logging import getLogger
from typing import TYPE_CHECKING

from artindex.adapters.alchemy import AlchemyAdapter
from artindex.adapters.media import HttpMediaProbe
from artindex.adapters.opensea import OpenSeaAdapter
from artindex.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIndexingUnitOfWork,
    is_started,
    startup,
)
from artindex.config import get_alchemy_config, get_ingest_config, get_opensea_config
from artindex.config.ingest import SUPPORTED_PROVIDERS
from artindex.domain.ingest_pipeline import (
    IndexQueue,
    IngestOptions,
    MimeSniffer,
    QueueProcessor,
    RateLimitPressure,
)
from artindex.domain.ingest_pipeline import ingest_wallet as run_ingest
from artindex.domain.ingest_pipeline import normalize_manual_record
from artindex.domain.model import ImportStatus
from artindex.domain.ports.unit_of_work import IndexingUnitOfWork

if TYPE_CHECKING:
    from uuid import UUID

    from artindex.domain.ingest_pipeline import IngestResult, QueueRunSummary
    from artindex.domain.ingest_pipeline.queue import EnqueueSummary
    from artindex.domain.model import ManualRecord, NormalizedRecord, Provider
    from artindex.domain.ports.fetching import MediaProbe, ProviderAdapter

UnitOfWorkFactory = Callable[[], IndexingUnitOfWork]

log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_adapter(
    provider: str,
    *,
    filter_spam: bool = False,
    pressure: RateLimitPressure | None = None,
) -> OpenSeaAdapter | AlchemyAdapter:
    """Return the configured adapter for ``provider`` (``opensea`` or ``alchemy``)."""

    name = provider.strip().lower()
    if name == "opensea":
        return OpenSeaAdapter(config=get_opensea_config(), pressure=pressure)
    if name == "alchemy":
        return AlchemyAdapter(
            config=get_alchemy_config(), filter_spam=filter_spam, pressure=pressure
        )
    raise ValueError(
        f"Unsupported provider {provider!r} (expected one of {', '.join(SUPPORTED_PROVIDERS)})"
    )


def ingest_wallet(
    wallet: str,
    *,
    provider: str | None = None,
    adapter: ProviderAdapter | None = None,
    expected_count: int | None = None,
    enrichment: bool = False,
    filter_spam: bool = False,
    sniff_mime: bool | None = None,
    probe: MediaProbe | None = None,
    pressure: RateLimitPressure | None = None,
) -> IngestResult:
    """Fetch, normalize and deduplicate every token ``wallet`` holds on one provider."""

    settings = get_ingest_config()
    shared_pressure = pressure or RateLimitPressure()
    effective_adapter = adapter or build_adapter(
        provider or settings.provider, filter_spam=filter_spam, pressure=shared_pressure
    )
    sniff = settings.sniff_mime if sniff_mime is None else sniff_mime
    options = IngestOptions(expected_count=expected_count, enrichment=enrichment)
    log.info(
        "Starting ingest: wallet=%s, provider=%s, expected=%s, enrichment=%s, sniff_mime=%s",
        wallet,
        effective_adapter.source,
        expected_count,
        enrichment,
        sniff,
    )
    return asyncio.run(
        _ingest_async(
            wallet,
            effective_adapter,
            options=options,
            sniff=sniff,
            probe=probe,
            pressure=shared_pressure,
        )
    )


async def _ingest_async(
    wallet: str,
    adapter: ProviderAdapter,
    *,
    options: IngestOptions,
    sniff: bool,
    probe: MediaProbe | None,
    pressure: RateLimitPressure,
) -> IngestResult:
    async with AsyncExitStack() as stack:
        if isinstance(adapter, OpenSeaAdapter | AlchemyAdapter):
            await stack.enter_async_context(adapter)
        sniffer: MimeSniffer | None = None
        if sniff:
            active_probe = probe
            if active_probe is None:
                active_probe = await stack.enter_async_context(HttpMediaProbe())
            sniffer = MimeSniffer(active_probe)
        return await run_ingest(
            wallet,
            adapter,
            options=options,
            pressure=pressure,
            sniffer=sniffer,
        )


def ingest_and_enqueue(
    wallet: str,
    *,
    provider: str | None = None,
    adapter: ProviderAdapter | None = None,
    expected_count: int | None = None,
    enrichment: bool = False,
    filter_spam: bool = False,
    sniff_mime: bool | None = None,
    probe: MediaProbe | None = None,
    pressure: RateLimitPressure | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[IngestResult, EnqueueSummary]:
    """Ingest ``wallet`` and upsert every resulting record into the index queue."""

    _ensure_started()
    result = ingest_wallet(
        wallet,
        provider=provider,
        adapter=adapter,
        expected_count=expected_count,
        enrichment=enrichment,
        filter_spam=filter_spam,
        sniff_mime=sniff_mime,
        probe=probe,
        pressure=pressure,
    )
    queue = IndexQueue(unit_of_work_factory or SqlAlchemyIndexingUnitOfWork)
    summary = queue.enqueue_many(result.queue_items(), indexed_wallet=result.wallet)
    log.info(
        "Finished ingest for %s: records=%d, queued_new=%d, merged=%d, warnings=%d",
        result.wallet,
        len(result.records),
        summary.created,
        summary.merged,
        len(result.warnings),
    )
    return result, summary


def submit_manual_record(
    record: ManualRecord,
    *,
    indexed_wallet: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sniff_mime: bool = False,
    probe: MediaProbe | None = None,
) -> UUID:
    """Normalize an operator-submitted token and upsert it into the index queue."""

    _ensure_started()

    async def normalize() -> tuple[NormalizedRecord, Provider]:
        if not sniff_mime:
            return await normalize_manual_record(record)
        if probe is not None:
            return await normalize_manual_record(record, sniffer=MimeSniffer(probe))
        async with HttpMediaProbe() as http_probe:
            return await normalize_manual_record(record, sniffer=MimeSniffer(http_probe))

    normalized, source = asyncio.run(normalize())
    queue = IndexQueue(unit_of_work_factory or SqlAlchemyIndexingUnitOfWork)
    return queue.enqueue(normalized, source, indexed_wallet=indexed_wallet)


def process_queue(
    *,
    status: ImportStatus = ImportStatus.PENDING,
    limit: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> QueueRunSummary:
    """Materialize queued records into catalog entities."""

    _ensure_started()
    effective_limit = limit if limit is not None else get_ingest_config().queue_batch_limit
    processor = QueueProcessor(unit_of_work_factory or SqlAlchemyIndexingUnitOfWork)
    return processor.process_queue(status=status, limit=effective_limit)


def queue_stats(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> dict[ImportStatus, int]:
    _ensure_started()
    return IndexQueue(unit_of_work_factory or SqlAlchemyIndexingUnitOfWork).stats()
