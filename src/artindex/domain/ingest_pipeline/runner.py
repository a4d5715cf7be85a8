"""Wallet ingestion entry point: paginate, normalize, deduplicate."""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from .deduplication import deduplicate_records
from .normalization import Normalizer, source_tag
from .pagination import PaginationOrchestrator
from .rate_limiter import RateLimiter

if TYPE_CHECKING:
    from artindex.domain.model import ManualRecord, NormalizedRecord, Provider
    from artindex.domain.ports.fetching import ProviderAdapter

    from .mime import MimeSniffer
    from .rate_limiter import RateLimitPressure

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class IngestOptions:
    expected_count: int | None = None
    resolve_expected_count: bool = True
    enrichment: bool = False
    source_override: Provider | None = None


@dataclass(slots=True, frozen=True)
class IngestResult:
    wallet: str
    source: Provider
    records: list[NormalizedRecord]
    warnings: list[str]
    strategies_used: list[str]
    pages_processed: int = 0
    expected_count: int | None = None
    skipped: int = 0

    def queue_items(self, *, override: Provider | None = None) -> list[tuple[NormalizedRecord, Provider]]:
        """Pair each record with the source tag it should be queued under."""

        return [
            (record, source_tag(record, provider=self.source, override=override))
            for record in self.records
        ]


async def ingest_wallet(
    wallet: str,
    adapter: ProviderAdapter,
    *,
    options: IngestOptions | None = None,
    limiter: RateLimiter | None = None,
    pressure: RateLimitPressure | None = None,
    normalizer: Normalizer | None = None,
    sniffer: MimeSniffer | None = None,
) -> IngestResult:
    """Fetch, normalize and deduplicate everything ``wallet`` owns on ``adapter``.

    Provider problems never raise; they end up in ``warnings`` next to the
    records that could be fetched.
    """

    address = wallet.strip()
    if not address:
        raise ValueError("Wallet address must not be empty")
    active_options = options or IngestOptions()
    active_limiter = limiter or RateLimiter(
        adapter.limiter_config,
        pressure=pressure,
        name=str(adapter.source),
    )

    orchestrator = PaginationOrchestrator(adapter, active_limiter, normalizer=normalizer)
    paginated = await orchestrator.fetch_all(
        address,
        expected_count=active_options.expected_count,
        resolve_expected_count=active_options.resolve_expected_count,
        enrichment=active_options.enrichment,
    )
    records = deduplicate_records(paginated.records)
    if sniffer is not None:
        records = [await _with_mime(sniffer, record) for record in records]

    log.info(
        "Ingested %d records for %s from %s (strategies: %s, %d warnings)",
        len(records),
        address,
        adapter.source,
        ", ".join(paginated.strategies_used),
        len(paginated.warnings),
    )
    return IngestResult(
        wallet=address,
        source=active_options.source_override or adapter.source,
        records=records,
        warnings=paginated.warnings,
        strategies_used=paginated.strategies_used,
        pages_processed=paginated.pages_processed,
        expected_count=paginated.expected_count,
        skipped=paginated.skipped,
    )


async def normalize_manual_record(
    record: ManualRecord,
    *,
    normalizer: Normalizer | None = None,
    sniffer: MimeSniffer | None = None,
) -> tuple[NormalizedRecord, Provider]:
    """Normalize an operator-submitted record and work out its source tag."""

    normalized = (normalizer or Normalizer()).normalize(record)
    if sniffer is not None:
        normalized = await _with_mime(sniffer, normalized)
    return normalized, source_tag(normalized, override=record.source)


async def _with_mime(sniffer: MimeSniffer, record: NormalizedRecord) -> NormalizedRecord:
    if record.mime is not None:
        return record
    mime = await sniffer.detect_for(record)
    return record if mime is None else replace(record, mime=mime)
