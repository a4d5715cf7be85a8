"""Ports describing how token data is fetched from remote providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from artindex.domain.ingest_pipeline.pagination import PaginationPolicy
    from artindex.domain.ingest_pipeline.rate_limiter import RateLimiter, RateLimiterConfig
    from artindex.domain.model import Provider, ProviderRecord


@dataclass(slots=True, frozen=True)
class RawPage:
    """One page of provider records plus the continuation token, if any.

    ``filtered`` counts items the adapter dropped on purpose (spam) and
    ``skipped`` counts items it could not parse; a page with either is not empty.
    """

    records: tuple[ProviderRecord, ...] = field(default_factory=tuple)
    next_cursor: str | None = None
    total_count: int | None = None
    skipped: int = 0
    filtered: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.records and not self.skipped and not self.filtered


@runtime_checkable
class ProviderAdapter(Protocol):
    """Fetch pages of owned tokens for a wallet from one upstream provider."""

    source: Provider
    limiter_config: RateLimiterConfig
    pagination_policy: PaginationPolicy

    async def fetch_page(
        self,
        wallet: str,
        *,
        page_size: int,
        cursor: str | None = None,
        enrichment: bool = False,
        enrichment_limiter: RateLimiter | None = None,
    ) -> RawPage: ...

    async def get_owned_count(self, wallet: str) -> int | None: ...


@dataclass(slots=True, frozen=True)
class MediaProbeResult:
    content_type: str | None = None
    head: bytes = b""


@runtime_checkable
class MediaProbe(Protocol):
    """Fetch the content type and leading bytes of a media URL."""

    async def probe(self, url: str) -> MediaProbeResult | None: ...
