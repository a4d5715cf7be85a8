"""OpenSea v2 adapter: cursor-paginated wallet listing plus metadata enrichment."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from artindex.adapters.http_resilience import ResilientClient
from artindex.domain.ingest_pipeline.errors import ProviderShapeMismatch
from artindex.domain.ingest_pipeline.pagination import PaginationPolicy
from artindex.domain.ingest_pipeline.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
    RateLimitPressure,
)
from artindex.domain.model import Provider
from artindex.domain.ports.fetching import RawPage

from .schema import AccountPayload, CollectionPayload, NftListResponse, NftPayload
from .translator import enrich_record, to_account_profile, to_collection_info, to_opensea_record

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from artindex.config.http_resilience import ResilienceConfig
    from artindex.config.providers import OpenSeaConfig
    from artindex.domain.model import AccountProfile, CollectionInfo, OpenSeaRecord

log = getLogger(__name__)

OPENSEA_LIMITER_CONFIG = RateLimiterConfig(
    base_delay=1.0,
    max_delay=10.0,
    backoff_multiplier=1.5,
    max_retries=5,
    batch_size=10,
    adaptive_threshold=5,
)
OPENSEA_MAX_PAGE_SIZE = 200
NEGATIVE_CACHE_SECONDS = 60.0


class OpenSeaAPIError(RuntimeError):
    """Raised when OpenSea answers with a body that does not match its schema."""


@dataclass(slots=True)
class _MissCache:
    """Remembers failed metadata lookups for a short while."""

    ttl_seconds: float
    clock: Callable[[], float] = time.monotonic
    _expires: dict[str, float] = field(default_factory=dict)

    def remember(self, key: str) -> None:
        self._expires[key] = self.clock() + self.ttl_seconds

    def __contains__(self, key: str) -> bool:
        expires = self._expires.get(key)
        if expires is None:
            return False
        if expires <= self.clock():
            del self._expires[key]
            return False
        return True


class OpenSeaAdapter:
    """Provider adapter for the OpenSea ``account/{wallet}/nfts`` listing."""

    source = Provider.OPENSEA

    def __init__(
        self,
        *,
        config: OpenSeaConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        limiter_config: RateLimiterConfig | None = None,
        pagination_policy: PaginationPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        pressure: RateLimitPressure | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self.limiter_config = limiter_config or OPENSEA_LIMITER_CONFIG
        self.pagination_policy = pagination_policy or PaginationPolicy()
        self._enrichment_limiter = RateLimiter(
            self.limiter_config, pressure=pressure, name="opensea-enrichment"
        )
        self._client: ResilientClient | None = None
        self._metadata_client: ResilientClient | None = None
        self._missing_accounts = _MissCache(NEGATIVE_CACHE_SECONDS, clock)
        self._missing_collections = _MissCache(NEGATIVE_CACHE_SECONDS, clock)

    async def __aenter__(self) -> OpenSeaAdapter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in (self._client, self._metadata_client):
            if client is not None:
                await client.aclose()
        self._client = None
        self._metadata_client = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._config.resilience)
        return self._client

    @property
    def metadata_client(self) -> ResilientClient:
        if self._metadata_client is None:
            self._metadata_client = self._client_factory(self._config.metadata_resilience)
        return self._metadata_client

    async def fetch_page(
        self,
        wallet: str,
        *,
        page_size: int,
        cursor: str | None = None,
        enrichment: bool = False,
        enrichment_limiter: RateLimiter | None = None,
    ) -> RawPage:
        params: dict[str, str] = {"limit": str(min(page_size, OPENSEA_MAX_PAGE_SIZE))}
        if cursor:
            params["next"] = cursor
        payload = await self.client.get_json(
            f"chain/{self._config.chain}/account/{wallet}/nfts",
            params=params,
        )
        try:
            envelope = NftListResponse.model_validate(payload)
        except ValidationError as exc:
            raise ProviderShapeMismatch(f"Unexpected OpenSea page shape: {exc}") from exc

        records: list[OpenSeaRecord] = []
        skipped = 0
        for item in envelope.nfts:
            try:
                nft = NftPayload.model_validate(item)
            except ValidationError as exc:
                skipped += 1
                log.warning("Skipping malformed OpenSea item: %s", exc.errors()[0]["msg"])
                continue
            records.append(to_opensea_record(nft, chain=self._config.chain))

        if enrichment and records:
            records = await self.enrich(records, limiter=enrichment_limiter)
        return RawPage(records=tuple(records), next_cursor=envelope.next, skipped=skipped)

    async def get_owned_count(self, wallet: str) -> int | None:  # noqa: ARG002
        """OpenSea does not report a total for account listings."""

        return None

    async def get_account(self, address: str) -> AccountProfile | None:
        key = address.lower()
        if key in self._missing_accounts:
            return None
        payload = await self.metadata_client.get_json(f"accounts/{key}", allow_not_found=True)
        if payload is None:
            self._missing_accounts.remember(key)
            return None
        try:
            return to_account_profile(AccountPayload.model_validate(payload))
        except ValidationError as exc:
            self._missing_accounts.remember(key)
            raise OpenSeaAPIError(f"Unexpected account payload for {address}") from exc

    async def get_collection(self, slug: str) -> CollectionInfo | None:
        if slug in self._missing_collections:
            return None
        payload = await self.metadata_client.get_json(f"collections/{slug}", allow_not_found=True)
        if payload is None:
            self._missing_collections.remember(slug)
            return None
        try:
            return to_collection_info(CollectionPayload.model_validate(payload))
        except ValidationError as exc:
            self._missing_collections.remember(slug)
            raise OpenSeaAPIError(f"Unexpected collection payload for {slug}") from exc

    async def enrich(
        self,
        records: list[OpenSeaRecord],
        *,
        limiter: RateLimiter | None = None,
    ) -> list[OpenSeaRecord]:
        """Attach creator profiles and collection details to ``records``.

        Lookups that fail after retries leave the affected records untouched.
        """

        active_limiter = limiter or self._enrichment_limiter
        creators = sorted({r.creator_address.lower() for r in records if r.creator_address})
        slugs = sorted({r.collection_slug for r in records if r.collection_slug})

        creator_results = await active_limiter.execute_batch(
            [partial(self.get_account, address) for address in creators],
            label="opensea-accounts",
        )
        collection_results = await active_limiter.execute_batch(
            [partial(self.get_collection, slug) for slug in slugs],
            label="opensea-collections",
        )

        profiles = {
            address: result.value
            for address, result in zip(creators, creator_results, strict=True)
            if result.success and result.value is not None
        }
        collections = {
            slug: result.value
            for slug, result in zip(slugs, collection_results, strict=True)
            if result.success and result.value is not None
        }
        log.debug(
            "Enriched OpenSea page with %d/%d profiles and %d/%d collections",
            len(profiles),
            len(creators),
            len(collections),
            len(slugs),
        )
        return [enrich_record(r, profiles=profiles, collections=collections) for r in records]
