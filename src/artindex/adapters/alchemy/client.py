"""Alchemy NFT API v3 adapter: page-key paginated ``getNFTsForOwner``."""

from __future__ import annotations

from dataclasses import replace
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
from artindex.domain.model import Blockchain, Provider
from artindex.domain.ports.fetching import RawPage

from .schema import ContractMetadataPayload, OwnedNftPayload, OwnedNftsResponse
from .translator import to_alchemy_record

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from artindex.config.http_resilience import ResilienceConfig
    from artindex.config.providers import AlchemyConfig
    from artindex.domain.model import AlchemyRecord

log = getLogger(__name__)

ALCHEMY_LIMITER_CONFIG = RateLimiterConfig(
    base_delay=0.2,
    max_delay=5.0,
    backoff_multiplier=2.0,
    max_retries=5,
    batch_size=10,
    adaptive_threshold=2,
)
ALCHEMY_PAGINATION_POLICY = PaginationPolicy(
    page_size=100,
    page_delay=0.3,
    alternate_page_sizes=(50,),
)
ALCHEMY_MAX_PAGE_SIZE = 100


class AlchemyAdapter:
    """Provider adapter for Alchemy's owner listing on one EVM network."""

    source = Provider.ALCHEMY

    def __init__(
        self,
        *,
        config: AlchemyConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        limiter_config: RateLimiterConfig | None = None,
        pagination_policy: PaginationPolicy | None = None,
        filter_spam: bool = False,
        pressure: RateLimitPressure | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self.limiter_config = limiter_config or ALCHEMY_LIMITER_CONFIG
        self.pagination_policy = pagination_policy or ALCHEMY_PAGINATION_POLICY
        self.filter_spam = filter_spam
        self._enrichment_limiter = RateLimiter(
            self.limiter_config, pressure=pressure, name="alchemy-enrichment"
        )
        self.blockchain = Blockchain(config.blockchain)
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> AlchemyAdapter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._config.resilience)
        return self._client

    async def fetch_page(
        self,
        wallet: str,
        *,
        page_size: int,
        cursor: str | None = None,
        enrichment: bool = False,
        enrichment_limiter: RateLimiter | None = None,
    ) -> RawPage:
        envelope = await self._owned_nfts(wallet, page_size=page_size, page_key=cursor)

        records: list[AlchemyRecord] = []
        skipped = 0
        spam = 0
        for item in envelope.owned_nfts:
            try:
                nft = OwnedNftPayload.model_validate(item)
            except ValidationError as exc:
                skipped += 1
                log.warning("Skipping malformed Alchemy item: %s", exc.errors()[0]["msg"])
                continue
            record = to_alchemy_record(nft, blockchain=self.blockchain)
            if self.filter_spam and record.spam:
                spam += 1
                continue
            records.append(record)
        if spam:
            log.info("Filtered %d spam tokens from Alchemy page", spam)

        if enrichment and records:
            records = await self.enrich(records, limiter=enrichment_limiter)
        return RawPage(
            records=tuple(records),
            next_cursor=envelope.page_key,
            total_count=envelope.total_count,
            skipped=skipped,
            filtered=spam,
        )

    async def get_owned_count(self, wallet: str, *, filter_spam: bool | None = None) -> int | None:
        """Return the wallet's token count.

        The cheap path reads ``totalCount`` from a one-item page and includes
        spam. With ``filter_spam`` every page is walked and spam is excluded.
        Defaults to the adapter's own ``filter_spam`` setting.

        The walk stops after ``pagination_policy.max_pages`` pages or when a
        page key comes back a second time; the count is unknown (``None``) then.
        """

        exclude_spam = self.filter_spam if filter_spam is None else filter_spam
        if not exclude_spam:
            envelope = await self._owned_nfts(wallet, page_size=1, page_key=None, with_metadata=False)
            return envelope.total_count

        count = 0
        page_key: str | None = None
        seen_keys: set[str] = set()
        for _ in range(self.pagination_policy.max_pages):
            envelope = await self._owned_nfts(wallet, page_size=ALCHEMY_MAX_PAGE_SIZE, page_key=page_key)
            for item in envelope.owned_nfts:
                try:
                    nft = OwnedNftPayload.model_validate(item)
                except ValidationError:
                    continue
                if not nft.contract.spam:
                    count += 1
            page_key = envelope.page_key
            if page_key is None:
                return count
            if page_key in seen_keys:
                log.warning(
                    "Alchemy repeated page key while counting %s; count unknown after %d tokens",
                    wallet,
                    count,
                )
                return None
            seen_keys.add(page_key)
        log.warning(
            "Alchemy count walk for %s hit the page limit (%d); count unknown",
            wallet,
            self.pagination_policy.max_pages,
        )
        return None

    async def get_contract_metadata(self, contract_address: str) -> ContractMetadataPayload | None:
        payload = await self.client.get_json(
            "getContractMetadata",
            params={"contractAddress": contract_address},
            allow_not_found=True,
        )
        if payload is None:
            return None
        try:
            return ContractMetadataPayload.model_validate(payload)
        except ValidationError as exc:
            raise ProviderShapeMismatch(f"Unexpected contract metadata for {contract_address}") from exc

    async def enrich(
        self,
        records: list[AlchemyRecord],
        *,
        limiter: RateLimiter | None = None,
    ) -> list[AlchemyRecord]:
        """Fill missing deployer and token type from contract metadata lookups."""

        contracts = sorted(
            {
                record.contract_address.lower()
                for record in records
                if record.creators.deployer_address is None or record.token_type is None
            }
        )
        if not contracts:
            return records
        active_limiter = limiter or self._enrichment_limiter
        results = await active_limiter.execute_batch(
            [partial(self.get_contract_metadata, contract) for contract in contracts],
            label="alchemy-contracts",
        )
        metadata = {
            contract: result.value
            for contract, result in zip(contracts, results, strict=True)
            if result.success and result.value is not None
        }
        return [_with_contract_metadata(record, metadata) for record in records]

    async def _owned_nfts(
        self,
        wallet: str,
        *,
        page_size: int,
        page_key: str | None,
        with_metadata: bool = True,
    ) -> OwnedNftsResponse:
        params: dict[str, str] = {
            "owner": wallet,
            "pageSize": str(min(page_size, ALCHEMY_MAX_PAGE_SIZE)),
            "withMetadata": "true" if with_metadata else "false",
        }
        if page_key:
            params["pageKey"] = page_key
        payload = await self.client.get_json("getNFTsForOwner", params=params)
        try:
            return OwnedNftsResponse.model_validate(payload)
        except ValidationError as exc:
            raise ProviderShapeMismatch(f"Unexpected Alchemy page shape: {exc}") from exc


def _with_contract_metadata(
    record: AlchemyRecord,
    metadata: dict[str, ContractMetadataPayload],
) -> AlchemyRecord:
    contract = metadata.get(record.contract_address.lower())
    if contract is None:
        return record
    creators = record.creators
    if creators.deployer_address is None and contract.contract_deployer:
        creators = replace(creators, deployer_address=contract.contract_deployer)
    opensea = contract.opensea_metadata
    return replace(
        record,
        creators=creators,
        token_type=record.token_type or contract.token_type,
        collection_slug=record.collection_slug or (opensea.collection_slug if opensea else None),
        collection_name=record.collection_name or (opensea.collection_name if opensea else None),
    )
