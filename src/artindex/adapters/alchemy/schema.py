"""Pydantic models describing the Alchemy NFT API v3 payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class AlchemyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OpenSeaMetadata(AlchemyBaseModel):
    collection_name: str | None = Field(default=None, alias="collectionName")
    collection_slug: str | None = Field(default=None, alias="collectionSlug")
    image_url: str | None = Field(default=None, alias="imageUrl")
    banner_image_url: str | None = Field(default=None, alias="bannerImageUrl")
    description: str | None = None
    external_url: str | None = Field(default=None, alias="externalUrl")

    _normalize_optional = field_validator(
        "collection_name",
        "collection_slug",
        "image_url",
        "banner_image_url",
        "description",
        "external_url",
        mode="before",
    )(_blank_to_none)


class ContractPayload(AlchemyBaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None
    token_type: str | None = Field(default=None, alias="tokenType")
    contract_deployer: str | None = Field(default=None, alias="contractDeployer")
    spam_classifications: list[str] = Field(default_factory=list, alias="spamClassifications")
    is_spam: bool | None = Field(default=None, alias="isSpam")
    opensea_metadata: OpenSeaMetadata | None = Field(default=None, alias="openSeaMetadata")

    _normalize_optional = field_validator("contract_deployer", "token_type", mode="before")(
        _blank_to_none
    )

    @property
    def spam(self) -> bool:
        return bool(self.is_spam) or bool(self.spam_classifications)


class ImagePayload(AlchemyBaseModel):
    original_url: str | None = Field(default=None, alias="originalUrl")
    cached_url: str | None = Field(default=None, alias="cachedUrl")
    png_url: str | None = Field(default=None, alias="pngUrl")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    content_type: str | None = Field(default=None, alias="contentType")

    _normalize_optional = field_validator(
        "original_url", "cached_url", "png_url", "thumbnail_url", "content_type", mode="before"
    )(_blank_to_none)


class RawPayload(AlchemyBaseModel):
    token_uri: str | None = Field(default=None, alias="tokenUri")
    metadata: dict[str, Any] | None = None

    _normalize_token_uri = field_validator("token_uri", mode="before")(_blank_to_none)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_object_only(cls, value: object) -> object:
        return value if isinstance(value, dict) else None


class MintPayload(AlchemyBaseModel):
    mint_address: str | None = Field(default=None, alias="mintAddress")
    block_number: int | None = Field(default=None, alias="blockNumber")
    timestamp: datetime | None = None
    transaction_hash: str | None = Field(default=None, alias="transactionHash")

    _normalize_optional = field_validator("mint_address", "timestamp", mode="before")(
        _blank_to_none
    )


class CollectionPayload(AlchemyBaseModel):
    name: str | None = None
    slug: str | None = None
    external_url: str | None = Field(default=None, alias="externalUrl")
    banner_image_url: str | None = Field(default=None, alias="bannerImageUrl")


class OwnedNftPayload(AlchemyBaseModel):
    contract: ContractPayload
    token_id: str = Field(alias="tokenId")
    token_type: str | None = Field(default=None, alias="tokenType")
    name: str | None = None
    title: str | None = None
    description: str | None = None
    token_uri: str | None = Field(default=None, alias="tokenUri")
    image: ImagePayload | None = None
    raw: RawPayload | None = None
    collection: CollectionPayload | None = None
    mint: MintPayload | None = None
    time_last_updated: datetime | None = Field(default=None, alias="timeLastUpdated")
    balance: int | None = None

    @field_validator("token_id", mode="before")
    @classmethod
    def _coerce_token_id(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    _normalize_optional = field_validator(
        "token_type",
        "name",
        "title",
        "description",
        "token_uri",
        "time_last_updated",
        "balance",
        mode="before",
    )(_blank_to_none)


class OwnedNftsResponse(AlchemyBaseModel):
    """Page envelope; ``ownedNfts`` is kept raw so one bad item does not reject the page."""

    owned_nfts: list[dict[str, Any]] = Field(alias="ownedNfts")
    page_key: str | None = Field(default=None, alias="pageKey")
    total_count: int | None = Field(default=None, alias="totalCount")

    _normalize_page_key = field_validator("page_key", mode="before")(_blank_to_none)


class ContractMetadataPayload(AlchemyBaseModel):
    address: str
    name: str | None = None
    token_type: str | None = Field(default=None, alias="tokenType")
    contract_deployer: str | None = Field(default=None, alias="contractDeployer")
    opensea_metadata: OpenSeaMetadata | None = Field(default=None, alias="openSeaMetadata")
