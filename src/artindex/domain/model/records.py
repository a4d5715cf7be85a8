"""Canonical token record produced by the ingestion pipeline.

A :class:`NormalizedRecord` is immutable. ``None`` (or an empty tuple for
``attributes``) means *unknown*; merging two records of the same identity only
ever fills unknown fields, see :func:`artindex.domain.ingest_pipeline.deduplication.merge_records`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003

from .enums import Blockchain, ResolutionSource

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def identity_key(contract_address: str, token_id: str) -> str:
    """Return the case-normalised ``contract:token`` identity key."""

    return f"{contract_address.strip().lower()}:{token_id.strip()}"


@dataclass(slots=True, frozen=True)
class Dimensions:
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class Attribute:
    trait_type: str
    value: str


@dataclass(slots=True, frozen=True)
class Creator:
    address: str
    resolution_source: ResolutionSource
    username: str | None = None
    profile_image_url: str | None = None
    bio: str | None = None
    website: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", self.address.strip().lower())


@dataclass(slots=True, frozen=True)
class CollectionInfo:
    slug: str
    title: str | None = None
    contract_address: str | None = None
    description: str | None = None
    external_url: str | None = None
    image_url: str | None = None
    banner_image_url: str | None = None


@dataclass(slots=True, frozen=True)
class NormalizedRecord:
    contract_address: str
    token_id: str
    blockchain: Blockchain
    title: str | None = None
    description: str | None = None
    token_standard: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    animation_url: str | None = None
    generator_url: str | None = None
    metadata_url: str | None = None
    mime: str | None = None
    supply: int | None = None
    mint_date: datetime | None = None
    dimensions: Dimensions | None = None
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)
    creator: Creator | None = None
    collection: CollectionInfo | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "contract_address", self.contract_address.strip().lower())
        object.__setattr__(self, "token_id", str(self.token_id).strip())

    @property
    def identity_key(self) -> str:
        return identity_key(self.contract_address, self.token_id)

    @property
    def identity(self) -> tuple[str, str, Blockchain]:
        return (self.contract_address, self.token_id, self.blockchain)
