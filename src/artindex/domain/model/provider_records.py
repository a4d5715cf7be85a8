"""Typed per-provider token records.

Adapters validate raw JSON with their own pydantic schemas and translate the
result into one of these variants. The normalizer owns exactly one mapping
function per variant into :class:`~artindex.domain.model.records.NormalizedRecord`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .enums import Blockchain, Provider
    from .records import Attribute, CollectionInfo, Dimensions


@dataclass(slots=True, frozen=True)
class AccountProfile:
    """Creator profile as reported by a provider account lookup."""

    address: str
    username: str | None = None
    profile_image_url: str | None = None
    bio: str | None = None
    website: str | None = None


@dataclass(slots=True, frozen=True)
class OpenSeaRecord:
    """Token as returned by the cursor-paginated provider (OpenSea)."""

    contract: str
    identifier: str
    name: str | None = None
    description: str | None = None
    token_standard: str | None = None
    image_url: str | None = None
    display_image_url: str | None = None
    display_animation_url: str | None = None
    animation_url: str | None = None
    metadata_url: str | None = None
    collection_slug: str | None = None
    creator_address: str | None = None
    traits: tuple[Attribute, ...] = field(default_factory=tuple)
    creator_profile: AccountProfile | None = None
    collection: CollectionInfo | None = None
    chain: str | None = None


@dataclass(slots=True, frozen=True)
class CreatorCandidates:
    """Raw creator evidence gathered by the page-key provider, in no particular order."""

    mint_address: str | None = None
    deployer_address: str | None = None
    metadata_creator: str | None = None
    metadata_creator_name: str | None = None


@dataclass(slots=True, frozen=True)
class AlchemyRecord:
    """Token as returned by the page-key paginated provider (Alchemy)."""

    contract_address: str
    token_id: str
    blockchain: Blockchain
    name: str | None = None
    description: str | None = None
    token_type: str | None = None
    original_url: str | None = None
    cached_url: str | None = None
    png_url: str | None = None
    thumbnail_url: str | None = None
    animation_url: str | None = None
    token_uri: str | None = None
    balance: int | None = None
    mint_timestamp: datetime | None = None
    time_last_updated: datetime | None = None
    collection_slug: str | None = None
    collection_name: str | None = None
    collection_external_url: str | None = None
    collection_banner_url: str | None = None
    collection_image_url: str | None = None
    collection_description: str | None = None
    creators: CreatorCandidates = field(default_factory=CreatorCandidates)
    image_details: Mapping[str, object] | None = None
    metadata: Mapping[str, object] | None = None
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)
    spam: bool = False


@dataclass(slots=True, frozen=True)
class ManualRecord:
    """Token submitted by an operator, with loosely named optional fields."""

    contract_address: str
    token_id: str
    blockchain: Blockchain | None = None
    source: Provider | None = None
    fields: Mapping[str, object] = field(default_factory=dict)
    dimensions: Dimensions | None = None


type ProviderRecord = OpenSeaRecord | AlchemyRecord | ManualRecord
