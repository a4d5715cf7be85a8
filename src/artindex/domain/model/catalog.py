"""Catalog entities materialized from the index queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .enums import Blockchain, OwnershipType

if TYPE_CHECKING:
    from .records import NormalizedRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Artist:
    wallet_address: str
    name: str
    id: UUID = field(default_factory=uuid4)
    profile_image_url: str | None = None
    bio: str | None = None
    website: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(eq=False, kw_only=True)
class Collection:
    slug: str
    title: str
    id: UUID = field(default_factory=uuid4)
    contract_address: str | None = None
    blockchain: Blockchain | None = None
    description: str | None = None
    external_url: str | None = None
    image_url: str | None = None
    banner_image_url: str | None = None
    artists: list[Artist] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def link_artist(self, artist: Artist) -> None:
        if all(existing.id != artist.id for existing in self.artists):
            self.artists.append(artist)


@dataclass(eq=False, kw_only=True)
class Artwork:
    contract_address: str
    token_id: str
    blockchain: Blockchain
    title: str
    id: UUID = field(default_factory=uuid4)
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
    width: int | None = None
    height: int | None = None
    attributes: list[dict[str, str]] = field(default_factory=list)
    ownership: OwnershipType = OwnershipType.OWNED
    owner_wallets: list[str] = field(default_factory=list)
    collection: Collection | None = None
    artists: list[Artist] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def link_artist(self, artist: Artist) -> None:
        if all(existing.id != artist.id for existing in self.artists):
            self.artists.append(artist)

    def add_owner(self, wallet: str) -> None:
        normalized = wallet.strip().lower()
        if normalized not in self.owner_wallets:
            # reassign so the JSON column registers the change
            self.owner_wallets = [*self.owner_wallets, normalized]

    def apply_record(self, record: NormalizedRecord) -> None:
        """Copy descriptive and media fields from ``record`` where it knows them."""

        self.title = record.title or self.title
        for name in (
            "description",
            "token_standard",
            "image_url",
            "thumbnail_url",
            "animation_url",
            "generator_url",
            "metadata_url",
            "mime",
            "supply",
            "mint_date",
        ):
            value = getattr(record, name)
            if value is not None:
                setattr(self, name, value)
        if record.dimensions is not None:
            self.width = record.dimensions.width
            self.height = record.dimensions.height
        if record.attributes:
            self.attributes = [
                {"trait_type": attribute.trait_type, "value": attribute.value}
                for attribute in record.attributes
            ]
        self.updated_at = _utcnow()
