"""Domain model for token ingestion and catalog materialization."""

from __future__ import annotations

from .catalog import Artist, Artwork, Collection
from .enums import Blockchain, ImportStatus, OwnershipType, Provider, ResolutionSource
from .provider_records import (
    AccountProfile,
    AlchemyRecord,
    CreatorCandidates,
    ManualRecord,
    OpenSeaRecord,
    ProviderRecord,
)
from .queue import IndexQueueEntry
from .records import (
    ZERO_ADDRESS,
    Attribute,
    CollectionInfo,
    Creator,
    Dimensions,
    NormalizedRecord,
    identity_key,
)

__all__ = [
    "ZERO_ADDRESS",
    "AccountProfile",
    "AlchemyRecord",
    "Artist",
    "Artwork",
    "Attribute",
    "Blockchain",
    "Collection",
    "CollectionInfo",
    "Creator",
    "CreatorCandidates",
    "Dimensions",
    "ImportStatus",
    "IndexQueueEntry",
    "ManualRecord",
    "NormalizedRecord",
    "OpenSeaRecord",
    "OwnershipType",
    "Provider",
    "ProviderRecord",
    "ResolutionSource",
    "identity_key",
]
