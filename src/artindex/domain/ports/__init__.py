"""Domain ports consumed by the ingestion pipeline."""

from __future__ import annotations

from .fetching import MediaProbe, MediaProbeResult, ProviderAdapter, RawPage
from .persistence import (
    ArtistRepository,
    ArtworkRepository,
    CollectionRepository,
    IndexQueueRepository,
)
from .unit_of_work import IndexingRepositories, IndexingUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "ArtistRepository",
    "ArtworkRepository",
    "CollectionRepository",
    "IndexQueueRepository",
    "IndexingRepositories",
    "IndexingUnitOfWork",
    "MediaProbe",
    "MediaProbeResult",
    "ProviderAdapter",
    "RawPage",
    "RepositoryCollection",
    "UnitOfWork",
]
