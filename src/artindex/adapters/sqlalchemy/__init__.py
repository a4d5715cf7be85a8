"""SQLAlchemy adapter package for the index queue and catalog."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyArtistRepository,
    SqlAlchemyArtworkRepository,
    SqlAlchemyCollectionRepository,
    SqlAlchemyIndexQueueRepository,
)
from .unit_of_work import SqlAlchemyIndexingUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyArtistRepository",
    "SqlAlchemyArtworkRepository",
    "SqlAlchemyCollectionRepository",
    "SqlAlchemyIndexQueueRepository",
    "SqlAlchemyIndexingUnitOfWork",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
