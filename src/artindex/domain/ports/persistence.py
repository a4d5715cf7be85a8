"""Repository ports for the index queue and catalog entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from artindex.domain.model import (
        Artist,
        Artwork,
        Blockchain,
        Collection,
        ImportStatus,
        IndexQueueEntry,
    )


@runtime_checkable
class IndexQueueRepository(Protocol):
    def add(self, entry: IndexQueueEntry) -> None: ...

    def get(self, entry_id: UUID) -> IndexQueueEntry | None: ...

    def find_by_identity(
        self, contract_address: str, token_id: str, blockchain: Blockchain
    ) -> IndexQueueEntry | None: ...

    def list_by_status(self, status: ImportStatus, *, limit: int) -> list[IndexQueueEntry]: ...

    def count_by_status(self) -> dict[ImportStatus, int]: ...


@runtime_checkable
class ArtistRepository(Protocol):
    def add(self, entity: Artist) -> None: ...

    def get_by_wallet(self, wallet_address: str) -> Artist | None: ...

    def name_taken(self, name: str) -> bool: ...


@runtime_checkable
class CollectionRepository(Protocol):
    def add(self, entity: Collection) -> None: ...

    def get_by_slug(self, slug: str) -> Collection | None: ...


@runtime_checkable
class ArtworkRepository(Protocol):
    def add(self, entity: Artwork) -> None: ...

    def get(self, artwork_id: UUID) -> Artwork | None: ...

    def get_by_identity(
        self, contract_address: str, token_id: str, blockchain: Blockchain
    ) -> Artwork | None: ...
