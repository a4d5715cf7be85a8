"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from artindex.adapters.sqlalchemy.mappings import (
    artist_table,
    artwork_table,
    collection_table,
    index_queue_table,
)
from artindex.domain.model import Artist, Artwork, Collection, ImportStatus, IndexQueueEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

    from artindex.domain.model import Blockchain


class SqlAlchemyIndexQueueRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entry: IndexQueueEntry) -> None:
        self.session.add(entry)

    def get(self, entry_id: UUID) -> IndexQueueEntry | None:
        return self.session.get(IndexQueueEntry, entry_id)

    def find_by_identity(
        self, contract_address: str, token_id: str, blockchain: Blockchain
    ) -> IndexQueueEntry | None:
        stmt = (
            select(IndexQueueEntry)
            .where(index_queue_table.c.contract_address == contract_address.strip().lower())
            .where(index_queue_table.c.token_id == token_id.strip())
            .where(index_queue_table.c.blockchain == blockchain)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_status(self, status: ImportStatus, *, limit: int) -> list[IndexQueueEntry]:
        stmt = (
            select(IndexQueueEntry)
            .where(index_queue_table.c.import_status == status)
            .order_by(index_queue_table.c.created_at, index_queue_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def count_by_status(self) -> dict[ImportStatus, int]:
        stmt = select(index_queue_table.c.import_status, func.count()).group_by(
            index_queue_table.c.import_status
        )
        return {ImportStatus(status): count for status, count in self.session.execute(stmt)}


class SqlAlchemyArtistRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Artist) -> None:
        self.session.add(entity)

    def get_by_wallet(self, wallet_address: str) -> Artist | None:
        stmt = select(Artist).where(artist_table.c.wallet_address == wallet_address.strip().lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def name_taken(self, name: str) -> bool:
        stmt = select(artist_table.c.id).where(artist_table.c.name == name).limit(1)
        return self.session.execute(stmt).first() is not None


class SqlAlchemyCollectionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Collection) -> None:
        self.session.add(entity)

    def get_by_slug(self, slug: str) -> Collection | None:
        stmt = select(Collection).where(collection_table.c.slug == slug)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyArtworkRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Artwork) -> None:
        self.session.add(entity)

    def get(self, artwork_id: UUID) -> Artwork | None:
        return self.session.get(Artwork, artwork_id)

    def get_by_identity(
        self, contract_address: str, token_id: str, blockchain: Blockchain
    ) -> Artwork | None:
        stmt = (
            select(Artwork)
            .where(artwork_table.c.contract_address == contract_address.strip().lower())
            .where(artwork_table.c.token_id == token_id.strip())
            .where(artwork_table.c.blockchain == blockchain)
        )
        return self.session.execute(stmt).scalar_one_or_none()
