"""Durable queue entry wrapping a normalized record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .enums import Blockchain, ImportStatus, Provider

if TYPE_CHECKING:
    from .records import NormalizedRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class IndexQueueEntry:
    """Status-tracked wrapper around a :class:`NormalizedRecord` awaiting catalog import.

    The identity triple is copied out of the record into plain columns so the
    queue can be searched and uniquely constrained without decoding the payload.
    """

    record: NormalizedRecord
    source: Provider
    indexed_wallet: str | None = None
    id: UUID = field(default_factory=uuid4)
    contract_address: str = ""
    token_id: str = ""
    blockchain: Blockchain = Blockchain.ETHEREUM
    import_status: ImportStatus = ImportStatus.PENDING
    catalog_artwork_id: UUID | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    last_attempt_at: datetime | None = None

    def __post_init__(self) -> None:
        self.contract_address = self.record.contract_address
        self.token_id = self.record.token_id
        self.blockchain = self.record.blockchain
        if self.indexed_wallet is not None:
            self.indexed_wallet = self.indexed_wallet.strip().lower()

    def replace_record(self, record: NormalizedRecord, *, at: datetime | None = None) -> None:
        if record.identity != (self.contract_address, self.token_id, self.blockchain):
            raise ValueError("Cannot replace a queue record with a different token identity")
        self.record = record
        self.updated_at = at or _utcnow()

    def mark_imported(self, artwork_id: UUID, *, at: datetime | None = None) -> None:
        moment = at or _utcnow()
        self.import_status = ImportStatus.IMPORTED
        self.catalog_artwork_id = artwork_id
        self.error_message = None
        self.last_attempt_at = moment
        self.updated_at = moment

    def mark_failed(self, reason: str, *, at: datetime | None = None) -> None:
        moment = at or _utcnow()
        self.import_status = ImportStatus.FAILED
        self.error_message = reason
        self.last_attempt_at = moment
        self.updated_at = moment
