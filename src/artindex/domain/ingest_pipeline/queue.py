"""Index queue writes and catalog materialization.

:class:`IndexQueue` is the only write path into the queue: enqueueing upserts
by identity triple and merges payloads with the deduplication "fill gaps only"
rule, never touching ``import_status``. :class:`QueueProcessor` turns pending
entries into catalog entities with natural-key upserts, so re-running it on an
already imported entry updates in place instead of duplicating anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from artindex.domain.model import (
    Artist,
    Artwork,
    Collection,
    ImportStatus,
    IndexQueueEntry,
    OwnershipType,
)

from .deduplication import merge_records
from .errors import MappingFailure
from .normalization import DEFAULT_TOKEN_STANDARD, UNKNOWN_COLLECTION, UNTITLED, text

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from artindex.domain.model import Blockchain, CollectionInfo, Creator, NormalizedRecord, Provider
    from artindex.domain.ports.persistence import ArtistRepository, CollectionRepository
    from artindex.domain.ports.unit_of_work import IndexingRepositories, IndexingUnitOfWork

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], IndexingUnitOfWork]

DEFAULT_PROCESS_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QueueEntryNotFoundError(LookupError):
    """Raised when a queue id does not exist."""


@dataclass(slots=True, frozen=True)
class EnqueueSummary:
    entry_ids: list[UUID] = field(default_factory=list)
    created: int = 0
    merged: int = 0


class IndexQueue:
    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self.uow_factory = uow_factory

    def enqueue(
        self,
        record: NormalizedRecord,
        source: Provider,
        blockchain: Blockchain | None = None,
        contract_address: str | None = None,
        token_id: str | None = None,
        *,
        indexed_wallet: str | None = None,
    ) -> UUID:
        """Upsert ``record`` and return its queue id.

        The explicit identity arguments are optional; when given they must agree
        with the record's own identity.
        """

        _check_identity(record, blockchain, contract_address, token_id)
        with self.uow_factory() as uow:
            entry_id, _created = _upsert(uow.repositories, record, source, indexed_wallet)
            uow.commit()
        return entry_id

    def enqueue_many(
        self,
        records: Iterable[tuple[NormalizedRecord, Provider]],
        *,
        indexed_wallet: str | None = None,
    ) -> EnqueueSummary:
        entry_ids: list[UUID] = []
        created = merged = 0
        with self.uow_factory() as uow:
            for record, source in records:
                entry_id, was_created = _upsert(uow.repositories, record, source, indexed_wallet)
                entry_ids.append(entry_id)
                if was_created:
                    created += 1
                else:
                    merged += 1
            uow.commit()
        log.info("Enqueued %d new and merged %d existing records", created, merged)
        return EnqueueSummary(entry_ids=entry_ids, created=created, merged=merged)

    def stats(self) -> dict[ImportStatus, int]:
        with self.uow_factory() as uow:
            counts = uow.repositories.queue.count_by_status()
        return {status: counts.get(status, 0) for status in ImportStatus}


def _check_identity(
    record: NormalizedRecord,
    blockchain: Blockchain | None,
    contract_address: str | None,
    token_id: str | None,
) -> None:
    if blockchain is not None and blockchain != record.blockchain:
        raise ValueError(f"Blockchain {blockchain} does not match record ({record.blockchain})")
    if contract_address is not None and contract_address.strip().lower() != record.contract_address:
        raise ValueError(f"Contract {contract_address} does not match record")
    if token_id is not None and str(token_id).strip() != record.token_id:
        raise ValueError(f"Token id {token_id} does not match record")


def _upsert(
    repositories: IndexingRepositories,
    record: NormalizedRecord,
    source: Provider,
    indexed_wallet: str | None,
) -> tuple[UUID, bool]:
    queue = repositories.queue
    existing = queue.find_by_identity(record.contract_address, record.token_id, record.blockchain)
    if existing is not None:
        merged = merge_records(existing.record, record)
        if merged != existing.record:
            existing.replace_record(merged)
        if existing.indexed_wallet is None and indexed_wallet:
            existing.indexed_wallet = indexed_wallet.strip().lower()
        return existing.id, False

    entry = IndexQueueEntry(record=record, source=source, indexed_wallet=indexed_wallet)
    queue.add(entry)
    return entry.id, True


@dataclass(slots=True, frozen=True)
class ProcessOutcome:
    entry_id: UUID
    status: ImportStatus
    artwork_id: UUID | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status is ImportStatus.IMPORTED


@dataclass(slots=True, frozen=True)
class QueueRunSummary:
    results: list[ProcessOutcome]

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.processed - self.successful

    @property
    def errors(self) -> list[str]:
        return [f"{result.entry_id}: {result.error}" for result in self.results if result.error]


class QueueProcessor:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.clock = clock

    def process_one(self, entry_id: UUID) -> ProcessOutcome:
        """Materialize one queue entry into catalog entities.

        Mapping failures are permanent: the entry is marked ``failed`` with the
        reason and the outcome is returned. Any other exception propagates after
        the unit of work rolls back.
        """

        with self.uow_factory() as uow:
            entry = uow.repositories.queue.get(entry_id)
            if entry is None:
                raise QueueEntryNotFoundError(f"Queue entry {entry_id} does not exist")
            try:
                artwork = _materialize(uow.repositories, entry)
            except MappingFailure as exc:
                uow.rollback()
                failed = uow.repositories.queue.get(entry_id)
                if failed is None:
                    raise QueueEntryNotFoundError(f"Queue entry {entry_id} does not exist") from exc
                failed.mark_failed(str(exc), at=self.clock())
                uow.commit()
                log.error("Queue entry %s failed to map: %s", entry_id, exc)
                return ProcessOutcome(entry_id=entry_id, status=ImportStatus.FAILED, error=str(exc))

            entry.mark_imported(artwork.id, at=self.clock())
            uow.commit()
            log.info("Imported %s as artwork %s", entry.record.identity_key, artwork.id)
            return ProcessOutcome(entry_id=entry_id, status=ImportStatus.IMPORTED, artwork_id=artwork.id)

    def process_queue(
        self,
        status: ImportStatus = ImportStatus.PENDING,
        limit: int = DEFAULT_PROCESS_LIMIT,
    ) -> QueueRunSummary:
        """Process up to ``limit`` entries in ``status`` one after another."""

        with self.uow_factory() as uow:
            entry_ids = [entry.id for entry in uow.repositories.queue.list_by_status(status, limit=limit)]
        log.info("Processing %d %s queue entries", len(entry_ids), status)

        results: list[ProcessOutcome] = []
        for entry_id in entry_ids:
            try:
                results.append(self.process_one(entry_id))
            except Exception as exc:
                log.exception("Unexpected error while processing queue entry %s", entry_id)
                self._record_failure(entry_id, exc)
                results.append(
                    ProcessOutcome(entry_id=entry_id, status=ImportStatus.FAILED, error=str(exc))
                )
        summary = QueueRunSummary(results=results)
        log.info(
            "Queue run finished: processed=%d, successful=%d, failed=%d",
            summary.processed,
            summary.successful,
            summary.failed,
        )
        return summary

    def _record_failure(self, entry_id: UUID, exc: Exception) -> None:
        with self.uow_factory() as uow:
            entry = uow.repositories.queue.get(entry_id)
            if entry is None:
                return
            entry.mark_failed(str(exc) or type(exc).__name__, at=self.clock())
            uow.commit()


def _validate(record: NormalizedRecord) -> None:
    missing = [
        name
        for name, value in (("contract address", record.contract_address), ("token id", record.token_id))
        if text(value) is None
    ]
    if missing:
        raise MappingFailure(f"Missing required field(s): {', '.join(missing)}")


def _materialize(repositories: IndexingRepositories, entry: IndexQueueEntry) -> Artwork:
    record = entry.record
    _validate(record)

    artist = _upsert_artist(repositories.artists, record.creator) if record.creator else None
    collection = (
        _upsert_collection(repositories.collections, record.collection, record)
        if record.collection
        else None
    )
    if artist is not None and collection is not None:
        collection.link_artist(artist)

    artworks = repositories.artworks
    artwork = artworks.get_by_identity(record.contract_address, record.token_id, record.blockchain)
    if artwork is None:
        artwork = Artwork(
            contract_address=record.contract_address,
            token_id=record.token_id,
            blockchain=record.blockchain,
            title=record.title or UNTITLED,
        )
        artworks.add(artwork)
    artwork.apply_record(record)
    if artwork.token_standard is None:
        artwork.token_standard = DEFAULT_TOKEN_STANDARD

    if collection is not None:
        artwork.collection = collection
    if artist is not None:
        artwork.link_artist(artist)
    if entry.indexed_wallet:
        artwork.add_owner(entry.indexed_wallet)
        if artist is not None and artist.wallet_address == entry.indexed_wallet:
            artwork.ownership = OwnershipType.CREATED
    return artwork


def _artist_name(repository: ArtistRepository, creator: Creator) -> str:
    base = text(creator.username) or f"Artist_{creator.address[-8:]}"
    name = base
    suffix = 1
    while repository.name_taken(name):
        suffix += 1
        name = f"{base} ({suffix})"
    return name


def _upsert_artist(repository: ArtistRepository, creator: Creator) -> Artist:
    artist = repository.get_by_wallet(creator.address)
    if artist is None:
        artist = Artist(
            wallet_address=creator.address,
            name=_artist_name(repository, creator),
            profile_image_url=creator.profile_image_url,
            bio=creator.bio,
            website=creator.website,
        )
        repository.add(artist)
        return artist

    changed = False
    for name in ("profile_image_url", "bio", "website"):
        incoming = getattr(creator, name)
        if incoming and getattr(artist, name) is None:
            setattr(artist, name, incoming)
            changed = True
    if changed:
        artist.updated_at = _utcnow()
    return artist


def _upsert_collection(
    repository: CollectionRepository,
    info: CollectionInfo,
    record: NormalizedRecord,
) -> Collection:
    collection = repository.get_by_slug(info.slug)
    if collection is None:
        collection = Collection(
            slug=info.slug,
            title=info.title or UNKNOWN_COLLECTION,
            contract_address=info.contract_address or record.contract_address,
            blockchain=record.blockchain,
            description=info.description,
            external_url=info.external_url,
            image_url=info.image_url,
            banner_image_url=info.banner_image_url,
        )
        repository.add(collection)
        return collection

    for name in ("description", "external_url", "image_url", "banner_image_url", "contract_address"):
        incoming = getattr(info, name)
        if incoming and getattr(collection, name) is None:
            setattr(collection, name, incoming)
    if info.title and collection.title == UNKNOWN_COLLECTION:
        collection.title = info.title
    if collection.blockchain is None:
        collection.blockchain = record.blockchain
    return collection
