"""SQLAlchemy mapping metadata for the queue and catalog model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import relationship

from artindex.domain.model import (
    Artist,
    Artwork,
    Blockchain,
    Collection,
    ImportStatus,
    IndexQueueEntry,
    NormalizedRecord,
    OwnershipType,
    Provider,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


_RECORD_ADAPTER: TypeAdapter[NormalizedRecord] = TypeAdapter(NormalizedRecord)


class NormalizedRecordType(TypeDecorator[NormalizedRecord]):
    """Stores a :class:`NormalizedRecord` as a JSON document."""

    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: NormalizedRecord | None, dialect: Dialect
    ) -> dict[str, Any] | None:
        _ = dialect
        if value is None:
            return None
        return _RECORD_ADAPTER.dump_python(value, mode="json")

    def process_result_value(
        self, value: dict[str, Any] | None, dialect: Dialect
    ) -> NormalizedRecord | None:
        _ = dialect
        if value is None:
            return None
        return _RECORD_ADAPTER.validate_python(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Queue -----------------------------------------------------------------------

index_queue_table = Table(
    "index_queue",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("contract_address", String, nullable=False),
    Column("token_id", String, nullable=False),
    Column("blockchain", Enum(Blockchain, native_enum=False), nullable=False),
    Column("source", Enum(Provider, native_enum=False), nullable=False),
    Column("normalized_data", NormalizedRecordType(), key="record", nullable=False),
    Column("indexed_wallet", String, nullable=True),
    Column(
        "import_status",
        Enum(ImportStatus, native_enum=False),
        nullable=False,
        default=ImportStatus.PENDING,
    ),
    Column("catalog_artwork_id", UUIDColumnType, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("last_attempt_at", UTCDateTime(), nullable=True),
    UniqueConstraint("contract_address", "token_id", "blockchain"),
    Index("ix_index_queue_import_status", "import_status", "created_at"),
)

# Catalog ---------------------------------------------------------------------

artist_table = Table(
    "artist",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("wallet_address", String, nullable=False, unique=True),
    Column("name", String, nullable=False, unique=True),
    Column("profile_image_url", String, nullable=True),
    Column("bio", Text, nullable=True),
    Column("website", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

collection_table = Table(
    "collection",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("slug", String, nullable=False, unique=True),
    Column("title", String, nullable=False),
    Column("contract_address", String, nullable=True),
    Column("blockchain", Enum(Blockchain, native_enum=False), nullable=True),
    Column("description", Text, nullable=True),
    Column("external_url", String, nullable=True),
    Column("image_url", String, nullable=True),
    Column("banner_image_url", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

artwork_table = Table(
    "artwork",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("contract_address", String, nullable=False),
    Column("token_id", String, nullable=False),
    Column("blockchain", Enum(Blockchain, native_enum=False), nullable=False),
    Column("title", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("token_standard", String, nullable=True),
    Column("image_url", String, nullable=True),
    Column("thumbnail_url", String, nullable=True),
    Column("animation_url", String, nullable=True),
    Column("generator_url", String, nullable=True),
    Column("metadata_url", String, nullable=True),
    Column("mime", String, nullable=True),
    Column("supply", Integer, nullable=True),
    Column("mint_date", UTCDateTime(), nullable=True),
    Column("width", Integer, nullable=True),
    Column("height", Integer, nullable=True),
    Column("attributes", JSON, nullable=False, default=list),
    Column("ownership", Enum(OwnershipType, native_enum=False), nullable=False),
    Column("owner_wallets", JSON, nullable=False, default=list),
    Column("collection_id", UUIDColumnType, ForeignKey("collection.id"), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("contract_address", "token_id", "blockchain"),
)

artwork_artist_table = Table(
    "artwork_artist",
    mapper_registry.metadata,
    Column("artwork_id", UUIDColumnType, ForeignKey("artwork.id"), primary_key=True),
    Column("artist_id", UUIDColumnType, ForeignKey("artist.id"), primary_key=True),
)

collection_artist_table = Table(
    "collection_artist",
    mapper_registry.metadata,
    Column("collection_id", UUIDColumnType, ForeignKey("collection.id"), primary_key=True),
    Column("artist_id", UUIDColumnType, ForeignKey("artist.id"), primary_key=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(IndexQueueEntry, index_queue_table)
    mapper_registry.map_imperatively(Artist, artist_table)
    mapper_registry.map_imperatively(
        Collection,
        collection_table,
        properties={
            "artists": relationship(Artist, secondary=collection_artist_table),
        },
    )
    mapper_registry.map_imperatively(
        Artwork,
        artwork_table,
        properties={
            "collection": relationship(Collection),
            "artists": relationship(Artist, secondary=artwork_artist_table),
        },
    )
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
