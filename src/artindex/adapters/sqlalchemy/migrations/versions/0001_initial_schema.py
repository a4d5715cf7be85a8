"""Initial index queue and catalog schema

Revision ID: 0001
Revises:
Create Date: 2025-06-01 12:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column[object]]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "index_queue",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_address", sa.String(), nullable=False),
        sa.Column("token_id", sa.String(), nullable=False),
        sa.Column("blockchain", sa.String(length=8), nullable=False),
        sa.Column("source", sa.String(length=7), nullable=False),
        sa.Column("normalized_data", sa.JSON(), nullable=False),
        sa.Column("indexed_wallet", sa.String(), nullable=True),
        sa.Column("import_status", sa.String(length=8), nullable=False),
        sa.Column("catalog_artwork_id", sa.Uuid(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_index_queue"),
        sa.UniqueConstraint(
            "contract_address",
            "token_id",
            "blockchain",
            name="uq_index_queue_index_queue_contract_address",
        ),
    )
    op.create_index(
        "ix_index_queue_import_status", "index_queue", ["import_status", "created_at"]
    )

    op.create_table(
        "artist",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_address", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_artist"),
        sa.UniqueConstraint("wallet_address", name="uq_artist_artist_wallet_address"),
        sa.UniqueConstraint("name", name="uq_artist_artist_name"),
    )

    op.create_table(
        "collection",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("contract_address", sa.String(), nullable=True),
        sa.Column("blockchain", sa.String(length=8), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("external_url", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("banner_image_url", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_collection"),
        sa.UniqueConstraint("slug", name="uq_collection_collection_slug"),
    )

    op.create_table(
        "artwork",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_address", sa.String(), nullable=False),
        sa.Column("token_id", sa.String(), nullable=False),
        sa.Column("blockchain", sa.String(length=8), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("token_standard", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("thumbnail_url", sa.String(), nullable=True),
        sa.Column("animation_url", sa.String(), nullable=True),
        sa.Column("generator_url", sa.String(), nullable=True),
        sa.Column("metadata_url", sa.String(), nullable=True),
        sa.Column("mime", sa.String(), nullable=True),
        sa.Column("supply", sa.Integer(), nullable=True),
        sa.Column("mint_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column("ownership", sa.String(length=7), nullable=False),
        sa.Column("owner_wallets", sa.JSON(), nullable=False),
        sa.Column("collection_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["collection.id"],
            name="fk_artwork_artwork_collection_id_collection",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_artwork"),
        sa.UniqueConstraint(
            "contract_address",
            "token_id",
            "blockchain",
            name="uq_artwork_artwork_contract_address",
        ),
    )

    op.create_table(
        "artwork_artist",
        sa.Column("artwork_id", sa.Uuid(), nullable=False),
        sa.Column("artist_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["artwork_id"], ["artwork.id"], name="fk_artwork_artist_artwork_artist_artwork_id_artwork"
        ),
        sa.ForeignKeyConstraint(
            ["artist_id"], ["artist.id"], name="fk_artwork_artist_artwork_artist_artist_id_artist"
        ),
        sa.PrimaryKeyConstraint("artwork_id", "artist_id", name="pk_artwork_artist"),
    )

    op.create_table(
        "collection_artist",
        sa.Column("collection_id", sa.Uuid(), nullable=False),
        sa.Column("artist_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["collection.id"],
            name="fk_collection_artist_collection_artist_collection_id_collection",
        ),
        sa.ForeignKeyConstraint(
            ["artist_id"],
            ["artist.id"],
            name="fk_collection_artist_collection_artist_artist_id_artist",
        ),
        sa.PrimaryKeyConstraint("collection_id", "artist_id", name="pk_collection_artist"),
    )


def downgrade() -> None:
    op.drop_table("collection_artist")
    op.drop_table("artwork_artist")
    op.drop_table("artwork")
    op.drop_table("collection")
    op.drop_table("artist")
    op.drop_index("ix_index_queue_import_status", table_name="index_queue")
    op.drop_table("index_queue")
