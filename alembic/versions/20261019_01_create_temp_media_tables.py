"""Create temp_media and media_item tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "temp_media",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("session_id", sa.String(length=255), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("original_name", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=127), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_temp_media_session_id", "temp_media", ["session_id"])
    op.create_index("ix_temp_media_user_id", "temp_media", ["user_id"])
    op.create_index("ix_temp_media_expires_at", "temp_media", ["expires_at"])
    op.create_index("ix_temp_media_is_processed", "temp_media", ["is_processed"])
    op.create_index("ix_temp_media_status", "temp_media", ["status"])

    op.create_table(
        "media_item",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("owner_type", sa.String(length=128), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("collection_name", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=127), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("disk_key", sa.String(length=1024), nullable=False),
        sa.Column("order_column", sa.Integer(), nullable=True),
        sa.Column("custom_properties", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_media_item_owner_collection",
        "media_item",
        ["owner_type", "owner_id", "collection_name"],
    )


def downgrade() -> None:
    op.drop_index("ix_media_item_owner_collection", table_name="media_item")
    op.drop_table("media_item")
    for column in ("status", "is_processed", "expires_at", "user_id", "session_id"):
        op.drop_index(f"ix_temp_media_{column}", table_name="temp_media")
    op.drop_table("temp_media")
