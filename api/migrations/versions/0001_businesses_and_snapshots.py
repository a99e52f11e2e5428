"""Create businesses and snapshots_gbp tables

Revision ID: a1c4e7f20b13
Revises:
Create Date: 2026-09-14 10:12:00.000000

businesses holds one row per tracked place; snapshots_gbp receives one
row per ingestion run with the scored review metrics and the provider's
raw payload.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "a1c4e7f20b13"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "businesses",
        sa.Column("place_id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("google_maps_url", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("reviews_count", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_businesses_updated_at", "businesses", [sa.text("updated_at DESC")])

    op.create_table(
        "snapshots_gbp",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True),
        sa.Column(
            "business_place_id",
            sa.Text(),
            sa.ForeignKey("businesses.place_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("snapshot_ts", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("has_gbp", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("rating_avg", sa.Float(), nullable=True),
        sa.Column("reviews_total", sa.Integer(), nullable=True),
        sa.Column("reviews_last_30", sa.Integer(), nullable=True),
        sa.Column("negative_count", sa.Integer(), nullable=True),
        sa.Column("negative_share_percent", sa.Float(), nullable=True),
        sa.Column("visual_trust", sa.Float(), nullable=True),
        sa.Column("ui_variant", sa.Text(), nullable=True),
        sa.Column("reviews_distribution", postgresql.JSONB(), nullable=True),
        sa.Column("raw", postgresql.JSONB(), nullable=True),
    )
    op.create_index(
        "ix_snapshots_gbp_place_ts",
        "snapshots_gbp",
        ["business_place_id", "snapshot_ts"],
    )


def downgrade() -> None:
    op.drop_index("ix_snapshots_gbp_place_ts", table_name="snapshots_gbp")
    op.drop_table("snapshots_gbp")
    op.drop_index("ix_businesses_updated_at", table_name="businesses")
    op.drop_table("businesses")
