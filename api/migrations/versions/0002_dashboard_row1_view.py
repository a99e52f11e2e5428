"""Create dashboard_row1_presented_alias view

Revision ID: b27d9e0c4f58
Revises: a1c4e7f20b13
Create Date: 2026-09-14 10:40:00.000000

Read view for the first KPI row: every snapshot joined with the business
display fields, plus the negative-review subtext. reviews_distribution is
exposed as text from the denormalized column only; rows ingested before
that column existed carry it in raw instead.
"""

from typing import Sequence, Union

from alembic import op

revision: str = "b27d9e0c4f58"
down_revision: Union[str, None] = "a1c4e7f20b13"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE VIEW dashboard_row1_presented_alias AS
        SELECT
            s.business_place_id,
            b.name,
            b.google_maps_url,
            b.image_url,
            s.snapshot_ts,
            s.has_gbp,
            s.rating_avg,
            s.reviews_total,
            s.reviews_last_30,
            s.negative_count,
            s.negative_share_percent,
            s.visual_trust,
            s.ui_variant,
            CASE
                WHEN s.negative_count IS NULL THEN NULL
                ELSE s.negative_count || ' negative in total'
            END AS negative_subtext,
            s.reviews_distribution::text AS reviews_distribution
        FROM snapshots_gbp s
        JOIN businesses b ON b.place_id = s.business_place_id
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS dashboard_row1_presented_alias")
