"""Presentation view for the dashboard's first KPI row.

`dashboard_row1_presented_alias` joins the latest scoring columns of
snapshots_gbp with business display fields. It is a view, so it is declared
as a Core Table on the shared metadata and only ever selected from.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, Table, Text

from .base import Base

dashboard_row1_view = Table(
    "dashboard_row1_presented_alias",
    Base.metadata,
    Column("business_place_id", Text, nullable=False),
    Column("name", Text),
    Column("google_maps_url", Text),
    Column("image_url", Text),
    Column("snapshot_ts", DateTime(timezone=True), nullable=False),
    Column("has_gbp", Boolean),
    Column("rating_avg", Float),
    Column("reviews_total", Integer),
    Column("reviews_last_30", Integer),
    Column("negative_count", Integer),
    Column("negative_share_percent", Float),
    Column("visual_trust", Float),
    Column("ui_variant", Text),
    Column("negative_subtext", Text),
    # text in the view; may hold JSON or be null
    Column("reviews_distribution", Text),
    info={"is_view": True},
)
