"""Raw map-platform snapshot model.

Each ingestion run appends one row per business. The `raw` payload keeps
the full provider response, including `reviews_distribution` when the
provider returned one.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Float, ForeignKey, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class GbpSnapshot(Base):
    __tablename__ = "snapshots_gbp"
    __table_args__ = (
        Index("ix_snapshots_gbp_place_ts", "business_place_id", "snapshot_ts"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    business_place_id: Mapped[str] = mapped_column(
        Text, ForeignKey("businesses.place_id", ondelete="CASCADE"), nullable=False
    )
    snapshot_ts: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    has_gbp: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rating_avg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reviews_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviews_last_30: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    negative_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    negative_share_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    visual_trust: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ui_variant: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Denormalized copy of raw["reviews_distribution"]; older ingestion runs left it null
    reviews_distribution: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    raw: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
