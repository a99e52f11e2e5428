"""Pydantic schemas for snapshot and social analytics responses."""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_serializer


class ReviewsDistribution(BaseModel):
    """Review counts per star level. Missing levels stay None and are left out when serialized."""

    model_config = ConfigDict(extra="ignore")

    five: Optional[int] = Field(default=None, ge=0)
    four: Optional[int] = Field(default=None, ge=0)
    three: Optional[int] = Field(default=None, ge=0)
    two: Optional[int] = Field(default=None, ge=0)
    one: Optional[int] = Field(default=None, ge=0)

    @model_serializer(mode="wrap")
    def _drop_missing_levels(self, handler):
        return {level: count for level, count in handler(self).items() if count is not None}


class SnapshotRow(BaseModel):
    """Latest presented snapshot for one business."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    business_place_id: str
    name: Optional[str] = None
    google_maps_url: Optional[str] = None
    image_url: Optional[str] = None
    snapshot_ts: datetime
    has_gbp: bool = False
    rating_avg: Optional[float] = None
    reviews_total: Optional[int] = None
    reviews_last_30: Optional[int] = None
    negative_count: Optional[int] = None
    negative_share_percent: Optional[float] = None
    visual_trust: Optional[float] = None  # 0-100
    ui_variant: Optional[str] = None
    negative_subtext: Optional[str] = None
    reviews_distribution: Optional[ReviewsDistribution] = None


class SnapshotResult(BaseModel):
    row: Optional[SnapshotRow] = None
    is_fresh: bool = False


class SocialChannel(BaseModel):
    """Per-network metrics. Input may spell `enabled` as `on`."""

    key: str
    name: str = ""
    enabled: bool = Field(default=False, validation_alias=AliasChoices("enabled", "on"))
    followers: int = 0
    engagement_rate: float = 0.0  # percentage points
    posts_7d: int = 0
    streak_weeks: int = 0

    @field_validator("followers", "engagement_rate", "posts_7d", "streak_weeks", mode="before")
    @classmethod
    def _none_as_zero(cls, value):
        return 0 if value is None else value


class SocialAggregate(BaseModel):
    total_followers: int = 0
    engagement_rate: float = 0.0
    posts_7d: int = 0
    streak: int = 0


class SocialBands(BaseModel):
    followers: str
    engagement: str
    posts: str
    streak: str


class SocialMicrocopy(BaseModel):
    followers: str
    engagement: str
    posts: str
    streak: str


class NextAction(BaseModel):
    kind: str  # "claim_profile" | "collect_reviews"
    headline: str
    subtext: str
    cta: str


class DistributionSlice(BaseModel):
    label: str
    pct: int


class SnapshotResponse(BaseModel):
    place_id: Optional[str] = None
    row: Optional[SnapshotRow] = None
    is_fresh: bool = False
    age_minutes: Optional[float] = None
    next_action: Optional[NextAction] = None
    distribution: list[DistributionSlice] = []


class SocialResponse(BaseModel):
    channels: list[SocialChannel]
    aggregate: SocialAggregate
    bands: SocialBands
    microcopy: SocialMicrocopy
