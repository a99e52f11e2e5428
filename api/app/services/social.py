"""Social channel aggregation, band scoring and microcopy.

Only enabled channels count. Aggregates fold into one of three ordered
bands per metric using fixed cut points, and each band maps to a fixed
phrase shown next to the metric. Metrics never influence each other.

Bands:
  LOW:  below where a local business should be
  OK:   on the way
  GOOD: ahead of the local field
"""

import enum
from typing import Iterable, Optional

from app.schemas.analytics import SocialAggregate, SocialBands, SocialChannel, SocialMicrocopy


class Band(str, enum.Enum):
    LOW = "low"
    OK = "ok"
    GOOD = "good"

    @property
    def rank(self) -> int:
        return _BAND_ORDER[self]


_BAND_ORDER = {Band.LOW: 0, Band.OK: 1, Band.GOOD: 2}

# Cut points (inclusive upper bounds of LOW and OK unless noted)
FOLLOWERS_LOW_BELOW = 1_000   # < 1000 is LOW
FOLLOWERS_OK_MAX = 5_000
ENGAGEMENT_LOW_BELOW = 0.7    # < 0.7 is LOW
ENGAGEMENT_OK_MAX = 1.5
POSTS_LOW_MAX = 1
POSTS_OK_MAX = 3
STREAK_LOW_MAX = 0
STREAK_OK_MAX = 2

MICROCOPY: dict[str, dict[Band, str]] = {
    "followers": {
        Band.LOW: "below local median",
        Band.OK: "growing base",
        Band.GOOD: "strong presence",
    },
    "engagement": {
        Band.LOW: "audience isn't reacting",
        Band.OK: "steady engagement",
        Band.GOOD: "high engagement",
    },
    "posts": {
        Band.LOW: "no posting cadence",
        Band.OK: "regular posting",
        Band.GOOD: "consistent cadence",
    },
    "streak": {
        Band.LOW: "streak broken",
        Band.OK: "building momentum",
        Band.GOOD: "strong streak",
    },
}

# Stand-in channel set until live social integrations report per-channel metrics
DEFAULT_CHANNELS: list[SocialChannel] = [
    SocialChannel(key="instagram", name="Instagram", enabled=True, followers=280,
                  engagement_rate=0.35, posts_7d=0, streak_weeks=0),
    SocialChannel(key="facebook", name="Facebook", enabled=True, followers=340,
                  engagement_rate=0.22, posts_7d=1, streak_weeks=0),
    SocialChannel(key="youtube", name="YouTube", enabled=True, followers=95,
                  engagement_rate=0.18, posts_7d=0, streak_weeks=0),
    SocialChannel(key="tiktok", name="TikTok", enabled=False),
    SocialChannel(key="x", name="X (Twitter)", enabled=False),
    SocialChannel(key="linkedin", name="LinkedIn", enabled=False),
]


def aggregate_social(channels: Optional[Iterable[SocialChannel]] = None) -> SocialAggregate:
    """Fold enabled channels into totals.

    followers and posts are summed, engagement is the mean and streak the
    max over enabled channels. All zero when nothing is enabled.
    """
    if channels is None:
        channels = DEFAULT_CHANNELS
    enabled = [ch for ch in channels if ch.enabled]
    if not enabled:
        return SocialAggregate()

    return SocialAggregate(
        total_followers=sum(ch.followers for ch in enabled),
        engagement_rate=sum(ch.engagement_rate for ch in enabled) / len(enabled),
        posts_7d=sum(ch.posts_7d for ch in enabled),
        streak=max(ch.streak_weeks for ch in enabled),
    )


def followers_band(total_followers: int) -> Band:
    if total_followers < FOLLOWERS_LOW_BELOW:
        return Band.LOW
    elif total_followers <= FOLLOWERS_OK_MAX:
        return Band.OK
    return Band.GOOD


def engagement_band(engagement_rate: float) -> Band:
    if engagement_rate < ENGAGEMENT_LOW_BELOW:
        return Band.LOW
    elif engagement_rate <= ENGAGEMENT_OK_MAX:
        return Band.OK
    return Band.GOOD


def posts_band(posts_7d: int) -> Band:
    if posts_7d <= POSTS_LOW_MAX:
        return Band.LOW
    elif posts_7d <= POSTS_OK_MAX:
        return Band.OK
    return Band.GOOD


def streak_band(streak: int) -> Band:
    if streak <= STREAK_LOW_MAX:
        return Band.LOW
    elif streak <= STREAK_OK_MAX:
        return Band.OK
    return Band.GOOD


def score_social(aggregate: SocialAggregate) -> SocialBands:
    return SocialBands(
        followers=followers_band(aggregate.total_followers).value,
        engagement=engagement_band(aggregate.engagement_rate).value,
        posts=posts_band(aggregate.posts_7d).value,
        streak=streak_band(aggregate.streak).value,
    )


def social_microcopy(bands: SocialBands) -> SocialMicrocopy:
    return SocialMicrocopy(
        followers=MICROCOPY["followers"][Band(bands.followers)],
        engagement=MICROCOPY["engagement"][Band(bands.engagement)],
        posts=MICROCOPY["posts"][Band(bands.posts)],
        streak=MICROCOPY["streak"][Band(bands.streak)],
    )
