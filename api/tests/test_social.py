"""Tests for social aggregation, band scoring and microcopy."""

import pytest

from app.schemas.analytics import SocialAggregate, SocialChannel
from app.services.social import (
    DEFAULT_CHANNELS,
    Band,
    aggregate_social,
    engagement_band,
    followers_band,
    posts_band,
    score_social,
    social_microcopy,
    streak_band,
)


def _channel(key, **kwargs):
    return SocialChannel(key=key, **kwargs)


def test_empty_and_all_disabled_aggregate_to_zero():
    disabled = [
        _channel("instagram", enabled=False, followers=900, engagement_rate=3.0, posts_7d=4, streak_weeks=2),
        _channel("tiktok", enabled=False, followers=50),
    ]
    zero = SocialAggregate(total_followers=0, engagement_rate=0.0, posts_7d=0, streak=0)

    assert aggregate_social([]) == zero
    assert aggregate_social(disabled) == zero


def test_only_enabled_channels_count():
    channels = [
        _channel("facebook", enabled=False, followers=0),
        _channel("instagram", enabled=True, followers=6000, engagement_rate=2.0, posts_7d=5, streak_weeks=4),
    ]

    agg = aggregate_social(channels)

    assert agg == SocialAggregate(total_followers=6000, engagement_rate=2.0, posts_7d=5, streak=4)
    bands = score_social(agg)
    assert (bands.followers, bands.engagement, bands.posts, bands.streak) == ("good", "good", "good", "good")


def test_sum_mean_and_max_across_enabled_channels():
    channels = [
        _channel("instagram", enabled=True, followers=400, engagement_rate=1.0, posts_7d=2, streak_weeks=1),
        _channel("facebook", enabled=True, followers=600, engagement_rate=2.0, posts_7d=1, streak_weeks=3),
        _channel("linkedin", enabled=False, followers=10_000, engagement_rate=9.0, posts_7d=9, streak_weeks=9),
    ]

    agg = aggregate_social(channels)

    assert agg.total_followers == 1000
    assert agg.engagement_rate == pytest.approx(1.5)
    assert agg.posts_7d == 3
    assert agg.streak == 3


def test_aggregate_is_order_independent():
    channels = [
        _channel("a", enabled=True, followers=120, engagement_rate=0.4, posts_7d=1, streak_weeks=0),
        _channel("b", enabled=True, followers=3000, engagement_rate=1.2, posts_7d=3, streak_weeks=5),
        _channel("c", enabled=False, followers=99),
        _channel("d", enabled=True, followers=75, engagement_rate=2.9, posts_7d=0, streak_weeks=2),
    ]

    forward = aggregate_social(channels)
    backward = aggregate_social(list(reversed(channels)))

    assert forward.total_followers == backward.total_followers
    assert forward.posts_7d == backward.posts_7d
    assert forward.streak == backward.streak
    assert forward.engagement_rate == pytest.approx(backward.engagement_rate)


def test_channel_accepts_on_flag_and_null_metrics():
    ch = SocialChannel.model_validate(
        {"key": "x", "name": "X", "on": True, "followers": None, "engagement_rate": None}
    )
    assert ch.enabled is True
    assert ch.followers == 0
    assert ch.engagement_rate == 0.0


def test_default_channels_score_low_everywhere():
    agg = aggregate_social()

    assert agg.total_followers == 715
    assert agg.posts_7d == 1
    assert agg.streak == 0
    assert aggregate_social(DEFAULT_CHANNELS) == agg


@pytest.mark.parametrize(
    "followers, band",
    [(0, Band.LOW), (999, Band.LOW), (1000, Band.OK), (5000, Band.OK), (5001, Band.GOOD)],
)
def test_followers_boundaries(followers, band):
    assert followers_band(followers) is band


@pytest.mark.parametrize(
    "rate, band",
    [(0.69, Band.LOW), (0.7, Band.OK), (1.5, Band.OK), (1.51, Band.GOOD)],
)
def test_engagement_boundaries(rate, band):
    assert engagement_band(rate) is band


@pytest.mark.parametrize(
    "posts, band",
    [(0, Band.LOW), (1, Band.LOW), (2, Band.OK), (3, Band.OK), (4, Band.GOOD)],
)
def test_posts_boundaries(posts, band):
    assert posts_band(posts) is band


@pytest.mark.parametrize(
    "streak, band",
    [(0, Band.LOW), (1, Band.OK), (2, Band.OK), (3, Band.GOOD)],
)
def test_streak_boundaries(streak, band):
    assert streak_band(streak) is band


def test_band_order():
    assert Band.LOW.rank < Band.OK.rank < Band.GOOD.rank


def test_all_disabled_microcopy():
    bands = score_social(aggregate_social([_channel("tiktok", enabled=False)]))
    copy = social_microcopy(bands)

    assert (bands.followers, bands.engagement, bands.posts, bands.streak) == ("low", "low", "low", "low")
    assert (copy.followers, copy.engagement, copy.posts, copy.streak) == (
        "below local median",
        "audience isn't reacting",
        "no posting cadence",
        "streak broken",
    )


def test_microcopy_is_per_metric():
    agg = SocialAggregate(total_followers=2500, engagement_rate=3.0, posts_7d=0, streak=1)
    copy = social_microcopy(score_social(agg))

    assert copy.followers == "growing base"
    assert copy.engagement == "high engagement"
    assert copy.posts == "no posting cadence"
    assert copy.streak == "building momentum"
