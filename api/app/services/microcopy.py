"""Review microcopy and the dashboard's next-action recommendation.

Short phrases for the review KPIs (velocity, volume, rating, visual trust),
the star distribution as whole percentages, and the single recommendation
shown under the KPI row.
"""

import math
from typing import Optional

from app.schemas.analytics import DistributionSlice, NextAction, ReviewsDistribution

MISSING = "—"

# Next action: velocity message wins below this many reviews in 30 days,
# otherwise volume wins below this lifetime count.
VELOCITY_FOCUS_BELOW = 5
VOLUME_FOCUS_BELOW = 50


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def describe_velocity(last_30: Optional[float]) -> str:
    if not _usable(last_30):
        return MISSING
    count = _round_half_up(last_30)
    if count >= 20:
        return "High velocity — trending"
    if count >= 5:
        return "Healthy momentum"
    if count >= 1:
        return "Low velocity — aim 5+"
    return "Quiet — ask recent customers"


def describe_volume(total: Optional[float]) -> str:
    if not _usable(total):
        return MISSING
    count = _round_half_up(total)
    if count >= 200:
        return "Market-leading volume"
    if count >= 50:
        return "Strong — keep growing"
    if count >= 10:
        return "Okay — aim 50+"
    return "Too few — aim 20+"


def _fmt_pct(value: Optional[float], digits: int = 1) -> str:
    if not _usable(value):
        return MISSING
    return f"{value:.{digits}f}%"


def describe_rating(rating: Optional[float], negative_share: Optional[float]) -> tuple[str, str]:
    """Return (subtext, tone) for the rating KPI. Tone is danger|warn|ok|great."""
    neg = f"{_fmt_pct(negative_share)} negative"
    if not _usable(rating):
        return neg, "ok"
    if rating >= 4.6:
        return f"{neg} • Excellent", "great"
    if rating >= 4.0:
        return f"{neg} • Good", "ok"
    if rating >= 3.5:
        return f"{neg} • Mixed", "warn"
    return f"{neg} • Needs work", "danger"


def describe_visual_trust(score: Optional[float]) -> tuple[str, str]:
    """Return (label, subtext) for the 0-100 visual trust score."""
    if not _usable(score):
        return MISSING, MISSING
    value = _round_half_up(score)
    if value >= 85:
        return "Excellent", "Top-tier presence"
    if value >= 70:
        return "Strong", "Looks credible"
    if value >= 50:
        return "Okay", "Add fresh photos & info"
    return "Weak", "Thin photos/content"


def format_distribution(
    distribution: Optional[ReviewsDistribution],
    total: Optional[int],
) -> list[DistributionSlice]:
    """Star distribution as whole percentages of total, 5★ first.

    Rounding drift is absorbed by the largest slice so the result sums to
    100. Empty when the distribution or total is missing or zero.
    """
    if distribution is None or not total:
        return []

    counts = [
        ("5★", distribution.five or 0),
        ("4★", distribution.four or 0),
        ("3★", distribution.three or 0),
        ("2★", distribution.two or 0),
        ("1★", distribution.one or 0),
    ]
    slices = [DistributionSlice(label=label, pct=_round_half_up(count / total * 100)) for label, count in counts]

    drift = 100 - sum(s.pct for s in slices)
    if drift:
        largest = max(range(len(slices)), key=lambda i: (slices[i].pct, -i))
        slices[largest].pct += drift
    return slices


def next_action(
    has_gbp: bool,
    reviews_total: Optional[int],
    reviews_last_30: Optional[int],
) -> NextAction:
    """Recommendation shown under the KPI row.

    Without a verified map listing nothing else matters: ask the owner to
    claim it. Otherwise push for reviews, explaining the push with velocity
    when recent reviews are thin, with volume when lifetime count is low,
    and with velocity by default.
    """
    if not has_gbp:
        return NextAction(
            kind="claim_profile",
            headline="Not on Google Maps",
            subtext="You're invisible to \"near me\" searches",
            cta="Create & Verify My Profile",
        )

    if reviews_last_30 is not None and reviews_last_30 < VELOCITY_FOCUS_BELOW:
        subtext = describe_velocity(reviews_last_30)
    elif reviews_total is not None and reviews_total < VOLUME_FOCUS_BELOW:
        subtext = describe_volume(reviews_total)
    else:
        subtext = describe_velocity(reviews_last_30)

    return NextAction(
        kind="collect_reviews",
        headline="Boost your visibility this week",
        subtext=subtext,
        cta="Ask 5 recent customers for reviews",
    )
