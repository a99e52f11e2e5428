"""Latest-snapshot lookup for the dashboard KPI row.

Reads the presentation view first. The view does not always carry the
ratings distribution, so when it is missing or unreadable the latest raw
snapshot for the same business is consulted, and only then. The
distribution is recovered from stored data, never synthesized.

Error handling:
- NoResultFound from either query means "nothing there" and is not raised.
- Any other storage error propagates; retries belong to the caller.
- A malformed distribution is logged and dropped; the snapshot stays valid.
"""

import json
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession

from app.metrics import distribution_sources, snapshot_fetches
from app.models.dashboard_view import dashboard_row1_view
from app.models.gbp_snapshot import GbpSnapshot
from app.schemas.analytics import ReviewsDistribution, SnapshotResult, SnapshotRow
from app.services.freshness import is_fresh

log = structlog.get_logger(__name__)


def parse_distribution(value: Any, *, place_id: str, source: str) -> Optional[ReviewsDistribution]:
    """Decode a stored ratings distribution.

    Accepts a mapping or a JSON-encoded string. Returns None when the value
    is absent, empty, or does not decode into star-level counts.
    """
    if value is None or value == "":
        return None

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            log.warning("distribution_parse_failed", place_id=place_id, source=source, reason="invalid_json")
            return None

    if not isinstance(value, dict):
        log.warning("distribution_parse_failed", place_id=place_id, source=source, reason="not_a_mapping")
        return None
    if not value:
        return None

    try:
        dist = ReviewsDistribution.model_validate(value)
    except ValidationError as exc:
        log.warning(
            "distribution_parse_failed",
            place_id=place_id,
            source=source,
            reason="invalid_counts",
            error=str(exc),
        )
        return None

    if not dist.model_dump(exclude_none=True):
        log.warning("distribution_parse_failed", place_id=place_id, source=source, reason="no_star_levels")
        return None
    return dist


async def _latest_presented_row(session: AsyncSession, place_id: str) -> Optional[dict]:
    result = await session.execute(
        select(dashboard_row1_view)
        .where(dashboard_row1_view.c.business_place_id == place_id)
        .order_by(dashboard_row1_view.c.snapshot_ts.desc())
        .limit(1)
    )
    try:
        return dict(result.mappings().one())
    except NoResultFound:
        return None


async def _latest_raw_payload(session: AsyncSession, place_id: str) -> Optional[Any]:
    result = await session.execute(
        select(GbpSnapshot.raw)
        .where(GbpSnapshot.business_place_id == place_id)
        .order_by(GbpSnapshot.snapshot_ts.desc())
        .limit(1)
    )
    try:
        return result.scalar_one()
    except NoResultFound:
        return None


async def _distribution_from_raw(session: AsyncSession, place_id: str) -> Optional[ReviewsDistribution]:
    raw = await _latest_raw_payload(session, place_id)
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            log.warning("raw_payload_parse_failed", place_id=place_id)
            return None
    if not isinstance(raw, dict):
        return None
    return parse_distribution(raw.get("reviews_distribution"), place_id=place_id, source="raw")


async def fetch_latest_snapshot(
    session: AsyncSession,
    place_id: str,
    now: Optional[datetime] = None,
) -> SnapshotResult:
    """Fetch the latest presented snapshot for a business and judge its freshness.

    Returns SnapshotResult(row=None, is_fresh=False) when the business has no
    snapshot yet.
    """
    row = await _latest_presented_row(session, place_id)
    if row is None:
        snapshot_fetches.labels(outcome="missing").inc()
        log.info("snapshot_missing", place_id=place_id)
        return SnapshotResult(row=None, is_fresh=False)

    distribution = parse_distribution(row.pop("reviews_distribution", None), place_id=place_id, source="view")
    source = "view"
    if distribution is None:
        # Raw table is queried only after the view came back without a usable distribution
        distribution = await _distribution_from_raw(session, place_id)
        source = "raw" if distribution is not None else "none"

    snapshot = SnapshotRow.model_validate({**row, "reviews_distribution": distribution})
    fresh = is_fresh(snapshot.snapshot_ts, now)

    snapshot_fetches.labels(outcome="found").inc()
    distribution_sources.labels(source=source).inc()
    log.info(
        "snapshot_fetched",
        place_id=place_id,
        snapshot_ts=snapshot.snapshot_ts.isoformat(),
        is_fresh=fresh,
        distribution_source=source,
    )
    return SnapshotResult(row=snapshot, is_fresh=fresh)
