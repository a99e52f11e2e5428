"""Dashboard analytics endpoints.

GET /api/v1/analytics/snapshot         -- latest KPI snapshot, freshness, next action
GET /api/v1/analytics/snapshot/stream  -- SSE: current snapshot, then the first fresh one
GET /api/v1/analytics/social           -- social aggregate, bands and microcopy
"""

import json
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from app.database import async_session_factory
from app.dependencies import DbSession, Stream
from app.schemas.analytics import SnapshotResponse, SocialResponse
from app.services.freshness import snapshot_age_minutes
from app.services.identity import resolve_place_id
from app.services.microcopy import format_distribution, next_action
from app.services.snapshots import fetch_latest_snapshot
from app.services.social import DEFAULT_CHANNELS, aggregate_social, score_social, social_microcopy
from app.services.watcher import watch_snapshot

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/snapshot", response_model=SnapshotResponse)
async def get_snapshot(
    db: DbSession,
    place_id: Optional[str] = Query(default=None, max_length=255),
) -> SnapshotResponse:
    """Resolve the business and return its latest snapshot.

    An empty response (place_id null) means there is nothing to show yet.
    Stale snapshots are returned with is_fresh=false rather than hidden.
    """
    resolved = await resolve_place_id(db, place_id)
    if resolved is None:
        return SnapshotResponse()

    now = datetime.now(timezone.utc)
    result = await fetch_latest_snapshot(db, resolved, now)
    row = result.row
    if row is None:
        return SnapshotResponse(place_id=resolved)

    return SnapshotResponse(
        place_id=resolved,
        row=row,
        is_fresh=result.is_fresh,
        age_minutes=round(snapshot_age_minutes(row.snapshot_ts, now), 1),
        next_action=next_action(row.has_gbp, row.reviews_total, row.reviews_last_30),
        distribution=format_distribution(row.reviews_distribution, row.reviews_total),
    )


@router.get("/snapshot/stream")
async def stream_snapshot(
    db: DbSession,
    stream: Stream,
    place_id: Optional[str] = Query(default=None, max_length=255),
) -> StreamingResponse:
    """Server-sent events for a dashboard waiting on ingestion.

    Emits a `snapshot` event with the current state, then another once a
    fresh snapshot lands, then `done`.
    """
    resolved = await resolve_place_id(db, place_id)

    async def events():
        if resolved is None:
            yield "event: done\ndata: {}\n\n"
            return
        async for result in watch_snapshot(async_session_factory, stream, resolved):
            payload = result.model_dump(mode="json")
            yield f"event: snapshot\ndata: {json.dumps(payload)}\n\n"
        yield "event: done\ndata: {}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/social", response_model=SocialResponse)
async def get_social() -> SocialResponse:
    """Score the social channel set.

    Channels come from the built-in fixture until per-channel metrics are
    ingested.
    """
    aggregate = aggregate_social(DEFAULT_CHANNELS)
    bands = score_social(aggregate)
    return SocialResponse(
        channels=DEFAULT_CHANNELS,
        aggregate=aggregate,
        bands=bands,
        microcopy=social_microcopy(bands),
    )
