"""Wait for a fresh snapshot of one business.

Right after onboarding kicks off ingestion, the latest snapshot is usually
stale or missing. The watcher yields what exists now, then waits for either
a change notification or the poll interval, re-fetches, and yields again
once the snapshot is fresh. Notifications only wake the loop; every update
comes from a full re-fetch, so the last fetch always wins.
"""

import asyncio
from typing import AsyncIterator, Callable, Optional

import structlog

from app.config import settings
from app.schemas.analytics import SnapshotResult
from app.services.realtime import ChangeStream, SubscriptionSlot
from app.services.snapshots import fetch_latest_snapshot

log = structlog.get_logger(__name__)


async def watch_snapshot(
    session_factory: Callable,
    stream: ChangeStream,
    place_id: str,
    *,
    poll_interval: Optional[float] = None,
    max_wait: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> AsyncIterator[SnapshotResult]:
    """Yield the current snapshot, then the first fresh one if it was stale.

    Stops after a fresh result, or once max_attempts re-fetches or max_wait
    seconds have passed; in that case the last fetched result is yielded
    when it differs from the first one. The change subscription is disposed
    on every exit path, including the consumer closing the generator early.
    """
    poll_interval = poll_interval if poll_interval is not None else settings.watch_poll_interval_seconds
    max_wait = max_wait if max_wait is not None else settings.watch_max_wait_seconds
    max_attempts = max_attempts if max_attempts is not None else settings.watch_max_attempts

    async def fetch() -> SnapshotResult:
        async with session_factory() as session:
            return await fetch_latest_snapshot(session, place_id)

    result = await fetch()
    yield result
    if result.row is not None and result.is_fresh:
        return

    log.info("snapshot_watch_started", place_id=place_id, has_row=result.row is not None)

    first = result
    changed = asyncio.Event()
    slot = SubscriptionSlot(stream)
    await slot.replace(place_id, changed.set)
    loop = asyncio.get_running_loop()
    started = loop.time()
    attempts = 0
    try:
        while attempts < max_attempts:
            remaining = max_wait - (loop.time() - started)
            if remaining <= 0:
                break

            try:
                await asyncio.wait_for(changed.wait(), timeout=min(poll_interval, remaining))
                trigger = "realtime"
            except asyncio.TimeoutError:
                trigger = "poll"
            changed.clear()
            attempts += 1

            try:
                result = await fetch()
            except Exception as exc:
                log.warning("snapshot_watch_fetch_failed", place_id=place_id, attempt=attempts, error=str(exc))
                continue

            if result.row is not None and result.is_fresh:
                log.info("snapshot_watch_fresh", place_id=place_id, attempt=attempts, trigger=trigger)
                yield result
                return

        log.info("snapshot_watch_timeout", place_id=place_id, attempts=attempts)
        if result != first:
            yield result
    finally:
        await slot.clear()
