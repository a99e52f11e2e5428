"""Prometheus metrics for the analytics core."""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

snapshot_fetches = Counter(
    "visibility_snapshot_fetches_total",
    "Latest-snapshot lookups by outcome",
    ["outcome"],  # found | missing
)
distribution_sources = Counter(
    "visibility_distribution_source_total",
    "Where the ratings distribution of a fetched snapshot came from",
    ["source"],  # view | raw | none
)
realtime_events = Counter(
    "visibility_realtime_events_total",
    "Change notifications delivered to subscribers",
)
realtime_subscribe_failures = Counter(
    "visibility_realtime_subscribe_failures_total",
    "Change stream subscriptions that could not be established",
)


async def metrics_endpoint() -> Response:
    """GET /metrics in Prometheus text format."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
