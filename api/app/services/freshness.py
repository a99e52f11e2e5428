"""Snapshot freshness evaluation.

A snapshot is trusted as current for a fixed window after capture. The
result is derived on every read and never stored, since "now" moves.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

# Maximum snapshot age still considered current (24 hours).
FRESH_MINUTES = 1440

_FRESH_WINDOW = timedelta(minutes=FRESH_MINUTES)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def snapshot_age_minutes(snapshot_ts: datetime, now: Optional[datetime] = None) -> float:
    """Minutes elapsed between capture and now. Negative for future timestamps."""
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return (now - _as_utc(snapshot_ts)).total_seconds() / 60.0


def is_fresh(snapshot_ts: datetime, now: Optional[datetime] = None) -> bool:
    """True when the snapshot is at most FRESH_MINUTES old (inclusive).

    Naive datetimes are read as UTC; comparison is between absolute instants.
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return now - _as_utc(snapshot_ts) <= _FRESH_WINDOW
