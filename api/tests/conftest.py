"""Shared fakes for the async session and the change stream."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import NoResultFound

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class FakeResult:
    """Stands in for sqlalchemy Result for the calls the services make."""

    def __init__(self, rows=None):
        self._rows = list(rows or [])

    def mappings(self):
        return self

    def one(self):
        if not self._rows:
            raise NoResultFound("No row was found when one was required")
        return self._rows[0]

    def scalar_one(self):
        return self.one()

    def scalar_one_or_none(self):
        return self._rows[0] if self._rows else None


class FakeSession:
    """Returns queued results (or raises queued exceptions) in execute order."""

    def __init__(self, *results):
        self._results = list(results)
        self.statements = []

    async def execute(self, statement, params=None):
        self.statements.append(statement)
        item = self._results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeChangeStream:
    """In-memory change stream with the same dispatch rules as the pg one."""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.handlers = {}
        self.released = 0
        self._next = 0
        self.closed = False

    async def listen(self, table, predicate, handler):
        if self.fail_with is not None:
            raise self.fail_with
        token = self._next
        self._next += 1
        self.handlers[token] = (table, predicate, handler)

        async def release():
            if self.handlers.pop(token, None) is not None:
                self.released += 1

        return release

    def emit(self, event):
        for table, predicate, handler in list(self.handlers.values()):
            if event.get("table") == table and predicate(event):
                handler(event)

    async def ping(self):
        return True

    async def close(self):
        self.closed = True


def view_row(**overrides):
    row = {
        "business_place_id": "place-1",
        "name": "Corner Bakery",
        "google_maps_url": "https://maps.google.com/?cid=1",
        "image_url": None,
        "snapshot_ts": NOW,
        "has_gbp": True,
        "rating_avg": 4.4,
        "reviews_total": 120,
        "reviews_last_30": 3,
        "negative_count": 6,
        "negative_share_percent": 5.0,
        "visual_trust": 72.0,
        "ui_variant": "default",
        "negative_subtext": "6 negative in total",
        "reviews_distribution": None,
    }
    row.update(overrides)
    return row


def session_factory_for(session):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


@pytest.fixture
def change_stream():
    return FakeChangeStream()
