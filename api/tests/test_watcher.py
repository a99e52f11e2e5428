"""Tests for waiting on a fresh snapshot."""

import asyncio
from datetime import timedelta

import pytest

from app.schemas.analytics import SnapshotResult, SnapshotRow
from app.services import watcher
from conftest import NOW, FakeChangeStream, session_factory_for


def _result(fresh, row=True):
    if not row:
        return SnapshotResult(row=None, is_fresh=False)
    ts = NOW if fresh else NOW - timedelta(days=3)
    return SnapshotResult(row=SnapshotRow(business_place_id="place-1", snapshot_ts=ts), is_fresh=fresh)


@pytest.fixture
def scripted_fetch(monkeypatch):
    """Replace fetch_latest_snapshot with a scripted sequence of results."""
    calls = []

    def install(*results):
        queue = list(results)

        async def fake_fetch(session, place_id, now=None):
            calls.append(place_id)
            item = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(item, Exception):
                raise item
            return item

        monkeypatch.setattr(watcher, "fetch_latest_snapshot", fake_fetch)
        return calls

    return install


async def _collect(stream, **kwargs):
    factory = session_factory_for(object())
    return [r async for r in watcher.watch_snapshot(factory, stream, "place-1", **kwargs)]


def test_fresh_snapshot_is_yielded_once_without_subscribing(scripted_fetch):
    calls = scripted_fetch(_result(fresh=True))
    stream = FakeChangeStream()

    results = asyncio.run(_collect(stream, poll_interval=0.01, max_attempts=5))

    assert len(results) == 1
    assert results[0].is_fresh is True
    assert calls == ["place-1"]
    assert stream.handlers == {}


def test_change_notification_triggers_refetch(scripted_fetch):
    scripted_fetch(_result(fresh=False, row=False), _result(fresh=True))
    stream = FakeChangeStream()

    async def scenario():
        loop = asyncio.get_running_loop()
        loop.call_later(
            0.05,
            stream.emit,
            {"table": "snapshots_gbp", "op": "INSERT", "business_place_id": "place-1"},
        )
        return await _collect(stream, poll_interval=5.0, max_wait=2.0, max_attempts=3)

    results = asyncio.run(scenario())

    assert [r.is_fresh for r in results] == [False, True]
    assert results[0].row is None
    assert stream.handlers == {}
    assert stream.released == 1


def test_polling_picks_up_fresh_snapshot(scripted_fetch):
    calls = scripted_fetch(_result(fresh=False), _result(fresh=False), _result(fresh=True))
    stream = FakeChangeStream()

    results = asyncio.run(_collect(stream, poll_interval=0.01, max_wait=2.0, max_attempts=10))

    assert [r.is_fresh for r in results] == [False, True]
    assert len(calls) == 3


def test_gives_up_after_max_attempts(scripted_fetch):
    calls = scripted_fetch(_result(fresh=False))
    stream = FakeChangeStream()

    results = asyncio.run(_collect(stream, poll_interval=0.01, max_wait=2.0, max_attempts=3))

    # Unchanged stale snapshot is not repeated
    assert len(results) == 1
    assert results[0].is_fresh is False
    assert len(calls) == 4
    assert stream.handlers == {}


def test_timeout_yields_stale_row_that_appeared_while_waiting(scripted_fetch):
    calls = scripted_fetch(_result(fresh=False, row=False), _result(fresh=False))
    stream = FakeChangeStream()

    results = asyncio.run(_collect(stream, poll_interval=0.01, max_wait=2.0, max_attempts=3))

    assert [(r.row is not None, r.is_fresh) for r in results] == [(False, False), (True, False)]
    assert len(calls) == 4
    assert stream.handlers == {}
    assert stream.released == 1


def test_fetch_errors_while_waiting_keep_polling(scripted_fetch):
    scripted_fetch(_result(fresh=False), RuntimeError("db hiccup"), _result(fresh=True))
    stream = FakeChangeStream()

    results = asyncio.run(_collect(stream, poll_interval=0.01, max_wait=2.0, max_attempts=5))

    assert [r.is_fresh for r in results] == [False, True]


def test_early_close_disposes_subscription(scripted_fetch):
    scripted_fetch(_result(fresh=False))
    stream = FakeChangeStream()

    async def scenario():
        factory = session_factory_for(object())
        gen = watcher.watch_snapshot(factory, stream, "place-1", poll_interval=0.01, max_attempts=100)
        first = await gen.__anext__()
        task = asyncio.ensure_future(gen.__anext__())
        await asyncio.sleep(0.03)
        assert len(stream.handlers) == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await gen.aclose()
        return first

    first = asyncio.run(scenario())
    assert first.is_fresh is False
    assert stream.handlers == {}
