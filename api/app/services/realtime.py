"""Live change notifications for raw snapshots.

The ingestion side writes snapshots_gbp; a trigger on that table emits
pg_notify('table_changes', {"table", "op", "business_place_id"}). This module
listens on that channel and turns every matching event into an opaque
"something changed" signal. Event payloads differ between INSERT, UPDATE and
DELETE, so subscribers never read them: they re-fetch instead.

Contract of subscribe_to_changes():
- on_change() is called with no arguments for every event of the business.
- The returned disposer is idempotent. Once it has been called, on_change is
  not invoked again and callback tasks still pending are cancelled.
- If the stream cannot be established the failure is logged and a no-op
  disposer is returned, so callers degrade to polling.
"""

import asyncio
import inspect
import json
from typing import Any, Awaitable, Callable, Optional, Protocol

import asyncpg
import structlog
from sqlalchemy.engine import make_url

from app.config import settings
from app.metrics import realtime_events, realtime_subscribe_failures

log = structlog.get_logger(__name__)

NOTIFY_CHANNEL = "table_changes"
SNAPSHOT_TABLE = "snapshots_gbp"

Disposer = Callable[[], Awaitable[None]]
ChangeEvent = dict[str, Any]
Predicate = Callable[[ChangeEvent], bool]
EventHandler = Callable[[ChangeEvent], None]


class ChangeStream(Protocol):
    async def listen(self, table: str, predicate: Predicate, handler: EventHandler) -> Disposer:
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


async def _noop() -> None:
    return None


def _asyncpg_dsn(database_url: str) -> str:
    """asyncpg wants a plain postgresql:// DSN, not the SQLAlchemy driver URL."""
    url = make_url(database_url).set(drivername="postgresql")
    return url.render_as_string(hide_password=False)


class PgNotifyChangeStream:
    """Fan-out of one LISTEN connection to many in-process subscribers.

    The asyncpg connection is opened on first listen() and shared by every
    subscriber; dispatch filters by table and predicate. Handlers live on the
    stream, not the connection, so they survive a reconnect.
    """

    def __init__(self, dsn: Optional[str] = None, channel: str = NOTIFY_CHANNEL) -> None:
        self.dsn = dsn or _asyncpg_dsn(settings.database_url)
        self.channel = channel
        self._conn: Optional[asyncpg.Connection] = None
        self._lock = asyncio.Lock()
        self._handlers: dict[int, tuple[str, Predicate, EventHandler]] = {}
        self._next_token = 0

    async def _ensure_connection(self) -> asyncpg.Connection:
        async with self._lock:
            if self._conn is None or self._conn.is_closed():
                dropped = self._conn is not None
                conn = await asyncpg.connect(self.dsn)
                await conn.add_listener(self.channel, self._dispatch)
                self._conn = conn
                if dropped:
                    log.warning("change_stream_reconnected", channel=self.channel, subscribers=len(self._handlers))
                else:
                    log.info("change_stream_connected", channel=self.channel)
            return self._conn

    def _dispatch(self, connection, pid, channel, payload) -> None:
        try:
            event = json.loads(payload)
        except (TypeError, ValueError):
            log.warning("change_stream_bad_payload", channel=channel)
            return
        if not isinstance(event, dict):
            return

        for table, predicate, handler in list(self._handlers.values()):
            if event.get("table") != table or not predicate(event):
                continue
            handler(event)

    async def listen(self, table: str, predicate: Predicate, handler: EventHandler) -> Disposer:
        await self._ensure_connection()
        token = self._next_token
        self._next_token += 1
        self._handlers[token] = (table, predicate, handler)

        async def release() -> None:
            self._handlers.pop(token, None)

        return release

    async def ping(self) -> bool:
        """False before the first listen(). A dropped connection is reopened
        here, and the error propagates if that fails."""
        if self._conn is None:
            return False
        conn = await self._ensure_connection()
        await conn.fetchval("SELECT 1")
        return True

    async def close(self) -> None:
        self._handlers.clear()
        async with self._lock:
            if self._conn is not None and not self._conn.is_closed():
                await self._conn.remove_listener(self.channel, self._dispatch)
                await self._conn.close()
            self._conn = None


class NullChangeStream:
    """Stream used when live updates are switched off. Nothing is ever delivered."""

    async def listen(self, table: str, predicate: Predicate, handler: EventHandler) -> Disposer:
        return _noop

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class _Subscription:
    def __init__(self, place_id: str, on_change: Callable[[], Any]) -> None:
        self.place_id = place_id
        self._on_change = on_change
        self._release: Optional[Disposer] = None
        self._tasks: set[asyncio.Task] = set()
        self.closed = False

    def matches(self, event: ChangeEvent) -> bool:
        return event.get("business_place_id") == self.place_id

    def deliver(self, event: ChangeEvent) -> None:
        if self.closed:
            return
        realtime_events.inc()
        log.info("realtime_event", place_id=self.place_id, op=event.get("op"))
        try:
            result = self._on_change()
        except Exception:
            log.error("realtime_callback_failed", place_id=self.place_id, exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("realtime_callback_failed", place_id=self.place_id, exc_info=task.exception())

    async def dispose(self) -> None:
        if self.closed:
            return
        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        release, self._release = self._release, None
        if release is not None:
            await release()
        log.info("realtime_unsubscribed", place_id=self.place_id)


async def subscribe_to_changes(
    stream: ChangeStream,
    place_id: str,
    on_change: Callable[[], Any],
) -> Disposer:
    """Call on_change() whenever a raw snapshot of place_id is inserted, updated or deleted.

    on_change may be a plain function or a coroutine function. Returns an
    idempotent async disposer.
    """
    subscription = _Subscription(place_id, on_change)
    try:
        subscription._release = await stream.listen(
            SNAPSHOT_TABLE, subscription.matches, subscription.deliver
        )
    except Exception as exc:
        realtime_subscribe_failures.inc()
        log.warning("realtime_subscribe_failed", place_id=place_id, error=str(exc))
        subscription.closed = True
        return _noop

    log.info("realtime_subscribed", place_id=place_id, table=SNAPSHOT_TABLE)
    return subscription.dispose


class SubscriptionSlot:
    """Holds at most one live subscription for a caller.

    Switching to another business disposes the previous subscription before
    the new one is opened, so callbacks for a stale business never fire.
    """

    def __init__(self, stream: ChangeStream) -> None:
        self._stream = stream
        self._dispose: Optional[Disposer] = None
        self.place_id: Optional[str] = None

    async def replace(self, place_id: str, on_change: Callable[[], Any]) -> None:
        await self.clear()
        self._dispose = await subscribe_to_changes(self._stream, place_id, on_change)
        self.place_id = place_id

    async def clear(self) -> None:
        dispose, self._dispose = self._dispose, None
        self.place_id = None
        if dispose is not None:
            await dispose()
