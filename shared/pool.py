"""
Connection Pool Instrumentation

SQLAlchemy pools report how many connections are checked in or out, but not
how often callers had to wait for one or why connections were closed. The
pool classes and inspector in this module keep those counters so the health
check can report them and flag badly tuned pools.
"""

import time
from dataclasses import dataclass

from sqlalchemy import event
from sqlalchemy.pool import AsyncAdaptedQueuePool, Pool, QueuePool


# Health message thresholds
HEAVY_LOAD_OPEN_CONNECTIONS = 40
HIGH_WAIT_COUNT = 1000

HEALTHY_MESSAGE = "It's healthy"
HEAVY_LOAD_MESSAGE = "The database is experiencing heavy load."
HIGH_WAIT_MESSAGE = (
    "The database has a high number of wait events, indicating potential bottlenecks."
)
IDLE_CLOSED_MESSAGE = (
    "Many idle connections are being closed, consider revising the connection pool settings."
)
LIFETIME_CLOSED_MESSAGE = (
    "Many connections are being closed due to max lifetime, consider increasing "
    "max lifetime or revising the connection usage pattern."
)

# Keys stored in ConnectionPoolEntry.info
_BORN_AT = "finma_born_at"
_INVALIDATED = "finma_invalidated"


@dataclass
class PoolStats:
    """Point-in-time snapshot of pool counters."""
    open_connections: int = 0
    in_use: int = 0
    idle: int = 0
    wait_count: int = 0
    wait_duration: float = 0.0  # seconds
    max_idle_closed: int = 0
    max_lifetime_closed: int = 0


class WaitTrackingMixin:
    """
    Count checkouts that found the pool saturated.

    A checkout waits when no idle connection is queued and the overflow is
    exhausted. The time spent is added to ``wait_duration`` even when the
    wait ends in a pool timeout.
    """

    wait_count: int = 0
    wait_duration: float = 0.0

    def _saturated(self) -> bool:
        return (
            self.checkedin() == 0
            and self._max_overflow > -1
            and self._overflow >= self._max_overflow
        )

    def _do_get(self):
        if not self._saturated():
            return super()._do_get()

        started = time.perf_counter()
        try:
            return super()._do_get()
        finally:
            self.wait_count += 1
            self.wait_duration += time.perf_counter() - started


class InstrumentedQueuePool(WaitTrackingMixin, QueuePool):
    """QueuePool with wait accounting (sync engines)."""


class InstrumentedAsyncPool(WaitTrackingMixin, AsyncAdaptedQueuePool):
    """AsyncAdaptedQueuePool with wait accounting (asyncpg engines)."""


class PoolInspector:
    """
    Collects close statistics for a pool through pool events.

    Args:
        pool: The pool to observe (``engine.sync_engine.pool`` for async engines)
        recycle: The pool's recycle age in seconds, -1 when disabled
    """

    def __init__(self, pool: Pool, recycle: float = -1):
        self.pool = pool
        self.recycle = recycle
        self.max_idle_closed = 0
        self.max_lifetime_closed = 0

        event.listen(pool, "connect", self._on_connect)
        event.listen(pool, "invalidate", self._on_invalidate)
        event.listen(pool, "close", self._on_close)

    def _on_connect(self, dbapi_connection, connection_record):
        connection_record.info[_BORN_AT] = time.monotonic()

    def _on_invalidate(self, dbapi_connection, connection_record, exception):
        connection_record.info[_INVALIDATED] = True

    def _on_close(self, dbapi_connection, connection_record):
        if connection_record is None:
            return
        info = connection_record.info
        # Broken connections are neither idle nor expired
        if info.pop(_INVALIDATED, False):
            return

        born_at = info.get(_BORN_AT)
        if (
            self.recycle > -1
            and born_at is not None
            and time.monotonic() - born_at > self.recycle
        ):
            self.max_lifetime_closed += 1
        else:
            self.max_idle_closed += 1

    def stats(self) -> PoolStats:
        """Return the current pool counters."""
        pool = self.pool
        in_use = idle = 0
        if isinstance(pool, QueuePool):
            in_use = pool.checkedout()
            idle = pool.checkedin()

        return PoolStats(
            open_connections=in_use + idle,
            in_use=in_use,
            idle=idle,
            wait_count=getattr(pool, "wait_count", 0),
            wait_duration=getattr(pool, "wait_duration", 0.0),
            max_idle_closed=self.max_idle_closed,
            max_lifetime_closed=self.max_lifetime_closed,
        )


def evaluate_pool_stats(stats: PoolStats) -> str:
    """
    Pick the health message for a set of pool counters.

    Checks run in a fixed order and a later match replaces an earlier one.
    """
    message = HEALTHY_MESSAGE
    half_open = stats.open_connections // 2

    if stats.open_connections > HEAVY_LOAD_OPEN_CONNECTIONS:
        message = HEAVY_LOAD_MESSAGE

    if stats.wait_count > HIGH_WAIT_COUNT:
        message = HIGH_WAIT_MESSAGE

    if stats.max_idle_closed > half_open:
        message = IDLE_CLOSED_MESSAGE

    if stats.max_lifetime_closed > half_open:
        message = LIFETIME_CLOSED_MESSAGE

    return message


def _trim(value: float) -> str:
    return f"{value:.9f}".rstrip("0").rstrip(".")


def format_duration(seconds: float) -> str:
    """Format seconds the way Go prints a time.Duration (e.g. 1.5ms, 2m3s)."""
    nanos = int(round(seconds * 1e9))
    if nanos <= 0:
        return "0s"
    if nanos < 1_000:
        return f"{nanos}ns"
    if nanos < 1_000_000:
        return f"{_trim(nanos / 1e3)}µs"
    if nanos < 1_000_000_000:
        return f"{_trim(nanos / 1e6)}ms"

    hours, rest = divmod(nanos, 3600 * 1_000_000_000)
    minutes, rest = divmod(rest, 60 * 1_000_000_000)
    text = f"{_trim(rest / 1e9)}s"
    if hours:
        return f"{hours}h{minutes}m{text}"
    if minutes:
        return f"{minutes}m{text}"
    return text
