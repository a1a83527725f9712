# tests/test_pool.py
import sqlite3
import time

import pytest
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import NullPool

from shared.pool import (
    HEALTHY_MESSAGE,
    HEAVY_LOAD_MESSAGE,
    HIGH_WAIT_MESSAGE,
    IDLE_CLOSED_MESSAGE,
    LIFETIME_CLOSED_MESSAGE,
    InstrumentedQueuePool,
    PoolInspector,
    PoolStats,
    evaluate_pool_stats,
    format_duration,
)


def creator():
    return sqlite3.connect(":memory:")


class TestEvaluatePoolStats:
    def test_quiet_pool_is_healthy(self):
        assert evaluate_pool_stats(PoolStats()) == HEALTHY_MESSAGE

    def test_heavy_load(self):
        stats = PoolStats(open_connections=41, in_use=41)
        assert evaluate_pool_stats(stats) == HEAVY_LOAD_MESSAGE

    def test_forty_open_connections_is_not_heavy(self):
        assert evaluate_pool_stats(PoolStats(open_connections=40)) == HEALTHY_MESSAGE

    def test_wait_count_overrides_heavy_load(self):
        stats = PoolStats(open_connections=41, wait_count=1001)
        assert evaluate_pool_stats(stats) == HIGH_WAIT_MESSAGE

    def test_idle_closed_overrides_wait_count(self):
        stats = PoolStats(open_connections=41, wait_count=1001, max_idle_closed=21)
        assert evaluate_pool_stats(stats) == IDLE_CLOSED_MESSAGE

    def test_lifetime_closed_wins_last(self):
        stats = PoolStats(
            open_connections=41,
            wait_count=1001,
            max_idle_closed=21,
            max_lifetime_closed=21,
        )
        assert evaluate_pool_stats(stats) == LIFETIME_CLOSED_MESSAGE

    def test_half_of_open_connections_uses_integer_division(self):
        # 3 // 2 == 1, so one closed connection is not "many"
        assert evaluate_pool_stats(PoolStats(open_connections=3, max_idle_closed=1)) == HEALTHY_MESSAGE
        # 1 // 2 == 0
        assert evaluate_pool_stats(PoolStats(open_connections=1, max_idle_closed=1)) == IDLE_CLOSED_MESSAGE

    def test_wait_count_threshold_is_exclusive(self):
        assert evaluate_pool_stats(PoolStats(wait_count=1000)) == HEALTHY_MESSAGE


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0s"),
            (0.0000005, "500ns"),
            (0.0000015, "1.5µs"),
            (0.0015, "1.5ms"),
            (1.5, "1.5s"),
            (123, "2m3s"),
            (3600, "1h0m0s"),
        ],
    )
    def test_matches_go_duration_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestInstrumentedPool:
    def test_checkout_on_saturated_pool_counts_a_wait(self):
        pool = InstrumentedQueuePool(creator, pool_size=1, max_overflow=0, timeout=0.05)
        held = pool.connect()

        with pytest.raises(PoolTimeoutError):
            pool.connect()

        assert pool.wait_count == 1
        assert pool.wait_duration > 0
        held.close()
        pool.dispose()

    def test_checkout_with_idle_connection_does_not_wait(self):
        pool = InstrumentedQueuePool(creator, pool_size=1, max_overflow=0, timeout=0.05)
        pool.connect().close()
        pool.connect().close()

        assert pool.wait_count == 0
        assert pool.wait_duration == 0.0
        pool.dispose()


class TestPoolInspector:
    def test_reports_in_use_and_idle(self):
        pool = InstrumentedQueuePool(creator, pool_size=2, max_overflow=0)
        inspector = PoolInspector(pool)

        first = pool.connect()
        second = pool.connect()
        second.close()

        stats = inspector.stats()
        assert stats.open_connections == 2
        assert stats.in_use == 1
        assert stats.idle == 1
        first.close()
        pool.dispose()

    def test_overflow_returned_to_full_pool_counts_as_idle_closed(self):
        pool = InstrumentedQueuePool(creator, pool_size=1, max_overflow=1)
        inspector = PoolInspector(pool)

        first = pool.connect()
        second = pool.connect()
        first.close()
        second.close()

        stats = inspector.stats()
        assert stats.max_idle_closed == 1
        assert stats.max_lifetime_closed == 0
        pool.dispose()

    def test_recycled_connection_counts_as_lifetime_closed(self):
        pool = InstrumentedQueuePool(creator, pool_size=1, max_overflow=0, recycle=0.05)
        inspector = PoolInspector(pool, recycle=0.05)

        pool.connect().close()
        time.sleep(0.1)
        pool.connect().close()

        stats = inspector.stats()
        assert stats.max_lifetime_closed == 1
        assert stats.max_idle_closed == 0
        pool.dispose()

    def test_invalidated_connection_is_not_counted(self):
        pool = InstrumentedQueuePool(creator, pool_size=1, max_overflow=0)
        inspector = PoolInspector(pool)

        conn = pool.connect()
        conn.invalidate()
        conn.close()

        stats = inspector.stats()
        assert stats.max_idle_closed == 0
        assert stats.max_lifetime_closed == 0
        pool.dispose()

    def test_pool_without_counters_reports_zero(self):
        inspector = PoolInspector(NullPool(creator))
        assert inspector.stats() == PoolStats()
