"""
Test suite for AsyncPool.

Tests cover:
- Construction and pre-fill
- FIFO/LIFO reuse order
- Waiting tasks at capacity and hand-over on release
- Lease async context manager
- Release precondition checks
- Close: idle teardown, waiting tasks, idempotence
- Concurrent tasks never exceeding capacity
"""

import asyncio

import pytest
from objectpool.async_pool import AsyncPool
from objectpool.enums import AccessOrderKind
from objectpool.errors import (
    PoolClosedError,
    PoolProtocolError,
    UnknownAccessOrderError,
)


class TestAsyncPool:
    """Test suite for AsyncPool functionality."""

    async def test_basic_initialization(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 2, counter_factory, name="async-pool")

        assert pool.name == "async-pool"
        assert pool.available == 2
        assert pool.in_use == 0
        assert len(counter_factory.created) == 2

    async def test_unknown_order(self, counter_factory):
        with pytest.raises(UnknownAccessOrderError):
            AsyncPool("mru", 1, counter_factory)

    async def test_fifo_reuse_order(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 2, counter_factory)

        a = await pool.acquire()
        b = await pool.acquire()
        await pool.release(a)
        await pool.release(b)

        assert await pool.acquire() is a
        assert await pool.acquire() is b

    async def test_lifo_reuse_order(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.LIFO, 2, counter_factory)

        a = await pool.acquire()
        b = await pool.acquire()
        await pool.release(a)
        await pool.release(b)

        assert await pool.acquire() is b
        assert await pool.acquire() is a

    async def test_waits_at_capacity_then_hands_over(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.LIFO, 1, counter_factory)
        token = await pool.acquire()

        waiter = asyncio.create_task(pool.acquire())
        await asyncio.sleep(0.05)
        assert not waiter.done()

        await pool.release(token)

        assert await asyncio.wait_for(waiter, timeout=2.0) is token
        assert len(counter_factory.created) == 1

    async def test_acquire_blocks_without_timeout(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 1, counter_factory)
        await pool.acquire()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(pool.acquire(), timeout=0.1)

        # The cancelled wait did not consume a permit or create an overflow instance
        assert pool.in_use == 1
        assert len(counter_factory.created) == 1

    async def test_lease_context(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 1, counter_factory)

        async with pool.lease() as item:
            assert pool.in_use == 1
            assert item.value == "token#1"

        assert pool.in_use == 0
        assert pool.available == 1

    async def test_double_release_rejected(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 1, counter_factory)
        item = await pool.acquire()
        await pool.release(item)

        with pytest.raises(PoolProtocolError):
            await pool.release(item)

    async def test_close_and_reject(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 2, counter_factory)

        await pool.close()
        await pool.close()

        assert [r.close_calls for r in counter_factory.created] == [1, 1]
        with pytest.raises(PoolClosedError):
            await pool.acquire()

    async def test_close_wakes_waiting_tasks(self, counter_factory):
        pool = AsyncPool(AccessOrderKind.FIFO, 1, counter_factory)
        held = await pool.acquire()

        waiters = [asyncio.create_task(pool.acquire()) for _ in range(3)]
        await asyncio.sleep(0.05)
        assert not any(w.done() for w in waiters)

        await pool.close()
        results = await asyncio.wait_for(
            asyncio.gather(*waiters, return_exceptions=True), timeout=2.0
        )

        assert all(isinstance(r, PoolClosedError) for r in results)

        await pool.release(held)
        assert held.closed is True

    async def test_async_context_manager(self, counter_factory):
        async with AsyncPool(AccessOrderKind.LIFO, 2, counter_factory) as pool:
            async with pool.lease():
                pass

        assert pool.closed is True
        assert all(r.closed for r in counter_factory.created)

    async def test_concurrent_tasks_respect_capacity(self, counter_factory):
        capacity = 2
        pool = AsyncPool(AccessOrderKind.FIFO, capacity, counter_factory)
        active = {"now": 0, "peak": 0}

        async def worker():
            for _ in range(10):
                async with pool.lease():
                    active["now"] += 1
                    active["peak"] = max(active["peak"], active["now"])
                    await asyncio.sleep(0.001)
                    active["now"] -= 1

        await asyncio.gather(*(worker() for _ in range(6)))

        assert active["peak"] == capacity
        assert pool.in_use == 0
        assert len(counter_factory.created) == capacity
