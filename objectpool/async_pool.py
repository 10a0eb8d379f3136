import asyncio
from collections.abc import Callable
from contextlib import asynccontextmanager

from objectpool.access_order import T
from objectpool.enums import AccessOrderKind
from objectpool.errors import PoolClosedError
from objectpool.pool import BasePool
from objectpool.utils.ml_logging import get_logger

logger = get_logger(__name__)


class AsyncPool(BasePool[T]):
    """
    Asynchronous object pool for coroutines sharing a fixed set of instances.

    This class mirrors Pool for asyncio code: the gate is an asyncio.Semaphore
    with ``capacity`` permits, so waiting callers suspend instead of blocking the
    event loop thread. The factory and the instances' close() stay synchronous
    and run inline; keep them cheap or wrap slow work in the instance itself.

    :param order: AccessOrderKind (or "fifo"/"lifo") choosing the next idle instance.
    :param capacity: Maximum number of simultaneously checked-out instances (>= 1).
    :param factory: Zero-argument callable producing a new instance.
    :param name: Pool name for logging and diagnostics.
    :raises UnknownAccessOrderError: If order is not FIFO or LIFO.
    :raises PoolConfigurationError: If capacity is not a positive integer.
    """

    def __init__(
        self,
        order: AccessOrderKind | str,
        capacity: int,
        factory: Callable[[], T],
        *,
        name: str = "pool",
    ) -> None:
        """
        Initialize the pool, pre-fill its access order and create the gate.

        The pool is ready as soon as the constructor returns; no separate
        prepare step is required.

        :param order: Access order kind.
        :param capacity: Number of permits and pre-filled instances.
        :param factory: Zero-argument callable producing instances.
        :param name: Pool name for logging.
        :return: None.
        """
        super().__init__(order, capacity, factory, name=name)
        self._gate = asyncio.Semaphore(capacity)
        logger.info(f"[{self._name}] AsyncPool ready (order={self.access_order.name}, capacity={capacity})")

    async def acquire(self) -> T:
        """
        Rent an instance, waiting until one of the permits is free.

        There is no timeout; a caller waits until another caller releases or the
        pool is closed. Cancelling the waiting task gives up the wait cleanly.

        :param: None.
        :return: An instance of type T owned by the caller until release().
        :raises PoolClosedError: If the pool is closed, including while waiting.
        """
        if self._closed:
            logger.error(f"[{self._name}] Attempted to acquire from closed pool")
            raise PoolClosedError(f"Pool '{self._name}' is closed")

        logger.debug(f"[{self._name}] Waiting for permit")
        await self._gate.acquire()
        try:
            return self._checkout()
        except PoolClosedError:
            # Pass the wake-up on so every waiting task sees the close
            self._gate.release()
            logger.warning(f"[{self._name}] Pool closed while waiting for permit")
            raise
        except Exception:
            self._gate.release()
            raise

    async def release(self, item: T) -> None:
        """
        Return a rented instance to the pool and free its permit.

        :param item: The instance obtained from acquire().
        :return: None.
        :raises PoolProtocolError: If item is not currently checked out.
        :raises ResourceReleaseError: If the instance had to be closed and close()
            failed. The permit is freed regardless.
        """
        self._checkin(item)
        try:
            self._access_order.return_(item)
        finally:
            self._gate.release()
        logger.debug(f"[{self._name}] Released instance")

    @asynccontextmanager
    async def lease(self):
        """
        Context manager for automatic resource acquisition and release.

        This ensures the instance is returned even if the body raises.

        :return: A context manager yielding a rented instance.
        :raises PoolClosedError: If the pool is closed.
        """
        logger.debug(f"[{self._name}] Starting lease context")
        item = await self.acquire()
        try:
            yield item
        finally:
            logger.debug(f"[{self._name}] Lease context ending, releasing instance")
            await self.release(item)

    async def close(self) -> None:
        """
        Close idle instances and refuse further acquires. Idempotent.

        Instances still checked out are closed when released; waiting tasks are
        woken and receive PoolClosedError.

        :param: None.
        :return: None.
        :raises ResourceReleaseError: If closing any idle instance fails.
        """
        if not self._mark_closed():
            logger.debug(f"[{self._name}] Pool already closed")
            return
        try:
            self._drain()
        finally:
            self._gate.release()

    async def __aenter__(self) -> "AsyncPool[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
