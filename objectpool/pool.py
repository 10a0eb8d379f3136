"""
Pool - capacity-bounded, blocking rent/return over an access order.

The gate is a counting semaphore initialised to ``capacity`` permits. A permit
is taken before the access order is touched and given back after the access
order has taken the instance back, so at most ``capacity`` instances are ever
checked out. Callers block (without timeout) while the pool is exhausted.

Usage:
    with Pool(AccessOrderKind.FIFO, 4, make_connection, name="db") as pool:
        with pool.lease() as conn:
            conn.execute(...)
"""

from __future__ import annotations

import dataclasses
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic

from objectpool.access_order import AccessOrder, T, _validate_capacity, create_access_order
from objectpool.enums import AccessOrderKind
from objectpool.errors import PoolClosedError, PoolProtocolError
from objectpool.utils.ml_logging import get_logger

if TYPE_CHECKING:
    from objectpool.settings import PoolSettings

logger = get_logger(__name__)


class BasePool(Generic[T]):
    """
    State shared by the thread and asyncio pools: access order, checkout ledger
    and closed flag. Subclasses add the gate.

    The checkout ledger counts rented instances by identity so that a release of
    an instance that is not checked out (double release, foreign instance) is
    rejected instead of over-releasing the gate.
    """

    def __init__(
        self,
        order: AccessOrderKind | str,
        capacity: int,
        factory: Callable[[], T],
        *,
        name: str = "pool",
    ) -> None:
        self._capacity = _validate_capacity(capacity, minimum=1)
        self._name = name
        self._lock = threading.Lock()
        self._closed = False
        self._checked_out: Counter[int] = Counter()
        self._access_order: AccessOrder[T] = create_access_order(order, capacity, factory, name=name)

    @classmethod
    def from_settings(
        cls,
        factory: Callable[[], T],
        settings: PoolSettings | None = None,
        **overrides: Any,
    ):
        """
        Build a pool from PoolSettings (environment defaults when omitted).

        :param factory: Zero-argument callable producing instances.
        :param settings: Settings to use; load_settings() when None.
        :param overrides: Field overrides applied on top of the settings
            (access_order, capacity, name).
        """
        if settings is None:
            from objectpool.settings import load_settings

            settings = load_settings()
        if overrides:
            settings = dataclasses.replace(settings, **overrides)
        return cls(settings.access_order, settings.capacity, factory, name=settings.name)

    # ---------- Introspection ----------

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def access_order(self) -> AccessOrderKind:
        return self._access_order.kind

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_use(self) -> int:
        """Number of instances currently checked out."""
        with self._lock:
            return sum(self._checked_out.values())

    @property
    def available(self) -> int:
        """Number of idle instances ready to be handed out."""
        return self._access_order.idle_count

    def snapshot(self) -> dict[str, Any]:
        """Return current pool status for diagnostics."""
        return {
            "name": self._name,
            "capacity": self._capacity,
            "closed": self._closed,
            "in_use": self.in_use,
            "access_order": self._access_order.snapshot(),
            "timestamp": time.time(),
        }

    # ---------- Internal Methods ----------

    def _checkout(self) -> T:
        """Rent from the access order and record the checkout. Caller holds a permit."""
        with self._lock:
            if self._closed:
                raise PoolClosedError(f"Pool '{self._name}' is closed")
            item = self._access_order.rent()
            self._checked_out[id(item)] += 1
            in_use = sum(self._checked_out.values())
        logger.debug(f"[{self._name}] Acquired instance (in_use={in_use})")
        return item

    def _checkin(self, item: T) -> None:
        """Remove ``item`` from the checkout ledger; reject unknown instances."""
        with self._lock:
            key = id(item)
            if self._checked_out[key] <= 0:
                logger.error(f"[{self._name}] Release of an instance that is not checked out: {item!r}")
                raise PoolProtocolError(
                    f"Pool '{self._name}': instance {item!r} is not checked out "
                    "(double release or foreign instance)"
                )
            self._checked_out[key] -= 1
            if self._checked_out[key] == 0:
                del self._checked_out[key]

    def _mark_closed(self) -> bool:
        """Flip the closed flag. Returns False if the pool was already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            in_use = sum(self._checked_out.values())

        logger.keyinfo(f"[{self._name}] Closing pool (in_use={in_use})")
        return True

    def _drain(self) -> None:
        closed = self._access_order.drain()
        logger.keyinfo(f"[{self._name}] Pool closed, released {closed} idle instances")


class Pool(BasePool[T]):
    """
    Thread-safe object pool with a blocking, capacity-limited rent/return protocol.

    Args:
        order: AccessOrderKind (or "fifo"/"lifo") choosing which idle instance is
            handed out next.
        capacity: Maximum number of simultaneously checked-out instances (>= 1).
            The pool is pre-filled with this many instances.
        factory: Zero-argument callable producing a new instance. Instances must
            expose close().
        name: Pool name for logging and diagnostics.

    Raises:
        UnknownAccessOrderError: ``order`` is not FIFO or LIFO.
        PoolConfigurationError: ``capacity`` is not a positive integer.
    """

    def __init__(
        self,
        order: AccessOrderKind | str,
        capacity: int,
        factory: Callable[[], T],
        *,
        name: str = "pool",
    ) -> None:
        super().__init__(order, capacity, factory, name=name)
        self._gate = threading.Semaphore(capacity)
        logger.info(f"[{self._name}] Pool ready (order={self.access_order.name}, capacity={capacity})")

    def acquire(self) -> T:
        """
        Rent an instance, blocking until one of the ``capacity`` permits is free.

        :return: An instance owned by the caller until release().
        :raises PoolClosedError: If the pool is closed, including while waiting.
        """
        if self._closed:
            logger.error(f"[{self._name}] Attempted to acquire from closed pool")
            raise PoolClosedError(f"Pool '{self._name}' is closed")

        logger.debug(f"[{self._name}] Waiting for permit")
        self._gate.acquire()
        try:
            return self._checkout()
        except PoolClosedError:
            # Pass the wake-up on so every blocked caller sees the close
            self._gate.release()
            logger.warning(f"[{self._name}] Pool closed while waiting for permit")
            raise
        except Exception:
            self._gate.release()
            raise

    def release(self, item: T) -> None:
        """
        Return a rented instance and free its permit.

        :param item: An instance obtained from acquire() and not yet released.
        :raises PoolProtocolError: If ``item`` is not currently checked out.
        :raises ResourceReleaseError: If the instance had to be closed (overflow or
            closed pool) and close() failed. The permit is freed regardless.
        """
        self._checkin(item)
        try:
            self._access_order.return_(item)
        finally:
            self._gate.release()
        logger.debug(f"[{self._name}] Released instance")

    @contextmanager
    def lease(self) -> Iterator[T]:
        """
        Context manager for automatic acquisition and release.

        :return: A context manager yielding a rented instance.
        :raises PoolClosedError: If the pool is closed.
        """
        item = self.acquire()
        try:
            yield item
        finally:
            self.release(item)

    def close(self) -> None:
        """
        Close idle instances and refuse further acquires. Idempotent.

        Instances still checked out are closed when they are released. Callers
        blocked in acquire() are woken and receive PoolClosedError.

        :raises ResourceReleaseError: If closing any idle instance fails.
        """
        if not self._mark_closed():
            logger.debug(f"[{self._name}] Pool already closed")
            return
        try:
            self._drain()
        finally:
            self._gate.release()

    def __enter__(self) -> Pool[T]:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
