"""
Access orders - idle-instance containers that decide which instance is rented next.

Two disciplines are provided:
1. FIFO - idle instances form a queue; the longest-idle instance is rented first
2. LIFO - idle instances form a stack; the most recently returned is rented first

Each access order pre-fills itself with ``capacity`` instances from the factory.
Counter and container are mutated inside a single lock, so rent/return are
linearizable even without the pool's gate in front of them.

Overflow: when the container is empty a rent manufactures a fresh instance, and
a return made while more than ``capacity`` instances are out is closed instead
of stored. Behind a Pool the gate keeps this path unreachable; used on its own an
access order degrades to "allocate fresh" past capacity.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from typing import Any, ClassVar, Generic, Protocol, TypeVar, runtime_checkable

from objectpool.enums import AccessOrderKind
from objectpool.errors import (
    PoolConfigurationError,
    ResourceReleaseError,
    UnknownAccessOrderError,
)
from objectpool.utils.ml_logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Closeable(Protocol):
    """Capability required of pooled instances: explicit release via close()."""

    def close(self) -> None: ...


T = TypeVar("T", bound=Closeable)


def _validate_capacity(capacity: Any, *, minimum: int) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        logger.error(f"Capacity must be an integer, got: {capacity!r}")
        raise PoolConfigurationError(f"Capacity must be an integer, got: {capacity!r}")
    if capacity < minimum:
        logger.error(f"Capacity must be >= {minimum}, got: {capacity}")
        raise PoolConfigurationError(f"Capacity must be >= {minimum}, got: {capacity}")
    return capacity


class AccessOrder(ABC, Generic[T]):
    """
    Base class for idle-instance containers.

    Subclasses only supply the container discipline (_take/_put/_drain_all);
    locking, bootstrap, overflow and close handling live here.

    Args:
        capacity: Number of instances to pre-create and the maximum number kept idle.
            Zero is legal: every rent creates and every return closes.
        factory: Zero-argument callable producing a new instance.
        name: Pool name used in log lines.
    """

    kind: ClassVar[AccessOrderKind]

    def __init__(self, capacity: int, factory: Callable[[], T], *, name: str = "pool") -> None:
        if not callable(factory):
            logger.error("Factory must be a callable function")
            raise TypeError("Factory must be a callable function")

        self._capacity = _validate_capacity(capacity, minimum=0)
        self._factory = factory
        self._name = name
        self._lock = threading.Lock()
        self._outstanding = 0
        self._closed = False
        self._created = 0
        self._closed_count = 0

        self._bootstrap()

    # ---------- Container discipline ----------

    @abstractmethod
    def _take(self) -> T:
        """Remove and return the next idle instance. Called with the lock held."""

    @abstractmethod
    def _put(self, item: T) -> None:
        """Store an idle instance. Called with the lock held."""

    @abstractmethod
    def _idle_len(self) -> int:
        """Number of idle instances. Called with the lock held."""

    @abstractmethod
    def _drain_all(self) -> list[T]:
        """Remove and return every idle instance in rent order. Called with the lock held."""

    # ---------- Public API ----------

    def rent(self) -> T:
        """
        Hand out an idle instance, or create an overflow instance when none is idle.

        :return: An instance owned by the caller until it is passed to return_().
        :raises Exception: Whatever the factory raises on overflow creation.
        """
        with self._lock:
            self._outstanding += 1
            if self._idle_len() > 0:
                item = self._take()
                logger.debug(
                    f"[{self._name}] Rented idle instance "
                    f"(idle={self._idle_len()}, outstanding={self._outstanding})"
                )
                return item

        logger.warning(
            f"[{self._name}] No idle instance available, creating overflow instance "
            f"(capacity={self._capacity})"
        )
        try:
            return self._create()
        except Exception:
            with self._lock:
                self._outstanding -= 1
            raise

    def return_(self, item: T) -> None:
        """
        Take an instance back.

        While more than ``capacity`` instances are out (counted before this return)
        the instance is overflow and is closed, as it is once the access order has
        been drained. Otherwise it goes back into the idle container.

        :param item: An instance previously obtained from rent().
        :raises ResourceReleaseError: If closing an overflow instance fails.
        """
        with self._lock:
            overflow = self._outstanding > self._capacity
            self._outstanding -= 1
            if not overflow and not self._closed:
                self._put(item)
                logger.debug(
                    f"[{self._name}] Recycled instance "
                    f"(idle={self._idle_len()}, outstanding={self._outstanding})"
                )
                return

        logger.debug(f"[{self._name}] Closing overflow instance on return")
        self._close_items([item])

    def drain(self) -> int:
        """
        Close every idle instance and stop recycling.

        Safe to call more than once; later calls find nothing to close. Instances
        still rented out are closed when they come back through return_().

        :return: Number of instances closed by this call.
        :raises ResourceReleaseError: If closing any instance fails. Every instance
            is still attempted before the error is raised.
        """
        with self._lock:
            self._closed = True
            items = self._drain_all()

        if items:
            logger.debug(f"[{self._name}] Draining {len(items)} idle instances")
        self._close_items(items)
        return len(items)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def idle_count(self) -> int:
        with self._lock:
            return self._idle_len()

    @property
    def outstanding(self) -> int:
        with self._lock:
            return self._outstanding

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> dict[str, Any]:
        """Return current container status for diagnostics."""
        with self._lock:
            return {
                "name": self._name,
                "access_order": self.kind.value,
                "capacity": self._capacity,
                "idle": self._idle_len(),
                "outstanding": self._outstanding,
                "created": self._created,
                "closed_instances": self._closed_count,
                "closed": self._closed,
                "timestamp": time.time(),
            }

    # ---------- Internal Methods ----------

    def _create(self) -> T:
        try:
            item = self._factory()
        except Exception as e:
            logger.error(f"[{self._name}] Factory failed to create instance: {e}")
            raise
        with self._lock:
            self._created += 1
        return item

    def _bootstrap(self) -> None:
        """Pre-fill the container with ``capacity`` instances."""
        logger.info(f"[{self._name}] Pre-filling {self.kind.name} access order with {self._capacity} instances")
        created: list[T] = []
        try:
            for i in range(self._capacity):
                logger.debug(f"[{self._name}] Creating instance {i + 1}/{self._capacity}")
                created.append(self._create())
        except Exception:
            logger.error(f"[{self._name}] Pre-fill failed after {len(created)} instances, closing them")
            for item in created:
                try:
                    item.close()
                except Exception as close_error:
                    logger.warning(f"[{self._name}] Failed to close instance after pre-fill failure: {close_error}")
            raise

        with self._lock:
            for item in created:
                self._put(item)
        logger.info(f"[{self._name}] {self.kind.name} access order initialized")

    def _close_items(self, items: list[T]) -> None:
        errors: list[BaseException] = []
        for item in items:
            try:
                item.close()
            except Exception as e:
                logger.error(f"[{self._name}] Failed to close instance {item!r}: {e}")
                errors.append(e)
            else:
                with self._lock:
                    self._closed_count += 1

        if errors:
            raise ResourceReleaseError(
                f"[{self._name}] Failed to close {len(errors)} of {len(items)} instance(s)",
                errors,
            ) from errors[0]


class FifoAccessOrder(AccessOrder[T]):
    """Queue discipline: rents the longest-idle instance, returns go to the tail."""

    kind = AccessOrderKind.FIFO

    def __init__(self, capacity: int, factory: Callable[[], T], *, name: str = "pool") -> None:
        self._queue: deque[T] = deque()
        super().__init__(capacity, factory, name=name)

    def _take(self) -> T:
        return self._queue.popleft()

    def _put(self, item: T) -> None:
        self._queue.append(item)

    def _idle_len(self) -> int:
        return len(self._queue)

    def _drain_all(self) -> list[T]:
        items = list(self._queue)
        self._queue.clear()
        return items


class LifoAccessOrder(AccessOrder[T]):
    """Stack discipline: rents the most recently returned instance."""

    kind = AccessOrderKind.LIFO

    def __init__(self, capacity: int, factory: Callable[[], T], *, name: str = "pool") -> None:
        self._stack: list[T] = []
        super().__init__(capacity, factory, name=name)

    def _take(self) -> T:
        return self._stack.pop()

    def _put(self, item: T) -> None:
        self._stack.append(item)

    def _idle_len(self) -> int:
        return len(self._stack)

    def _drain_all(self) -> list[T]:
        items = self._stack[::-1]
        self._stack.clear()
        return items


_ACCESS_ORDERS: dict[AccessOrderKind, type[AccessOrder]] = {
    AccessOrderKind.FIFO: FifoAccessOrder,
    AccessOrderKind.LIFO: LifoAccessOrder,
}


def create_access_order(
    kind: AccessOrderKind | str,
    capacity: int,
    factory: Callable[[], T],
    *,
    name: str = "pool",
) -> AccessOrder[T]:
    """
    Build the access order matching ``kind`` and pre-fill it.

    :param kind: AccessOrderKind member or its case-insensitive name ("fifo"/"lifo").
    :param capacity: Number of instances to pre-create (>= 0).
    :param factory: Zero-argument callable producing instances.
    :param name: Pool name used in log lines.
    :return: A bootstrapped access order.
    :raises UnknownAccessOrderError: If ``kind`` is not a recognized access order.
    """
    try:
        resolved = AccessOrderKind.parse(kind)
    except ValueError as e:
        logger.error(f"Unknown access order requested: {kind!r}")
        raise UnknownAccessOrderError(kind) from e

    return _ACCESS_ORDERS[resolved](capacity, factory, name=name)
