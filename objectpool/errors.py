"""
Exception taxonomy for objectpool.

All pool errors derive from PoolError so callers can catch the whole family.
Exhaustion is never an error: acquire blocks until a permit frees up.
"""

from __future__ import annotations


class PoolError(Exception):
    """Base class for every error raised by objectpool."""


class PoolConfigurationError(PoolError, ValueError):
    """Invalid pool construction arguments or settings."""


class UnknownAccessOrderError(PoolConfigurationError):
    """The requested access order is not FIFO or LIFO."""

    def __init__(self, kind: object) -> None:
        super().__init__(f"Unknown access order: {kind!r} (expected one of: fifo, lifo)")
        self.kind = kind


class PoolProtocolError(PoolError):
    """Release without a matching acquire (double release or foreign item)."""


class PoolClosedError(PoolError):
    """Operation attempted on a pool that has been closed."""


class ResourceReleaseError(PoolError):
    """Closing one or more pooled instances failed.

    The underlying exceptions are kept in ``errors``; the first one is also
    chained as ``__cause__`` by the code raising this error.
    """

    def __init__(self, message: str, errors: list[BaseException]) -> None:
        super().__init__(message)
        self.errors = errors
