"""
Capacity-bounded object pools.

Exports:
- Pool: Thread-safe pool with a blocking, capacity-limited acquire/release protocol
- AsyncPool: asyncio counterpart of Pool
- AccessOrderKind: Enum selecting FIFO (queue) or LIFO (stack) reuse order
- FifoAccessOrder / LifoAccessOrder: Idle-instance containers behind the pools
- PoolSettings / load_settings: Environment-driven pool defaults
"""

from objectpool.access_order import (
    AccessOrder,
    Closeable,
    FifoAccessOrder,
    LifoAccessOrder,
    create_access_order,
)
from objectpool.async_pool import AsyncPool
from objectpool.enums import AccessOrderKind
from objectpool.errors import (
    PoolClosedError,
    PoolConfigurationError,
    PoolError,
    PoolProtocolError,
    ResourceReleaseError,
    UnknownAccessOrderError,
)
from objectpool.pool import Pool
from objectpool.settings import PoolSettings, load_settings

__all__ = [
    "AccessOrder",
    "AccessOrderKind",
    "AsyncPool",
    "Closeable",
    "FifoAccessOrder",
    "LifoAccessOrder",
    "Pool",
    "PoolClosedError",
    "PoolConfigurationError",
    "PoolError",
    "PoolProtocolError",
    "PoolSettings",
    "ResourceReleaseError",
    "UnknownAccessOrderError",
    "create_access_order",
    "load_settings",
]
