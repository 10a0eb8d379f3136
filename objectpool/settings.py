"""
Pool Settings
=============

Environment-loaded defaults for pools built with ``Pool.from_settings``.

Loading Order:
    1. Process environment (always wins; dotenv never overrides it)
    2. The first file found of .env.local, then .env, in the working directory
       (.env is skipped entirely when .env.local exists)

Usage:
    from objectpool.settings import load_settings
    settings = load_settings()
    pool = Pool.from_settings(make_client, settings)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from objectpool.access_order import _validate_capacity
from objectpool.enums import AccessOrderKind
from objectpool.errors import PoolConfigurationError, UnknownAccessOrderError
from objectpool.utils.ml_logging import get_logger

logger = get_logger(__name__)

DEFAULT_ACCESS_ORDER = "fifo"
DEFAULT_CAPACITY = 8
DEFAULT_POOL_NAME = "pool"


def _load_dotenv_local(base_dir: Path | None = None) -> None:
    """
    Load the first of .env.local / .env found in ``base_dir`` (cwd by default).

    Only loads values NOT already set in the environment.
    """
    try:
        from dotenv import load_dotenv
    except ImportError:
        return

    base_dir = base_dir or Path.cwd()
    for env_file in (base_dir / ".env.local", base_dir / ".env"):
        if env_file.exists():
            load_dotenv(env_file, override=False)
            break


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _env_int(key: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError as e:
        logger.error(f"Invalid integer for {key}: {raw!r}")
        raise PoolConfigurationError(f"Invalid integer for {key}: {raw!r}") from e


def _env_access_order(key: str, default: str) -> AccessOrderKind:
    """Parse an access order name from environment variable."""
    raw = os.getenv(key, default)
    try:
        return AccessOrderKind.parse(raw)
    except ValueError as e:
        logger.error(f"Invalid access order for {key}: {raw!r}")
        raise UnknownAccessOrderError(raw) from e


# ==============================================================================
# SETTINGS
# ==============================================================================


@dataclass(frozen=True)
class PoolSettings:
    """Resolved pool defaults."""

    access_order: AccessOrderKind = AccessOrderKind.FIFO
    capacity: int = DEFAULT_CAPACITY
    name: str = DEFAULT_POOL_NAME

    def __post_init__(self) -> None:
        _validate_capacity(self.capacity, minimum=1)


def load_settings(load_env_files: bool = True) -> PoolSettings:
    """
    Read pool defaults from the environment.

    Variables:
        OBJECTPOOL_ACCESS_ORDER: "fifo" or "lifo" (default: fifo)
        OBJECTPOOL_CAPACITY: positive integer (default: 8)
        OBJECTPOOL_NAME: pool name used in logs (default: pool)

    :param load_env_files: Load .env.local/.env from the working directory first.
    :raises PoolConfigurationError: On malformed or out-of-range values.
    """
    if load_env_files:
        _load_dotenv_local()

    settings = PoolSettings(
        access_order=_env_access_order("OBJECTPOOL_ACCESS_ORDER", DEFAULT_ACCESS_ORDER),
        capacity=_env_int("OBJECTPOOL_CAPACITY", DEFAULT_CAPACITY),
        name=os.getenv("OBJECTPOOL_NAME", DEFAULT_POOL_NAME),
    )
    logger.debug(
        f"Loaded pool settings (order={settings.access_order.name}, "
        f"capacity={settings.capacity}, name={settings.name})"
    )
    return settings
