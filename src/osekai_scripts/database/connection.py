"""asyncpg connection pool shared by the reader and the writer."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import asyncpg
import structlog

from osekai_scripts.config import Settings
from osekai_scripts.errors import StoreError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def connect_pool(settings: Settings) -> asyncpg.Pool:
    """Create the connection pool."""
    try:
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=5,
        )
    except (asyncpg.PostgresError, OSError) as e:
        raise StoreError("connect", f"failed to connect to database: {e}") from e

    logger.info("database_connected")
    return pool


async def guarded(operation: str, action: Callable[[], Awaitable[T]]) -> T:
    """Run a database action, wrapping driver errors in StoreError."""
    try:
        return await action()
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        raise StoreError(operation, f"database error: {e}") from e
