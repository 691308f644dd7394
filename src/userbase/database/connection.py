"""
PostgreSQL pool for userbase.

One pool is opened at startup and shared by schema preparation and the
account service. Every query helper borrows a connection for exactly one
statement.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from ..config import DatabaseConnection
from ..exceptions import DatabaseConnectionError


logger = logging.getLogger(__name__)

SERVER_INFO_QUERY = "SELECT version(), current_database(), current_user"


class ConnectionPool:
    """Owns the asyncpg pool for the lifetime of the process."""

    def __init__(self, settings: DatabaseConnection):
        self.settings = settings
        self._pool: Optional[asyncpg.Pool] = None

    async def open(self) -> None:
        if self._pool is not None:
            return

        logger.info(
            f"Opening connection pool to {self.settings.target} "
            f"(min={self.settings.min_size}, max={self.settings.max_size})"
        )
        try:
            self._pool = await asyncpg.create_pool(**self.settings.to_pool_kwargs())
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise DatabaseConnectionError(
                f"Cannot connect to {self.settings.target}",
                cause=e,
            ) from e

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Connection pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection; it goes back to the pool on every exit path."""
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        async with self._pool.acquire() as connection:
            yield connection

    async def execute(self, query: str, *args) -> str:
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def server_info(self) -> Dict[str, str]:
        """Server version, database and role of a pooled connection."""
        row = await self.fetchrow(SERVER_INFO_QUERY)
        return {
            "version": row["version"],
            "database": row["current_database"],
            "user": row["current_user"],
        }
