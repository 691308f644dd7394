"""
Process startup for userbase.

Opens the connection pool and prepares the schema once, before any
account operation runs.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .accounts import AccountService, PasswordManager, TokenManager
from .config import UserbaseConfig
from .database.connection import ConnectionPool
from .schema.reconciler import ensure_database_schema


logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_database(
    config: UserbaseConfig,
    prepare_schema: bool = True,
) -> AsyncIterator[ConnectionPool]:
    """
    Yield an open pool, closing it on exit.

    With ``prepare_schema`` the startup schema pass runs first; its
    failures are logged by the reconciler and do not stop startup.
    """
    pool = ConnectionPool(config.database)
    await pool.open()
    try:
        if prepare_schema:
            result = await ensure_database_schema(pool, config.schema_management)
            if result.errors:
                logger.warning(
                    f"Starting with schema reconciliation {result.status.value}: "
                    f"{'; '.join(result.errors)}"
                )
        yield pool
    finally:
        await pool.close()


def build_account_service(config: UserbaseConfig, pool: ConnectionPool) -> AccountService:
    """Wire the account service from configuration."""
    return AccountService(
        pool,
        tokens=TokenManager(config.auth),
        passwords=PasswordManager(),
    )
