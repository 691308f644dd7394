"""
Catalog lookups for userbase.

Answers "does this table or column exist, and under what exact name?"
against PostgreSQL's information_schema. Values are always bound as
query parameters; identifiers are never interpolated into these queries.
"""

import logging
from typing import List, Optional

import asyncpg


logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"

TABLE_EXACT_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = $1 AND table_name = $2
    LIMIT 1
"""

TABLE_CASE_INSENSITIVE_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = $1 AND lower(table_name) = lower($2)
    LIMIT 1
"""

COLUMN_EXACT_QUERY = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = $1
    AND table_name = $2
    AND column_name = $3
    LIMIT 1
"""

COLUMN_CASE_INSENSITIVE_QUERY = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = $1
    AND table_name = $2
    AND lower(column_name) = lower($3)
    LIMIT 1
"""

LIST_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = $1
    AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

LIST_COLUMNS_QUERY = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""


def quote_identifier(identifier: str) -> str:
    """
    Quote an identifier for embedding in DDL.

    Only meant for names taken from the catalog or from fixed table
    descriptors; this is not a sanitizer for arbitrary user input.
    """
    return '"' + identifier.replace('"', '""') + '"'


class CatalogLookup:
    """Read-only catalog queries bound to a single connection."""

    def __init__(self, connection: asyncpg.Connection, schema: str = DEFAULT_SCHEMA):
        self.connection = connection
        self.schema = schema

    async def find_table_exact(self, name: str) -> Optional[str]:
        """Return the table name if a table with exactly this name exists."""
        result = await self.connection.fetchval(TABLE_EXACT_QUERY, self.schema, name)
        logger.debug(f"Exact table lookup {self.schema}.{name}: {result}")
        return result

    async def find_table_case_insensitive(self, name: str) -> Optional[str]:
        """Return the catalog spelling of a table matching ``name`` ignoring case."""
        result = await self.connection.fetchval(
            TABLE_CASE_INSENSITIVE_QUERY, self.schema, name
        )
        logger.debug(f"Case-insensitive table lookup {self.schema}.{name}: {result}")
        return result

    async def find_column_exact(self, table: str, name: str) -> Optional[str]:
        """Return the column name if ``table`` has a column with exactly this name."""
        result = await self.connection.fetchval(
            COLUMN_EXACT_QUERY, self.schema, table, name
        )
        logger.debug(f"Exact column lookup {table}.{name}: {result}")
        return result

    async def find_column_case_insensitive(self, table: str, name: str) -> Optional[str]:
        """Return the catalog spelling of a column of ``table`` matching ``name`` ignoring case."""
        result = await self.connection.fetchval(
            COLUMN_CASE_INSENSITIVE_QUERY, self.schema, table, name
        )
        logger.debug(f"Case-insensitive column lookup {table}.{name}: {result}")
        return result

    async def list_tables(self) -> List[str]:
        """List base tables in the schema."""
        rows = await self.connection.fetch(LIST_TABLES_QUERY, self.schema)
        return [row["table_name"] for row in rows]

    async def list_columns(self, table: str) -> List[str]:
        """List the columns of ``table`` in ordinal order."""
        rows = await self.connection.fetch(LIST_COLUMNS_QUERY, self.schema, table)
        return [row["column_name"] for row in rows]
