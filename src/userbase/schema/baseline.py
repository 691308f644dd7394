"""
Baseline schema creation for userbase.

Creates the declared tables when the schema holds no tables at all. As
soon as any table exists this is a no-op and the existing shape is left
to reconciliation.
"""

import logging
from typing import List, Optional

import asyncpg

from ..database.catalog import CatalogLookup
from ..exceptions import SchemaError
from .descriptors import COURSES_TABLE, TIMESTAMPTZ
from .operations import (
    SchemaChange,
    SchemaOperations,
    create_index_change,
    create_table_change,
)


logger = logging.getLogger(__name__)

USERS_CREATE_SQL = f"""CREATE TABLE "Users" (
    "Id" integer GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    "Name" character varying(100) NOT NULL,
    "Email" character varying(100) NOT NULL,
    "PasswordHash" text NOT NULL,
    "Phone" text NOT NULL,
    "Gender" text NOT NULL,
    "RegistrationDate" {TIMESTAMPTZ} NOT NULL,
    "LastLogin" {TIMESTAMPTZ} NULL,
    "IsActive" boolean NOT NULL
);"""

USERS_EMAIL_INDEX = "IX_Users_Email"
USERS_EMAIL_INDEX_SQL = f'CREATE UNIQUE INDEX "{USERS_EMAIL_INDEX}" ON "Users" ("Email");'


def baseline_changes() -> List[SchemaChange]:
    """The statements that create the declared model on an empty schema."""
    return [
        create_table_change("Users", USERS_CREATE_SQL),
        create_index_change("Users", USERS_EMAIL_INDEX, USERS_EMAIL_INDEX_SQL),
        create_table_change(COURSES_TABLE.name, COURSES_TABLE.create_sql),
    ]


async def ensure_baseline_schema(
    connection: asyncpg.Connection,
    operations: Optional[SchemaOperations] = None,
) -> List[SchemaChange]:
    """
    Create the declared tables if the schema is empty.

    Returns the changes that were applied (empty when the schema already
    had tables). Raises SchemaError if the catalog cannot be read or a
    statement fails.
    """
    catalog = CatalogLookup(connection)
    operations = operations or SchemaOperations(connection)

    try:
        existing = await catalog.list_tables()
        if existing:
            logger.debug(f"Baseline skipped, schema already has {len(existing)} table(s)")
            return []

        logger.info(f"Schema {catalog.schema} is empty, creating baseline tables")
        applied = []
        for change in baseline_changes():
            applied.append(await operations.apply(change))
        return applied

    except Exception as e:
        logger.error(f"Baseline schema creation failed: {e}")
        raise SchemaError(f"Failed to create baseline schema: {e}", cause=e) from e
