"""
Schema change operations for userbase.

Builds the DDL statements reconciliation issues and executes them one at a
time on a single connection. Each statement runs as its own implicit
transaction; nothing here drops or retypes a column.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import asyncpg

from ..database.catalog import quote_identifier


logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Types of schema changes."""

    RENAME_TABLE = "rename_table"
    RENAME_COLUMN = "rename_column"
    ADD_COLUMN = "add_column"
    CREATE_TABLE = "create_table"
    CREATE_INDEX = "create_index"


class OperationMode(str, Enum):
    """Schema operation modes."""

    SAFE = "safe"          # Execute additive and rename statements
    DRY_RUN = "dry_run"    # Generate SQL but don't execute


@dataclass
class SchemaChange:
    """Represents a schema change operation."""

    change_type: ChangeType
    table: str
    description: str
    sql: str
    target_object: Optional[str] = None

    # Execution results
    executed: bool = False
    execution_time_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        """Check if this change has an error."""
        return self.error is not None


def rename_table_change(old_name: str, new_name: str) -> SchemaChange:
    return SchemaChange(
        change_type=ChangeType.RENAME_TABLE,
        table=new_name,
        target_object=old_name,
        description=f"Rename table {old_name} to {new_name}",
        sql=f"ALTER TABLE {quote_identifier(old_name)} RENAME TO {quote_identifier(new_name)};",
    )


def rename_column_change(table: str, old_name: str, new_name: str) -> SchemaChange:
    return SchemaChange(
        change_type=ChangeType.RENAME_COLUMN,
        table=table,
        target_object=new_name,
        description=f"Rename column {table}.{old_name} to {new_name}",
        sql=(
            f"ALTER TABLE {quote_identifier(table)} "
            f"RENAME COLUMN {quote_identifier(old_name)} TO {quote_identifier(new_name)};"
        ),
    )


def add_column_change(table: str, column: str, add_clause: str) -> SchemaChange:
    return SchemaChange(
        change_type=ChangeType.ADD_COLUMN,
        table=table,
        target_object=column,
        description=f"Add column {table}.{column} {add_clause}",
        sql=(
            f"ALTER TABLE {quote_identifier(table)} "
            f"ADD COLUMN {quote_identifier(column)} {add_clause};"
        ),
    )


def create_table_change(table: str, create_sql: str) -> SchemaChange:
    return SchemaChange(
        change_type=ChangeType.CREATE_TABLE,
        table=table,
        description=f"Create table {table}",
        sql=create_sql,
    )


def create_index_change(table: str, index_name: str, create_sql: str) -> SchemaChange:
    return SchemaChange(
        change_type=ChangeType.CREATE_INDEX,
        table=table,
        target_object=index_name,
        description=f"Create index {index_name} on {table}",
        sql=create_sql,
    )


class SchemaOperations:
    """Executes schema changes on one connection and keeps a log of them."""

    def __init__(
        self,
        connection: asyncpg.Connection,
        operation_mode: OperationMode = OperationMode.SAFE,
    ):
        self.connection = connection
        self.operation_mode = operation_mode
        self.changes: List[SchemaChange] = []

    @property
    def is_dry_run(self) -> bool:
        return self.operation_mode == OperationMode.DRY_RUN

    async def apply(self, change: SchemaChange) -> SchemaChange:
        """
        Execute a single change.

        The change is recorded before execution so that a failing statement
        still shows up in the log with its error. Failures are re-raised;
        the caller decides whether the remaining work is abandoned.
        """
        self.changes.append(change)

        if self.is_dry_run:
            logger.info(f"[dry run] {change.description}: {change.sql}")
            return change

        start_time = time.perf_counter()
        try:
            await self.connection.execute(change.sql)
        except Exception as e:
            change.error = str(e)
            raise
        finally:
            change.execution_time_ms = (time.perf_counter() - start_time) * 1000

        change.executed = True
        logger.info(f"{change.description} ({change.execution_time_ms:.1f}ms)")
        return change
