"""
Schema reconciliation core logic for userbase.

Aligns the live catalog with the expected Users and Courses tables at
startup: legacy or differently-cased names are renamed in place, missing
columns are added with safe defaults, and a missing Courses table is
created. Nothing is ever dropped or retyped. The whole pass is best-effort:
failures are logged and reported, never raised to the caller.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import asyncpg

from ..config import SchemaManagementConfig
from ..database.catalog import CatalogLookup, DEFAULT_SCHEMA
from ..database.connection import ConnectionPool
from ..exceptions import SchemaError
from .baseline import ensure_baseline_schema
from .descriptors import EXPECTED_TABLES, ExpectedColumn, ExpectedTable
from .operations import (
    OperationMode,
    SchemaChange,
    SchemaOperations,
    add_column_change,
    create_table_change,
    rename_column_change,
    rename_table_change,
)


logger = logging.getLogger(__name__)


class ReconciliationStatus(str, Enum):
    """Status of reconciliation operations."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class ColumnAction(str, Enum):
    """How a single expected column was resolved."""

    NONE = "none"
    RENAME = "rename"
    ADD = "add"
    UNRESOLVED = "unresolved"


@dataclass
class ColumnOutcome:
    """Resolution of one expected column."""

    table: str
    column: str
    action: ColumnAction
    source: Optional[str] = None


@dataclass
class ReconciliationResult:
    """Result of a schema reconciliation pass."""

    status: ReconciliationStatus
    schema: str = DEFAULT_SCHEMA
    changes_applied: List[SchemaChange] = field(default_factory=list)
    column_outcomes: List[ColumnOutcome] = field(default_factory=list)
    created_tables: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def successful_changes(self) -> int:
        """Count of successfully applied changes."""
        return sum(1 for c in self.changes_applied if c.executed)

    @property
    def failed_changes(self) -> int:
        """Count of failed changes."""
        return sum(1 for c in self.changes_applied if c.error)

    @property
    def unresolved_columns(self) -> List[str]:
        """Expected columns that are still missing after the pass."""
        return [
            f"{o.table}.{o.column}"
            for o in self.column_outcomes
            if o.action == ColumnAction.UNRESOLVED
        ]


class SchemaReconciler:
    """
    Reconciles expected tables against the catalog on one connection.

    Every catalog query and DDL statement runs sequentially on the
    connection passed in; the caller owns acquiring and releasing it.
    """

    def __init__(
        self,
        connection: asyncpg.Connection,
        operation_mode: OperationMode = OperationMode.SAFE,
        tables: Sequence[ExpectedTable] = EXPECTED_TABLES,
    ):
        self.connection = connection
        self.operation_mode = operation_mode
        self.tables = tuple(tables)

        self.catalog = CatalogLookup(connection)
        self.operations = SchemaOperations(connection, operation_mode)

    async def reconcile(self) -> ReconciliationResult:
        """
        Run the full pass over all expected tables, in order.

        A table that is absent and has no creation script means the
        database is fresh: the pass stops there without touching anything.
        Any exception ends the pass; changes made before it stay in place
        and are reported.
        """
        start_time = time.perf_counter()
        result = ReconciliationResult(
            status=ReconciliationStatus.SUCCESS,
            schema=self.catalog.schema,
        )

        try:
            for index, table in enumerate(self.tables):
                lookup_name = await self.resolve_table(table)

                if lookup_name is None:
                    if not table.can_create:
                        result.skipped_tables.extend(t.name for t in self.tables[index:])
                        break
                    await self.operations.apply(
                        create_table_change(table.name, table.create_sql)
                    )
                    result.created_tables.append(table.name)
                    continue

                for column in table.columns:
                    outcome = await self.reconcile_column(table.name, column, lookup_name)
                    result.column_outcomes.append(outcome)

            if result.skipped_tables and not self.operations.changes:
                result.status = ReconciliationStatus.SKIPPED

        except Exception as e:
            logger.exception("Database schema check/repair failed")
            result.errors.append(str(e))
            result.status = (
                ReconciliationStatus.PARTIAL
                if any(c.executed for c in self.operations.changes)
                else ReconciliationStatus.FAILED
            )

        finally:
            result.changes_applied = list(self.operations.changes)
            result.execution_time_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"Schema reconciliation {result.status.value}: "
            f"{len(result.changes_applied)} change(s) ({result.execution_time_ms:.1f}ms)"
        )
        return result

    async def resolve_table(self, table: ExpectedTable) -> Optional[str]:
        """
        Find the table, renaming a legacy spelling to the expected name.

        Returns the name to look its columns up under, or None if the
        table does not exist in any spelling. In dry-run mode the rename
        is only planned, so columns are still looked up under the old name.
        """
        exact = await self.catalog.find_table_exact(table.name)
        if exact:
            return exact

        if table.legacy_name is None:
            return None

        legacy = await self.catalog.find_table_case_insensitive(table.legacy_name)
        if not legacy or legacy == table.name:
            return None

        await self.operations.apply(rename_table_change(legacy, table.name))
        return legacy if self.operations.is_dry_run else table.name

    async def reconcile_column(
        self,
        table: str,
        column: ExpectedColumn,
        lookup_table: Optional[str] = None,
    ) -> ColumnOutcome:
        """
        Make one expected column present, preferring rename over add.

        Exactly one of no-op, rename, or add happens. A column that has
        neither a legacy match nor an add clause is left missing.
        """
        lookup_table = lookup_table or table

        if await self.catalog.find_column_exact(lookup_table, column.name):
            return ColumnOutcome(table, column.name, ColumnAction.NONE)

        if column.can_rename:
            legacy = await self.catalog.find_column_case_insensitive(
                lookup_table, column.legacy_name
            )
            if legacy:
                await self.operations.apply(
                    rename_column_change(table, legacy, column.name)
                )
                return ColumnOutcome(table, column.name, ColumnAction.RENAME, source=legacy)

        if column.can_add:
            await self.operations.apply(
                add_column_change(table, column.name, column.add_clause)
            )
            return ColumnOutcome(table, column.name, ColumnAction.ADD)

        return ColumnOutcome(table, column.name, ColumnAction.UNRESOLVED)


async def ensure_database_schema(
    pool: ConnectionPool,
    settings: Optional[SchemaManagementConfig] = None,
) -> ReconciliationResult:
    """
    Startup entry point: baseline creation, then reconciliation.

    Both steps share one pooled connection. Baseline creation failures
    raise SchemaError. Everything else, including failing to acquire the
    connection, is logged and returned in the result.
    """
    settings = settings or SchemaManagementConfig()
    mode = OperationMode(settings.mode)
    baseline: List[SchemaChange] = []

    try:
        async with pool.acquire() as conn:
            if settings.create_baseline:
                baseline = await ensure_baseline_schema(conn, SchemaOperations(conn, mode))

            if not settings.reconcile_on_startup:
                logger.info("Schema reconciliation disabled by configuration")
                return ReconciliationResult(
                    status=ReconciliationStatus.SKIPPED,
                    changes_applied=baseline,
                )

            result = await SchemaReconciler(conn, mode).reconcile()
    except SchemaError:
        raise
    except Exception as e:
        logger.exception("Database schema check/repair failed")
        result = ReconciliationResult(
            status=ReconciliationStatus.FAILED,
            errors=[str(e)],
        )

    result.changes_applied = baseline + result.changes_applied
    return result
