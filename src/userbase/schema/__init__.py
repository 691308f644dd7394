"""
Schema management package for userbase.

This package provides:
- Typed descriptors of the expected Users and Courses tables
- Rename/add/create DDL operations with a dry-run mode
- Baseline table creation for empty databases
- Startup schema reconciliation with failure containment
"""

from .descriptors import ExpectedColumn, ExpectedTable, USERS_TABLE, COURSES_TABLE
from .operations import SchemaOperations, SchemaChange, ChangeType, OperationMode
from .baseline import ensure_baseline_schema
from .reconciler import (
    SchemaReconciler,
    ReconciliationResult,
    ReconciliationStatus,
    ColumnAction,
    ColumnOutcome,
    ensure_database_schema,
)

__all__ = [
    "ExpectedColumn",
    "ExpectedTable",
    "USERS_TABLE",
    "COURSES_TABLE",
    "SchemaOperations",
    "SchemaChange",
    "ChangeType",
    "OperationMode",
    "ensure_baseline_schema",
    "SchemaReconciler",
    "ReconciliationResult",
    "ReconciliationStatus",
    "ColumnAction",
    "ColumnOutcome",
    "ensure_database_schema",
]
