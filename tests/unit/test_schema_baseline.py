"""
Tests for baseline schema creation.
"""

import pytest
from unittest.mock import AsyncMock

from userbase.exceptions import SchemaError
from userbase.schema.baseline import (
    USERS_EMAIL_INDEX,
    baseline_changes,
    ensure_baseline_schema,
)
from userbase.schema.descriptors import COURSES_TABLE, USERS_TABLE
from userbase.schema.operations import ChangeType, OperationMode, SchemaOperations
from tests.fakes import FakeCatalogConnection


class TestBaselineChanges:
    def test_change_order(self):
        changes = baseline_changes()

        assert [c.change_type for c in changes] == [
            ChangeType.CREATE_TABLE,
            ChangeType.CREATE_INDEX,
            ChangeType.CREATE_TABLE,
        ]
        assert [c.table for c in changes] == ["Users", "Users", "Courses"]


class TestEnsureBaselineSchema:

    @pytest.mark.asyncio
    async def test_empty_schema_gets_all_tables(self, empty_catalog):
        applied = await ensure_baseline_schema(empty_catalog)

        assert len(applied) == 3
        assert all(c.executed for c in applied)
        assert set(empty_catalog.tables) == {"Users", "Courses"}
        assert empty_catalog.columns("Users") == [
            "Id", "Name", "Email", "PasswordHash", "Phone", "Gender",
            "RegistrationDate", "LastLogin", "IsActive",
        ]
        assert set(empty_catalog.columns("Users")) == set(USERS_TABLE.column_names)
        assert empty_catalog.columns("Courses") == list(COURSES_TABLE.column_names)
        assert empty_catalog.indexes == {USERS_EMAIL_INDEX: "Users"}

    @pytest.mark.asyncio
    async def test_non_empty_schema_is_untouched(self, legacy_catalog):
        applied = await ensure_baseline_schema(legacy_catalog)

        assert applied == []
        assert legacy_catalog.executed == []
        assert list(legacy_catalog.tables) == ["users"]

    @pytest.mark.asyncio
    async def test_dry_run_operations(self, empty_catalog):
        ops = SchemaOperations(empty_catalog, OperationMode.DRY_RUN)

        applied = await ensure_baseline_schema(empty_catalog, ops)

        assert len(applied) == 3
        assert not any(c.executed for c in applied)
        assert empty_catalog.tables == {}

    @pytest.mark.asyncio
    async def test_statement_failure_raises_schema_error(self):
        conn = FakeCatalogConnection(fail_on='CREATE UNIQUE INDEX')

        with pytest.raises(SchemaError) as exc_info:
            await ensure_baseline_schema(conn)

        assert "Failed to create baseline schema" in str(exc_info.value)
        assert exc_info.value.cause is not None
        assert list(conn.tables) == ["Users"]

    @pytest.mark.asyncio
    async def test_catalog_failure_raises_schema_error(self):
        conn = AsyncMock()
        conn.fetch.side_effect = OSError("connection lost")

        with pytest.raises(SchemaError):
            await ensure_baseline_schema(conn)

        conn.execute.assert_not_called()
