"""
Expected shape of the userbase tables.

Each table is described by its exact name, the lowercase name an older
deployment may have used, its expected columns, and an optional script
that creates it from scratch.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


UTC_NOW_DEFAULT = "(now() at time zone 'utc')"
TIMESTAMPTZ = "timestamp with time zone"


@dataclass(frozen=True)
class ExpectedColumn:
    """A column that reconciliation should make present on its table."""

    name: str
    legacy_name: Optional[str] = None
    add_clause: Optional[str] = None

    @property
    def can_rename(self) -> bool:
        return self.legacy_name is not None

    @property
    def can_add(self) -> bool:
        return self.add_clause is not None


@dataclass(frozen=True)
class ExpectedTable:
    """A table and the columns reconciliation should make present on it."""

    name: str
    columns: Tuple[ExpectedColumn, ...]
    legacy_name: Optional[str] = None
    create_sql: Optional[str] = None

    @property
    def can_create(self) -> bool:
        return self.create_sql is not None

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)


# Users is never created here; if it is absent there is nothing to normalize.
USERS_TABLE = ExpectedTable(
    name="Users",
    legacy_name="users",
    columns=(
        ExpectedColumn("Id", legacy_name="id"),
        ExpectedColumn("Name", legacy_name="name"),
        ExpectedColumn("Email", legacy_name="email"),
        ExpectedColumn("Phone", legacy_name="phone"),
        ExpectedColumn("Gender", legacy_name="gender"),
        ExpectedColumn(
            "PasswordHash",
            legacy_name="password",
            add_clause="text NOT NULL DEFAULT ''",
        ),
        ExpectedColumn(
            "RegistrationDate",
            add_clause=f"{TIMESTAMPTZ} NOT NULL DEFAULT {UTC_NOW_DEFAULT}",
        ),
        ExpectedColumn("LastLogin", add_clause=f"{TIMESTAMPTZ} NULL"),
        ExpectedColumn("IsActive", add_clause="boolean NOT NULL DEFAULT true"),
    ),
)

COURSES_TABLE = ExpectedTable(
    name="Courses",
    legacy_name="courses",
    columns=(
        ExpectedColumn("Id", legacy_name="id", add_clause="serial PRIMARY KEY"),
        ExpectedColumn("CourseName", legacy_name="coursename", add_clause="text NOT NULL"),
        ExpectedColumn("Description", legacy_name="description", add_clause="text NOT NULL"),
        ExpectedColumn(
            "CreatedAt",
            legacy_name="createdat",
            add_clause=f"{TIMESTAMPTZ} NOT NULL DEFAULT {UTC_NOW_DEFAULT}",
        ),
    ),
    create_sql=f"""CREATE TABLE "Courses" (
    "Id" serial PRIMARY KEY,
    "CourseName" text NOT NULL,
    "Description" text NOT NULL,
    "CreatedAt" {TIMESTAMPTZ} NOT NULL DEFAULT {UTC_NOW_DEFAULT}
);""",
)

EXPECTED_TABLES: Tuple[ExpectedTable, ...] = (USERS_TABLE, COURSES_TABLE)
