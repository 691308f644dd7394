"""
Account and dashboard operations for userbase.

All queries target the reconciled "Users" and "Courses" tables and use
bound parameters for every value.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import asyncpg

from ..database.connection import ConnectionPool
from ..exceptions import AuthenticationError, DuplicateEmailError
from .models import (
    CourseItem,
    DashboardStats,
    LoginResult,
    UserListItem,
    UserLogin,
    UserProfile,
    UserRegistration,
    UserSummary,
)
from .security import PasswordManager, TokenManager


logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"

EMAIL_EXISTS_QUERY = 'SELECT EXISTS (SELECT 1 FROM "Users" WHERE "Email" = $1)'

INSERT_USER_QUERY = """
    INSERT INTO "Users"
        ("Name", "Email", "PasswordHash", "Phone", "Gender", "RegistrationDate", "IsActive")
    VALUES ($1, $2, $3, $4, $5, $6, true)
    RETURNING "Id"
"""

USER_BY_EMAIL_QUERY = """
    SELECT "Id", "Name", "Email", "PasswordHash", "Phone", "Gender",
           "RegistrationDate", "IsActive"
    FROM "Users"
    WHERE "Email" = $1
    LIMIT 1
"""

RECORD_LOGIN_QUERY = 'UPDATE "Users" SET "LastLogin" = $2 WHERE "Id" = $1'

UPDATE_PASSWORD_HASH_QUERY = 'UPDATE "Users" SET "PasswordHash" = $2 WHERE "Id" = $1'

USER_PROFILE_QUERY = """
    SELECT "Id", "Name", "Email", "Phone", "Gender", "RegistrationDate", "LastLogin"
    FROM "Users"
    WHERE "Id" = $1
"""

ACTIVE_USERS_QUERY = """
    SELECT "Id", "Name", "Email", "Phone", "Gender", "RegistrationDate"
    FROM "Users"
    WHERE "IsActive"
    ORDER BY "Id"
"""

STATS_QUERY = """
    SELECT count(*) AS total_users,
           count(*) FILTER (WHERE "IsActive") AS active_users
    FROM "Users"
"""

COURSES_QUERY = """
    SELECT "Id", "CourseName", "Description", "CreatedAt"
    FROM "Courses"
    ORDER BY "Id"
"""


class AccountService:
    """Registration, login, and dashboard reads."""

    def __init__(
        self,
        pool: ConnectionPool,
        tokens: TokenManager,
        passwords: Optional[PasswordManager] = None,
    ):
        self.pool = pool
        self.tokens = tokens
        self.passwords = passwords or PasswordManager()

    async def register(self, registration: UserRegistration) -> int:
        """Create an active account and return its id."""
        if await self.pool.fetchval(EMAIL_EXISTS_QUERY, registration.email):
            raise DuplicateEmailError(registration.email)

        # A concurrent registration can pass the check above; IX_Users_Email decides
        try:
            user_id = await self.pool.fetchval(
                INSERT_USER_QUERY,
                registration.name,
                registration.email,
                self.passwords.hash(registration.password),
                registration.phone,
                registration.gender,
                datetime.now(timezone.utc),
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateEmailError(registration.email) from e

        logger.info(f"Registered user {user_id}")
        return user_id

    async def login(self, credentials: UserLogin) -> LoginResult:
        """
        Verify credentials and issue a session token.

        Unknown emails, inactive accounts, and wrong passwords all fail
        with the same AuthenticationError.
        """
        row = await self.pool.fetchrow(USER_BY_EMAIL_QUERY, credentials.email)
        if row is None or not row["IsActive"]:
            raise AuthenticationError()

        if not self.passwords.verify(row["PasswordHash"], credentials.password):
            raise AuthenticationError()

        user_id = row["Id"]
        await self.pool.execute(RECORD_LOGIN_QUERY, user_id, datetime.now(timezone.utc))

        if self.passwords.needs_rehash(row["PasswordHash"]):
            await self.pool.execute(
                UPDATE_PASSWORD_HASH_QUERY, user_id, self.passwords.hash(credentials.password)
            )

        token = self.tokens.issue(user_id, row["Email"], row["Name"])
        logger.info(f"User {user_id} logged in")

        return LoginResult(
            token=token,
            user=UserSummary(
                id=user_id,
                name=row["Name"],
                email=row["Email"],
                phone=row["Phone"],
                gender=row["Gender"],
                registration_date=row["RegistrationDate"],
            ),
        )

    def authenticate(self, token: str) -> int:
        """Return the user id for a valid session token."""
        return self.tokens.user_id(token)

    async def get_user_info(self, user_id: int) -> Optional[UserProfile]:
        row = await self.pool.fetchrow(USER_PROFILE_QUERY, user_id)
        if row is None:
            return None

        last_login = row["LastLogin"]
        return UserProfile(
            id=row["Id"],
            name=row["Name"],
            email=row["Email"],
            phone=row["Phone"],
            gender=row["Gender"],
            registration_date=row["RegistrationDate"].strftime(DATE_FORMAT),
            last_login=last_login.strftime(DATETIME_FORMAT) if last_login else "Never",
        )

    async def list_active_users(self) -> List[UserListItem]:
        rows = await self.pool.fetch(ACTIVE_USERS_QUERY)
        return [
            UserListItem(
                id=row["Id"],
                name=row["Name"],
                email=row["Email"],
                phone=row["Phone"],
                gender=row["Gender"],
                registration_date=row["RegistrationDate"].strftime(DATE_FORMAT),
            )
            for row in rows
        ]

    async def get_stats(self) -> DashboardStats:
        row = await self.pool.fetchrow(STATS_QUERY)
        return DashboardStats(
            total_users=row["total_users"],
            active_users=row["active_users"],
        )

    async def list_courses(self) -> List[CourseItem]:
        rows = await self.pool.fetch(COURSES_QUERY)
        return [
            CourseItem(
                id=row["Id"],
                course_name=row["CourseName"],
                description=row["Description"],
                created_at=row["CreatedAt"].strftime(DATE_FORMAT),
            )
            for row in rows
        ]
