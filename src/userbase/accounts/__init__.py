"""
Account package for userbase.

This package provides:
- Registration and login request models with validation
- Argon2 password hashing and JWT session tokens
- Account and dashboard queries over the Users and Courses tables
"""

from .models import (
    UserRegistration,
    UserLogin,
    UserSummary,
    LoginResult,
    UserProfile,
    UserListItem,
    DashboardStats,
    CourseItem,
)
from .security import PasswordManager, TokenManager
from .service import AccountService

__all__ = [
    "UserRegistration",
    "UserLogin",
    "UserSummary",
    "LoginResult",
    "UserProfile",
    "UserListItem",
    "DashboardStats",
    "CourseItem",
    "PasswordManager",
    "TokenManager",
    "AccountService",
]
