"""
userbase: Minimal PostgreSQL user-account backend.

Registration, password login with signed session tokens, read-only
dashboard queries, and a best-effort schema reconciliation pass that
normalizes legacy table and column names at startup.
"""

__version__ = "0.1.0"

from .config import UserbaseConfig
from .exceptions import (
    UserbaseError,
    ConfigurationError,
    DatabaseError,
    SchemaError,
    AccountError,
)

__all__ = [
    "__version__",
    "UserbaseConfig",
    "UserbaseError",
    "ConfigurationError",
    "DatabaseError",
    "SchemaError",
    "AccountError",
]
