"""
Exception classes for userbase.
"""

from typing import Any, Dict, Optional


class UserbaseError(Exception):
    """Base exception for all userbase errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(UserbaseError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(UserbaseError):
    """Raised when input data fails validation."""

    pass


class DatabaseError(UserbaseError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class AccountError(UserbaseError):
    """Raised when an account operation is rejected."""

    pass


class DuplicateEmailError(AccountError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str) -> None:
        super().__init__("Email already exists")
        self.email = email


class AuthenticationError(AccountError):
    """Raised when credentials do not identify an active user."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class TokenError(AccountError):
    """Raised when a session token is missing, malformed, or expired."""

    pass
