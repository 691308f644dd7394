"""
Password hashing and session tokens.

Passwords are hashed with Argon2 (argon2-cffi). Session tokens are
HS256-signed JWTs (PyJWT) carrying the user id as ``sub``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from ..config import AuthConfig
from ..exceptions import TokenError


logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


class PasswordManager:
    """Argon2 password hashing."""

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self.hasher = hasher or PasswordHasher()

    def hash(self, password: str) -> str:
        return self.hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """
        Check a password against a stored hash.

        Unreadable hashes count as a mismatch; reconciliation fills missing
        hashes with an empty string, and such accounts cannot log in.
        """
        try:
            return self.hasher.verify(password_hash, password)
        except VerificationError:
            return False
        except InvalidHashError:
            logger.warning("Stored password hash is not a valid Argon2 hash")
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self.hasher.check_needs_rehash(password_hash)


class TokenManager:
    """Issues and validates signed session tokens."""

    def __init__(self, config: AuthConfig):
        self.config = config
        self.key = config.require_key()

    def issue(self, user_id: int, email: str, name: str, now: Optional[datetime] = None) -> str:
        """Create a token for the given user, expiring after the configured lifetime."""
        now = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "iat": now,
            "exp": now + timedelta(hours=self.config.token_lifetime_hours),
        }
        if self.config.issuer:
            payload["iss"] = self.config.issuer
        if self.config.audience:
            payload["aud"] = self.config.audience

        return jwt.encode(payload, self.key, algorithm=TOKEN_ALGORITHM)

    def decode(self, token: str) -> Dict[str, Any]:
        """Validate signature and expiry and return the claims."""
        if not token:
            raise TokenError("Missing session token")

        try:
            return jwt.decode(
                token,
                self.key,
                algorithms=[TOKEN_ALGORITHM],
                audience=self.config.audience,
                issuer=self.config.issuer,
                leeway=0,
                options={
                    "require": ["exp", "sub"],
                    "verify_aud": self.config.audience is not None,
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("Session token has expired", cause=e) from e
        except jwt.InvalidTokenError as e:
            raise TokenError("Invalid session token", cause=e) from e

    def user_id(self, token: str) -> int:
        """Return the user id carried by a valid token."""
        claims = self.decode(token)
        try:
            return int(claims["sub"])
        except (KeyError, ValueError) as e:
            raise TokenError("Session token has no valid subject", cause=e) from e
