"""
Pytest configuration and shared fixtures for userbase tests.
"""

import os
import tempfile
from typing import Any, Dict

import pytest
import yaml
from argon2 import PasswordHasher

from userbase.accounts import PasswordManager, TokenManager
from userbase.config import AuthConfig, UserbaseConfig

from tests.fakes import FakeCatalogConnection


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def empty_catalog() -> FakeCatalogConnection:
    """A schema with no tables at all."""
    return FakeCatalogConnection()


@pytest.fixture
def current_catalog() -> FakeCatalogConnection:
    """A schema that already matches the expected shape."""
    return FakeCatalogConnection(
        {
            "Users": [
                "Id", "Name", "Email", "PasswordHash", "Phone", "Gender",
                "RegistrationDate", "LastLogin", "IsActive",
            ],
            "Courses": ["Id", "CourseName", "Description", "CreatedAt"],
        }
    )


@pytest.fixture
def legacy_catalog() -> FakeCatalogConnection:
    """Lowercase users table with a plain password column and two rows."""
    return FakeCatalogConnection(
        {
            "users": {
                "id": [1, 2],
                "name": ["Ada", "Grace"],
                "email": ["ada@example.com", "grace@example.com"],
                "password": ["hash-1", "hash-2"],
            }
        }
    )


# ============================================================================
# Account Fixtures
# ============================================================================

@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(
        jwt_key="test-signing-key-that-is-long-enough-for-hs256",
        issuer="userbase-test",
        audience="userbase-clients",
        token_lifetime_hours=3,
    )


@pytest.fixture
def token_manager(auth_config) -> TokenManager:
    return TokenManager(auth_config)


@pytest.fixture
def password_manager() -> PasswordManager:
    """Argon2 with minimal cost so tests stay fast."""
    return PasswordManager(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    return {
        "service_name": "userbase-test",
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "userbase_test",
            "user": "test_user",
            "password": "test_password",
        },
        "auth": {
            "jwt_key": "test-signing-key-that-is-long-enough-for-hs256",
            "token_lifetime_hours": 3,
        },
        "schema_management": {
            "create_baseline": True,
            "reconcile_on_startup": True,
            "mode": "safe",
        },
    }


@pytest.fixture
def sample_config(sample_config_data) -> UserbaseConfig:
    return UserbaseConfig(**sample_config_data)


@pytest.fixture
def temp_config_file(sample_config_data) -> str:
    """Temporary configuration file for testing."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(sample_config_data, f)
        path = f.name
    yield path
    os.unlink(path)
