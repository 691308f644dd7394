"""
Configuration system for userbase using Pydantic.
"""

import logging
import logging.handlers
import os
import re
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


UNEXPANDED_VAR = re.compile(r"\$\{[^}]*\}")


class DatabaseConnection(BaseModel):
    """Database connection configuration."""

    url: Optional[str] = Field(
        None, description="postgresql:// connection URL; overrides the discrete fields"
    )
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("userbase", description="Database name")
    user: str = Field("postgres", description="Database user")
    password: str = Field("", description="Database password")
    ssl_mode: Optional[str] = Field(None, description="SSL mode")
    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(10, description="Maximum connections in pool")
    command_timeout: float = Field(60.0, description="Command timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("postgresql", "postgres"):
            raise ValueError(f"Invalid database URL scheme: {parsed.scheme}")
        if not parsed.path or parsed.path == "/":
            raise ValueError("Database name is required in the URL")
        return v

    @property
    def target(self) -> str:
        """host:port/database, without credentials, for log lines."""
        if self.url:
            parsed = urlparse(self.url)
            return f"{parsed.hostname or 'localhost'}:{parsed.port or 5432}{parsed.path}"
        return f"{self.host}:{self.port}/{self.database}"

    def to_pool_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for asyncpg.create_pool."""
        kwargs: Dict[str, Any] = {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "command_timeout": self.command_timeout,
            "server_settings": {"application_name": "userbase"},
        }
        # asyncpg lets explicit keywords override DSN values, so a URL is passed alone
        if self.url:
            kwargs["dsn"] = self.url
            return kwargs

        kwargs.update(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
        )
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs


class AuthConfig(BaseModel):
    """Session token configuration."""

    jwt_key: Optional[str] = Field(None, description="HMAC signing key for session tokens")
    issuer: Optional[str] = Field(None, description="Token issuer claim")
    audience: Optional[str] = Field(None, description="Token audience claim")
    token_lifetime_hours: float = Field(3.0, description="Token lifetime in hours")

    @field_validator("token_lifetime_hours")
    @classmethod
    def validate_lifetime(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Token lifetime must be positive")
        return v

    def require_key(self) -> str:
        """Return the signing key or fail if it was never configured."""
        if not self.jwt_key or not self.jwt_key.strip():
            raise ConfigurationError("auth.jwt_key is not configured")
        # A reference whose variable was unset survives expansion verbatim
        placeholder = UNEXPANDED_VAR.search(self.jwt_key)
        if placeholder:
            raise ConfigurationError(
                "auth.jwt_key is not configured",
                details={"unexpanded": placeholder.group(0)},
            )
        return self.jwt_key


class SchemaManagementConfig(BaseModel):
    """Schema management configuration."""

    create_baseline: bool = Field(
        True, description="Create the declared tables when the schema is empty"
    )
    reconcile_on_startup: bool = Field(
        True, description="Run schema reconciliation before serving"
    )
    mode: Literal["safe", "dry_run"] = Field(
        "safe", description="Reconciliation mode"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


def configure_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Install root handlers according to the logging configuration."""
    handlers = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.max_size,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, config.level),
        format=config.format,
        handlers=handlers,
        force=True,
    )


class UserbaseConfig(BaseSettings):
    """Main userbase configuration."""

    service_name: str = Field("userbase", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    database: DatabaseConnection = Field(
        default_factory=DatabaseConnection, description="Database connection"
    )
    auth: AuthConfig = Field(
        default_factory=AuthConfig, description="Session token configuration"
    )
    schema_management: SchemaManagementConfig = Field(
        default_factory=SchemaManagementConfig,
        description="Schema management configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="USERBASE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "UserbaseConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
