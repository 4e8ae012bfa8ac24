"""
Configuration management for httpdriver.

This module provides Pydantic-based configuration models validated at a single
point, before the driver is built. The configuration enforces:

- Client certificate and private key are given together or not at all
- Total pool size is never below the per-destination pool size
- At least one request attempt, non-negative retry interval
- Positive connect/read timeouts

Configuration can be loaded from:
- YAML files (recommended for deployment)
- Environment variables (for container overrides)
- Direct instantiation (for testing)
"""

import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Self

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from httpdriver.exceptions import ConfigurationError


DEFAULT_MAX_POOL_PER_ROUTE = 20
DEFAULT_MAX_POOL_TOTAL = 30
DEFAULT_RETRY_INTERVAL_MS = 1000
DEFAULT_MAX_RETRY_ATTEMPTS = 2
DEFAULT_CONNECT_TIMEOUT_MS = 5000
DEFAULT_READ_TIMEOUT_MS = 5000


class DriverConfig(BaseModel):
    """
    Complete driver configuration.

    Built once and immutable thereafter. Passwords are excluded from repr so
    they never end up in logs.

    Example:
        config = DriverConfig(
            truststore_path="/etc/certs/ca.pem",
            cert_path="/etc/certs/service.crt",
            key_path="/etc/certs/service.key",
            max_retry_attempts=3,
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    truststore_path: Optional[str] = Field(
        default=None, description="PEM bundle or PKCS#12 truststore path"
    )
    truststore_password: Optional[str] = Field(
        default=None, repr=False, description="Truststore password (PKCS#12 only)"
    )
    cert_path: Optional[str] = Field(
        default=None, description="Client certificate chain (PEM)"
    )
    key_path: Optional[str] = Field(
        default=None, description="Client private key (PEM)"
    )
    key_password: Optional[str] = Field(
        default=None, repr=False, description="Password for an encrypted private key"
    )
    max_pool_per_route: int = Field(
        default=DEFAULT_MAX_POOL_PER_ROUTE,
        ge=1,
        description="Maximum simultaneous connections to a single destination",
    )
    max_pool_total: int = Field(
        default=DEFAULT_MAX_POOL_TOTAL,
        ge=1,
        description="Maximum simultaneous connections across all destinations",
    )
    retry_interval_ms: int = Field(
        default=DEFAULT_RETRY_INTERVAL_MS,
        ge=0,
        description="Blocking pause between attempts",
    )
    max_retry_attempts: int = Field(
        default=DEFAULT_MAX_RETRY_ATTEMPTS,
        ge=1,
        description="Total attempts per request, including the first",
    )
    connect_timeout_ms: int = Field(
        default=DEFAULT_CONNECT_TIMEOUT_MS, gt=0, description="Connect timeout"
    )
    read_timeout_ms: int = Field(
        default=DEFAULT_READ_TIMEOUT_MS, gt=0, description="Read timeout"
    )
    tls_algorithm: Optional[str] = Field(
        default=None,
        description="TLS protocol override (TLS, TLSv1.2, TLSv1.3)",
    )

    @property
    def mutual_tls(self) -> bool:
        """True when a client identity is presented on every handshake."""
        return self.cert_path is not None

    @model_validator(mode="after")
    def validate_consistency(self) -> Self:
        """Enforce cross-field rules."""
        if (self.cert_path is None) != (self.key_path is None):
            raise ConfigurationError(
                "cert_path and key_path must be configured together",
                details={
                    "cert_path": self.cert_path,
                    "key_path": self.key_path,
                },
            )

        if self.max_pool_total < self.max_pool_per_route:
            raise ConfigurationError(
                "max_pool_total must be >= max_pool_per_route",
                details={
                    "max_pool_total": self.max_pool_total,
                    "max_pool_per_route": self.max_pool_per_route,
                },
            )

        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DriverConfig":
        """
        Validate a mapping into a DriverConfig.

        Raises:
            ConfigurationError: If any field is missing, unknown or out of range
        """
        try:
            return cls(**dict(data))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid driver configuration: {e}",
                details={"errors": e.error_count()},
            ) from e


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(
        default="json", description="Log format"
    )
    service_name: str = Field(
        default="httpdriver", description="Service name stamped on every record"
    )


class Settings(BaseModel):
    """
    Top-level settings as read from a file or the environment.

    Example:
        settings = Settings.from_file("httpdriver.yaml")
        settings = Settings.from_env()
    """

    model_config = ConfigDict(frozen=True)

    driver: DriverConfig = Field(
        default_factory=DriverConfig, description="Driver configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @classmethod
    def from_file(cls, path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated Settings instance

        Raises:
            ConfigurationError: If file cannot be read or settings are invalid

        Example:
            settings = Settings.from_file("httpdriver.yaml")
        """
        try:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {path}",
                    details={"path": str(path)},
                )

            with open(config_path) as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            if not isinstance(data, dict):
                raise ConfigurationError(
                    "Configuration file must contain a YAML dictionary",
                    details={"path": str(path)},
                )

            return cls(**data)

        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                details={"path": str(path)},
            ) from e
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration: {e}",
                details={"path": str(path)},
            ) from e

    @classmethod
    def from_env(cls, prefix: str = "HTTPDRIVER_") -> "Settings":
        """
        Load settings from environment variables.

        Variable names follow the pattern: {prefix}{SECTION}_{KEY}

        Examples:
            HTTPDRIVER_DRIVER_TRUSTSTORE_PATH=/etc/certs/ca.pem
            HTTPDRIVER_DRIVER_MAX_RETRY_ATTEMPTS=3
            HTTPDRIVER_DRIVER_TLS_ALGORITHM=TLSv1.3
            HTTPDRIVER_LOGGING_LEVEL=DEBUG

        Args:
            prefix: Environment variable prefix (default: "HTTPDRIVER_")

        Returns:
            Validated Settings instance

        Raises:
            ConfigurationError: If variables are invalid
        """
        env_data: dict[str, dict[str, str]] = {
            "driver": {},
            "logging": {},
        }

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue

            config_path = key[len(prefix):].lower().split("_", 1)
            if len(config_path) != 2:
                continue

            section, field = config_path
            if section in env_data:
                env_data[section][field] = value

        try:
            return cls(**env_data)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration from environment: {e}",
                details={"prefix": prefix},
            ) from e
