# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
admission backend. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from admissions.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.admission.verification_mode)
    'gated'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VerificationMode = Literal["gated", "advisory", "disabled"]


class DatabaseSettings(BaseSettings):
    """Record store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL; takes precedence over components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
        sqlite_busy_timeout: Seconds a SQLite writer waits for the file lock.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
        populate_by_name=True,
    )

    user: str = "admissions"
    password: SecretStr = SecretStr("admissions_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "admissions"
    url_override: str | None = Field(default=None, validation_alias="DB_URL")
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False
    sqlite_busy_timeout: float = 30.0

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured URL points at SQLite."""
        return self.url.startswith("sqlite")


class VerificationSettings(BaseSettings):
    """External face verification service configuration.

    Attributes:
        base_url: Base URL of the verification service. None disables calls.
        encode_path: Path of the face-encoding endpoint.
        timeout: Per-call timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="VERIFICATION_",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VERIFICATION_BASE_URL", "FACE_SERVICE_URL"),
    )
    encode_path: str = "/encode-student"
    timeout: float = 10.0

    @property
    def endpoint(self) -> str | None:
        """Full URL of the encoding endpoint, if configured."""
        if not self.base_url:
            return None
        return f"{self.base_url.rstrip('/')}/{self.encode_path.lstrip('/')}"


class AdmissionSettings(BaseSettings):
    """Admission decision policy configuration.

    Attributes:
        verification_mode: gated (approve only after verification succeeds),
            advisory (approve, then verify and record the outcome) or
            disabled (never call the verification service).
        rules_file: Optional YAML rule catalog; builtin catalog when unset.
        max_conflict_retries: Attempts for the capacity transaction before
            a conflict is surfaced to the caller.
        retry_backoff_seconds: Base backoff between conflict retries.
        min_photos: Minimum photo URLs accepted by the intake path.
        max_photos: Maximum photo URLs accepted by the intake path.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        extra="ignore",
    )

    verification_mode: VerificationMode = "gated"
    rules_file: str | None = None
    max_conflict_retries: int = Field(default=5, ge=1)
    retry_backoff_seconds: float = Field(default=0.05, ge=0.0)
    min_photos: int = Field(default=2, ge=0)
    max_photos: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def check_photo_bounds(self) -> Self:
        """Ensure the photo bounds describe a non-empty range."""
        if self.min_photos > self.max_photos:
            raise ValueError("min_photos must not exceed max_photos")
        return self


class IdentitySettings(BaseSettings):
    """Bearer token verification configuration.

    Tokens are issued by the external identity provider; this service
    only verifies them.

    Attributes:
        secret_key: Key used to verify token signatures.
        algorithm: JWT signing algorithm.
        audience: Expected audience claim, if any.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    audience: str | None = None


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 10000


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Record store settings.
        verification: Verification service settings.
        admission: Admission policy settings.
        identity: Token verification settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    admission: AdmissionSettings = Field(default_factory=AdmissionSettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.identity.secret_key.get_secret_value() == "change-this-in-production":
                raise ValueError(
                    "Identity secret key must be changed from default in production. "
                    "Set IDENTITY_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Singleton Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next call re-reads the environment."""
    get_settings.cache_clear()
