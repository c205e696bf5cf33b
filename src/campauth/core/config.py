# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from typing import Literal

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,  # Immutable settings
        validate_default=True,
        extra="forbid",
    )

    # API Configuration
    app_name: str = Field(
        default="CampAuth",
        description="Application name",
        min_length=1,
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - Binding to all interfaces is needed for containerized deployment
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )

    # Persistence backends
    credential_store_backend: Literal["memory", "postgres"] = Field(
        default="memory",
        description="Where clients and tokens are persisted",
    )
    code_store_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where pending authorization codes are kept",
    )

    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/campauth",
        description="PostgreSQL connection URL",
        min_length=1,
    )
    database_pool_min: int = Field(
        default=2,
        ge=1,
        le=20,
        description="Minimum database pool size",
    )
    database_pool_max: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum database pool size",
    )
    database_command_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Query execution timeout in seconds",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )

    # Security
    jwt_secret: str = Field(
        default="test-jwt-secret-for-testing-only-never-use-in-production-32-chars",
        min_length=32,
        description="Secret used to verify end-user session JWTs",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT algorithm",
    )
    admin_api_key: str | None = Field(
        default=None,
        min_length=16,
        description="Key guarding the client administration endpoints",
    )

    # OAuth2
    oauth2_access_token_ttl: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Access token lifetime in seconds",
    )
    oauth2_refresh_token_ttl: int = Field(
        default=2592000,
        ge=60,
        description="Refresh token lifetime in seconds",
    )
    oauth2_auth_code_ttl: int = Field(
        default=600,
        ge=10,
        le=3600,
        description="Authorization code lifetime in seconds",
    )
    oauth2_issuer: str = Field(
        default="https://api.campreserv.com",
        description="Issuer identifier and base URL for discovery",
    )
    oauth2_code_sweep_interval: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Seconds between background sweeps of expired codes (0 disables)",
    )

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        if "database_pool_min" in info.data:
            min_size = info.data["database_pool_min"]
            if v < min_size:
                raise ValueError(
                    f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
                )
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls: type["Settings"], v: str, info: ValidationInfo) -> str:
        """Ensure test JWT secrets are not used in production."""
        if "api_env" in info.data and info.data["api_env"] == "production":
            if v.startswith("test-"):
                raise ValueError(
                    "Test JWT secret cannot be used in production. "
                    "Set JWT_SECRET environment variable."
                )
        return v

    @field_validator("oauth2_refresh_token_ttl")
    @classmethod
    def validate_refresh_ttl(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """A refresh token must outlive the access token it renews."""
        access_ttl = info.data.get("oauth2_access_token_ttl")
        if access_ttl is not None and v < access_ttl:
            raise ValueError(
                f"oauth2_refresh_token_ttl ({v}) must be >= "
                f"oauth2_access_token_ttl ({access_ttl})"
            )
        return v

    @field_validator("oauth2_issuer")
    @classmethod
    def validate_issuer(cls: type["Settings"], v: str) -> str:
        """Issuer must be an absolute http(s) URL without trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid issuer URL: {v}")
        return v.rstrip("/")

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.api_env == "development"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
