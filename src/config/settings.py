"""Application settings and configuration."""

import logging
import re
from datetime import timedelta
from typing import Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.cors_config import CORSConfiguration, CORSConfigurationError

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev-secret-change-in-production"
DEFAULT_DURATION_SECONDS = 30 * 24 * 60 * 60

_DURATION_PATTERN = re.compile(r"^([0-9]+)([smhd])$")
_DURATION_MULTIPLIERS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def parse_duration_to_seconds(value: str) -> int:
    """Parse a duration like ``15m`` or ``30d`` into seconds.

    Unparseable values fall back to 30 days.
    """
    match = _DURATION_PATTERN.match(value.strip()) if value else None
    if not match:
        return DEFAULT_DURATION_SECONDS
    return int(match.group(1)) * _DURATION_MULTIPLIERS[match.group(2)]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "CronoStudio API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False
    database_create_tables: bool = False  # create missing tables on startup (local development)

    # API
    api_prefix: str = "/api"
    app_base_url: str = "http://localhost:3000"

    # CORS
    cors_allow_origins: str | None = Field(default=None, validation_alias="CORS_ALLOWED_ORIGINS")
    cors_allow_credentials: bool = True
    cors_max_age: int = 86400

    # Security
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_in: str = "7d"
    jwt_refresh_expires_in: str = "30d"
    require_email_verification: bool = False
    google_client_id: str | None = None

    # Service (automation) access
    webhook_secret: str | None = Field(default=None, validation_alias="CRONOSTUDIO_WEBHOOK_SECRET")
    service_user_id: str | None = Field(default=None, validation_alias="CRONOSTUDIO_SERVICE_USER_ID")
    service_user_email: str | None = Field(default=None, validation_alias="CRONOSTUDIO_SERVICE_USER_EMAIL")

    # Rate limiting
    rate_limit_enforce: bool = False
    redis_url: str | None = None

    # Email delivery
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    email_from: str | None = None

    # Observability
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_format: str = "text"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @model_validator(mode="after")
    def validate_production(self) -> Self:
        """Refuse to start a production deployment with unsafe secrets or storage."""
        if not self.is_production:
            return self
        if self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production")
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters in production")
        if self.rate_limit_enabled and not self.redis_url:
            raise ValueError("REDIS_URL must be configured in production for rate limiting")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def rate_limit_enabled(self) -> bool:
        """Rate limits are enforced in production, or anywhere the override flag is set."""
        return self.is_production or self.rate_limit_enforce

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(seconds=parse_duration_to_seconds(self.jwt_expires_in))

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(seconds=parse_duration_to_seconds(self.jwt_refresh_expires_in))

    def get_cors_configuration(self) -> CORSConfiguration:
        """Get CORS configuration based on environment settings.

        Raises:
            CORSConfigurationError: If CORS configuration is invalid or insecure.

        """
        try:
            return CORSConfiguration.from_environment(
                environment=self.environment,
                allow_origins=self.cors_allow_origins,
                allow_credentials=self.cors_allow_credentials,
                max_age=self.cors_max_age,
            )
        except CORSConfigurationError as exc:
            logger.error(f"Failed to create CORS configuration: {exc}")
            raise


settings = Settings()  # type: ignore[call-arg]
