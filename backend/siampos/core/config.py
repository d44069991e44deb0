"""Siam POS settings, read from the environment and an optional `.env`.

Import `settings` rather than reading `os.environ`. Signing secrets are
checked at startup: weak values only warn in debug mode but stop the
process otherwise.
"""

import warnings
from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_JWT_SECRET = "change-me-access-secret-at-least-32-characters"
_DEFAULT_JWT_REFRESH_SECRET = "change-me-refresh-secret-at-least-32-characters"
_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database
    database_url: str = "sqlite:///./siampos.db"

    # Security
    jwt_secret: str = _DEFAULT_JWT_SECRET
    jwt_refresh_secret: str = _DEFAULT_JWT_REFRESH_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    refresh_token_expire_days: int = 7
    password_reset_expire_minutes: int = 60
    email_verification_expire_hours: int = 24
    token_cleanup_interval_seconds: int = 3600

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Links embedded in outgoing emails
    frontend_url: str = "http://localhost:5173"

    # ==========================================================================
    # Email/SMTP Configuration
    # ==========================================================================
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = "noreply@siampos.local"
    smtp_from_name: str = "Siam POS"
    smtp_use_tls: bool = True

    # ==========================================================================
    # Orders
    # ==========================================================================
    default_service_charge_percentage: int = 10
    default_tax_rate: int = 7
    order_number_max_retries: int = 5

    # Order numbers and "today" statistics use the restaurant's calendar day
    timezone: str = "Asia/Bangkok"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("jwt_secret", "jwt_refresh_secret")
    @classmethod
    def validate_secret_length(cls, v: str, info) -> str:
        if len(v) < _MIN_SECRET_LENGTH:
            warnings.warn(
                f"{info.field_name.upper()} should be at least {_MIN_SECRET_LENGTH} characters.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate signing secrets, failing hard outside debug mode."""
        if self.jwt_secret == self.jwt_refresh_secret:
            message = "JWT_SECRET and JWT_REFRESH_SECRET must be different values."
            if not self.debug:
                raise ValueError(f"FATAL: {message}")
            warnings.warn(message, UserWarning, stacklevel=2)

        if not self.debug:
            defaults = {_DEFAULT_JWT_SECRET, _DEFAULT_JWT_REFRESH_SECRET}
            if self.jwt_secret in defaults or self.jwt_refresh_secret in defaults:
                raise ValueError(
                    "FATAL: Cannot start in production mode with default JWT secrets. "
                    "Set JWT_SECRET and JWT_REFRESH_SECRET environment variables."
                )
            for name, value in (
                ("JWT_SECRET", self.jwt_secret),
                ("JWT_REFRESH_SECRET", self.jwt_refresh_secret),
            ):
                if len(value) < _MIN_SECRET_LENGTH:
                    raise ValueError(
                        f"FATAL: {name} must be at least {_MIN_SECRET_LENGTH} characters "
                        f"in production mode (current length: {len(value)}). Generate a "
                        "secure key with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
                    )

        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
