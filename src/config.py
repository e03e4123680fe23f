"""Configuration management for the application."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(default="sqlite:///./ourjourney.db")

    # JWT
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_minutes: int = Field(default=10080)  # 7 days

    # VAPID (base64url: raw 32-byte private scalar, 65-byte uncompressed public point)
    vapid_public_key: str | None = Field(default=None)
    vapid_private_key: str | None = Field(default=None)
    vapid_subject: str = Field(default="mailto:hello@ourjourney.app")
    vapid_token_expiry_seconds: int = Field(default=43200, gt=0, le=86400)  # 12 hours

    # Push delivery
    push_ttl_seconds: int = Field(default=86400, ge=0)
    push_urgency: Literal["very-low", "low", "normal", "high"] = Field(default="high")
    push_timeout_seconds: float = Field(default=10.0, gt=0)
    push_max_concurrency: int = Field(default=10, ge=1)
    push_max_record_size: int = Field(default=4096, ge=104)

    # API
    environment: str = Field(default="development")

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has secure settings."""
        if self.is_production:
            if self.jwt_secret == "change-me-in-production":  # noqa: S105
                raise ValueError("JWT_SECRET must be changed in production")
            if not self.vapid_private_key:
                raise ValueError("VAPID_PRIVATE_KEY must be set in production")
        return self

    @property
    def push_configured(self) -> bool:
        """Check if a VAPID private key is configured."""
        return bool(self.vapid_private_key)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
