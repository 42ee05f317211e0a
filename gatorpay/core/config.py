"""
gatorpay/core/config.py

Purpose: Client configuration

- Loads environment variables
- Centralizes config values (API base URL, token storage, OTP timings)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Backend API
    API_BASE_URL: str = Field(
        default="http://localhost:8080/api/v1",
        description="GatorPay backend base URL (without /auth or /wallet)"
    )
    API_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Backend request timeout in seconds"
    )

    # Token persistence
    TOKEN_STORAGE_PATH: str = Field(
        default=".gatorpay/storage.json",
        description="File holding the persisted bearer token"
    )
    TOKEN_STORAGE_KEY: str = Field(
        default="gatorpay_token",
        description="Storage key the bearer token is written under"
    )

    # OTP challenge
    OTP_RESEND_COOLDOWN_SECONDS: int = Field(
        default=30,
        description="Seconds before another verification code may be requested"
    )
    OTP_COOLDOWN_TICK_SECONDS: float = Field(
        default=1.0,
        description="Interval of the resend cooldown countdown"
    )
    OTP_EXPIRY_MINUTES: int = Field(
        default=5,
        description="Lifetime of an issued verification code"
    )
    OTP_MAX_ATTEMPTS: int = Field(
        default=5,
        description="Rejected codes allowed before the challenge is dropped"
    )

    # Wallet screens
    TRANSACTIONS_PAGE_SIZE: int = Field(
        default=10,
        description="Transactions fetched per page"
    )
    DEFAULT_CURRENCY: str = Field(
        default="USD",
        description="Currency used when a wallet carries none"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @field_validator("API_BASE_URL")
    @classmethod
    def validate_api_base_url(cls, v: str, info: ValidationInfo) -> str:
        """Require HTTPS for the backend in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v.startswith("https://"):
            raise ValueError("API_BASE_URL must use https in production environment")
        return v.rstrip("/")

    @field_validator(
        "API_TIMEOUT_SECONDS",
        "OTP_RESEND_COOLDOWN_SECONDS",
        "OTP_COOLDOWN_TICK_SECONDS",
        "OTP_EXPIRY_MINUTES",
        "OTP_MAX_ATTEMPTS",
        "TRANSACTIONS_PAGE_SIZE",
    )
    @classmethod
    def validate_positive(cls, v):
        """Timings and limits must be positive."""
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings(config: Settings = None):
    """
    Validates critical settings on client startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.API_BASE_URL:
        errors.append("API_BASE_URL is required")

    if not config.TOKEN_STORAGE_KEY:
        errors.append("TOKEN_STORAGE_KEY is required")

    if not config.TOKEN_STORAGE_PATH:
        errors.append("TOKEN_STORAGE_PATH is required")

    if config.OTP_COOLDOWN_TICK_SECONDS > config.OTP_RESEND_COOLDOWN_SECONDS:
        errors.append("OTP_COOLDOWN_TICK_SECONDS cannot exceed OTP_RESEND_COOLDOWN_SECONDS")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
