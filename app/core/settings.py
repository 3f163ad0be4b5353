"""Application settings using Pydantic Settings for typed configuration.

This module centralizes all configuration and provides type-safe access to settings.
Settings are loaded from environment variables with sensible defaults.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env_name: str = Field(default="development", alias="ENV_NAME")

    # Database
    database_url: str = Field(alias="DATABASE_URL")

    # Admin panel
    session_secret_key: str = Field(alias="SESSION_SECRET_KEY")
    admin_username: str = Field(alias="ADMIN_USERNAME")
    admin_password: str = Field(alias="ADMIN_PASSWORD")

    # CORS
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # LINE (identity + messaging)
    line_login_channel_id: str | None = Field(
        default=None, alias="LINE_LOGIN_CHANNEL_ID"
    )
    line_messaging_api_token: str | None = Field(
        default=None, alias="LINE_MESSAGING_API_TOKEN"
    )
    line_messaging_channel_secret: str | None = Field(
        default=None, alias="LINE_MESSAGING_CHANNEL_SECRET"
    )
    line_rich_menu_id_member: str | None = Field(
        default=None, alias="LINE_RICH_MENU_ID_MEMBER"
    )
    liff_linking_url: str = Field(
        default="https://liff.line.me", alias="LIFF_LINKING_URL"
    )

    # Payments (Stripe)
    stripe_secret_key: str | None = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str | None = Field(
        default=None, alias="STRIPE_WEBHOOK_SECRET"
    )
    stripe_webhook_tolerance_seconds: int = Field(
        default=300, alias="STRIPE_WEBHOOK_TOLERANCE_SECONDS", ge=1
    )
    payment_currency: str = Field(default="jpy", alias="PAYMENT_CURRENCY")

    # Visits
    checkin_duplicate_window_minutes: int = Field(
        default=60, alias="CHECKIN_DUPLICATE_WINDOW_MINUTES", ge=0
    )
    visit_history_limit: int = Field(
        default=50, alias="VISIT_HISTORY_LIMIT", ge=1, le=500
    )
    qr_app_name: str = Field(default="yoake", alias="QR_APP_NAME")

    # Notifications
    notification_attempts: int = Field(
        default=3, alias="NOTIFICATION_ATTEMPTS", ge=1, le=5
    )
    notification_timeout_seconds: float = Field(
        default=5.0, alias="NOTIFICATION_TIMEOUT_SECONDS", gt=0
    )

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        origins = []
        for o in self.cors_origins.split(","):
            trimmed = o.strip()
            if trimmed:
                origins.append(trimmed)
        return origins

    @computed_field
    @property
    def checkin_duplicate_window(self) -> timedelta:
        """Get the duplicate check-in window as timedelta."""
        return timedelta(minutes=self.checkin_duplicate_window_minutes)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
