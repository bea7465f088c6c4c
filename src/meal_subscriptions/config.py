"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    stripe_secret_key: str
    stripe_timeout_seconds: float = 10.0
    stripe_retry_attempts: int = 2
    default_order_total_cents: int = 5000
    fallback_delivery_zipcode: str = "06902"
    business_timezone: str = "America/New_York"
    order_generation_cron: str = "0 6 * * *"
    order_generation_deadline_seconds: float | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
