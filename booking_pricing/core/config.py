"""
Application configuration loaded from environment variables with sensible
defaults for local development.

All settings are validated at startup via Pydantic ``BaseSettings``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the booking pricing service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Application --
    app_name: str = "Booking Pricing API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # -- API --
    api_v1_prefix: str = "/api/v1"
    cors_allowed_origins: str = "*"

    # -- Pricing --
    currency: str = "SGD"
    # Fallback window for time-window surcharges when an ancillary service
    # has no usable condition_config (inclusive on both ends, HH:MM).
    default_surcharge_window_start: str = "23:00"
    default_surcharge_window_end: str = "06:59"
    # Number of extra pickup / dropoff stop slots on a booking.
    max_extra_stops: int = 5


settings = Settings()
