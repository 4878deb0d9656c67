"""Configuration management using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = "redis://redis:6379"

    # Inter-service auth (empty = dev mode, no auth)
    service_auth_token: str = ""

    # Prefix for every Redis key and channel owned by this service
    preferences_namespace: str = "detox"

    # Bundled JSON content; empty means the package's own data/ directory
    content_dir: str = ""

    # Local timezone used to compute "tomorrow" fire times
    timezone: str = "UTC"

    # Quiz notifications
    quiz_notification_count: int = 3
    quiz_window_start_hour: int = 18
    quiz_window_end_hour: int = 24
    # Title used when the user never named their ex
    quiz_fallback_title: str = "Ex"

    # Streak notification fires this many seconds after local midnight
    streak_fire_offset_seconds: int = 5

    # Debug notifications fire this many seconds after being submitted
    test_notification_delay_seconds: int = 3

    # Settling delays. These stand in for a readiness signal from the
    # client: stores must be loaded before a tap is handled, and navigation
    # must settle before a sheet or celebration is presented.
    launch_settle_seconds: float = 1.0
    quiz_tap_settle_seconds: float = 0.5
    celebration_settle_seconds: float = 0.3

    # How long request_permission waits for the device bridge to answer
    permission_prompt_timeout_seconds: float = 60.0
    permission_poll_interval_seconds: float = 0.5

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
