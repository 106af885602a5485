"""Application configuration."""

import os
from datetime import timedelta
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_anon_key: str
    profiles_table: str = "profiles"
    state_path: str | None = "~/.dupliverse/state.json"
    stale_after_seconds: int = 120
    sync_interval_seconds: int = 300
    fetch_retry_attempts: int = 1
    fetch_retry_delay_seconds: float = 1.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def stale_after(self) -> timedelta:
        return timedelta(seconds=self.stale_after_seconds)

    @property
    def sync_interval(self) -> timedelta:
        return timedelta(seconds=self.sync_interval_seconds)


def resolve_state_path(raw: str | None) -> Path | None:
    """Expand the configured state path; empty disables durable state."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    return Path(cleaned).expanduser()
