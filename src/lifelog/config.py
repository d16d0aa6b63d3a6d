"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables with LIFELOG_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="LIFELOG_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Storage backend ---
    backend: str = "redis"  # "redis" | "memory"
    redis_url: str = "redis://localhost:6379/0"
    entries_key: str = "lifelog:entries"
    state_key: str = "lifelog:state"
    storage_timeout_seconds: float = 5.0

    # --- Log bounds ---
    max_entries: int = 1000
    dedup_window_seconds: int = 300  # 5 minutes
    retention_days: int = 30

    # --- Queries ---
    top_domains_limit: int = 5
    default_recent_limit: int = 10

    # --- Retention sweep ---
    sweep_interval_hours: int = 24

    # --- Event socket ---
    socket_path: str = "/tmp/lifelog/events.sock"
    socket_buffer_size: int = 65536

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
