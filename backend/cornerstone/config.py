"""
Application settings for Cornerstone.

Values are read from the environment (prefix ``CORNERSTONE_``) or a local
``.env`` file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CORNERSTONE_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///./cornerstone.db"
    redis_url: str = "redis://localhost:6379/0"
    debug: bool = False

    log_level: str | None = None
    log_json: bool = False

    # Upper bound on work items loaded into a single reschedule run
    max_schedule_work_items: int = 2000

    # UTC hour of the worker's daily reschedule sweep
    daily_reschedule_hour: int = 2


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
