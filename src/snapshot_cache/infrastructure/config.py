"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: SecretStr | None = None
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 10.0
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "snapshot_cache"
    snapshot_collection: str = "repo_snapshots"
    core_ttl_seconds: int = 3600
    readme_ttl_days: int = 7
    readme_max_chars: int = 50_000
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def core_ttl(self) -> timedelta:
        return timedelta(seconds=self.core_ttl_seconds)

    @property
    def readme_ttl(self) -> timedelta:
        return timedelta(days=self.readme_ttl_days)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
