"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for fetching and installing modules from GitHub."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    module_path: Path | None = None
    user_agent: str = "github-module-fetcher"
    request_timeout: float = 30.0
    cache_dir: Path = Path.home() / ".cache/github-module-fetcher"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
