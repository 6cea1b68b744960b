"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub API
    github_token: str = ""
    github_api_base_url: str = "https://api.github.com"
    github_request_timeout_seconds: float = 30.0

    # Target repository ("owner/name"), as exported by GitHub Actions
    github_repository: str = ""

    # Release guardrails
    github_actions_integration_id: int = 15368
    release_environment_name: str = "release"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "text"] = "text"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
