"""Application configuration powered by Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Strongly typed application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: Literal["dev", "staging", "prod"] = Field(default="dev")
    project_name: str = Field(default="Figure Desk API")
    version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True, description="JSON lines when true, console rendering otherwise.")

    openai_api_key: str | None = Field(default=None, min_length=1)
    openai_api_base: str | None = None
    direct_upload_model: str = Field(default="gpt-5-mini")

    workspace_endpoint: str = Field(default="http://localhost:3001")
    workspace_api_key: str | None = None
    workspace_timeout_seconds: float | None = Field(default=None, gt=0)
    use_mock_data: bool = Field(default=False)

    registry_db_url: str = Field(default="sqlite+aiosqlite:///./data/registry.db")
    config_dir: str = Field(default="./data/config")
    storage_dir: str = Field(default="./data/storage")

    auth_enabled: bool = Field(default=False)
    auth_users_file: str = Field(default="./data/config/auth.json")
    session_ttl_seconds: int = Field(default=8 * 60 * 60, ge=60)

    cors_allowed_origins: list[str] = Field(default_factory=list)

    langsmith_api_key: str | None = None
    langsmith_endpoint: str | None = None
    langsmith_project: str = Field(default="figure-desk")
    enable_tracing: bool = Field(default=False)


@lru_cache
def get_settings() -> AppSettings:
    """Provide a cached singleton settings instance."""

    return AppSettings()
