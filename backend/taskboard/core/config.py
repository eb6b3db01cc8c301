"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Taskboard Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./taskboard.db"
    cors_origins: str = "http://localhost:3000"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "taskboard"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 20.0
    extraction_strategy: str = "auto"
    default_timezone: str = "UTC"
    default_due_hour: int = 9
    suggestion_debounce_seconds: float = 0.3
    suggestion_limit: int = 5
    suggestion_min_query_length: int = 2


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
