from functools import lru_cache
from typing import ClassVar

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # HS256 signing key shared with every backend service
    jwt_secret: SecretStr
    jwt_subject: str = "frontend-user"
    jwt_ttl_seconds: int = 3600

    # Backend service base URLs
    nl_sql_url: str = "http://localhost:8001"
    rag_url: str = "http://localhost:8002"
    forecast_url: str = "http://localhost:8003"
    agent_url: str = "http://localhost:8000"

    # Per-call timeouts (agent calls fan out to several services, so keep this generous)
    request_timeout_seconds: float = 120.0
    health_timeout_seconds: float = 5.0

    # Dashboard aggregate cache (empty db path = in-memory only)
    dashboard_cache_ttl_seconds: int = 300
    dashboard_cache_db_path: str = ""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()  # type: ignore[call-arg]  # pyright: ignore[reportCallIssue] - fields loaded from env
