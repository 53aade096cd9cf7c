"""Application settings via Pydantic BaseSettings."""

from __future__ import annotations

import warnings
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings

from gymdesk.types import DirectoryBackend


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Database
    database_url: str = "sqlite+aiosqlite:///./gymdesk.db"

    # App
    secret_key: str = "change-me-in-production"
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000"]
    host: str = "127.0.0.1"
    port: int = 8000

    # Directory service
    directory_backend: DirectoryBackend = DirectoryBackend.DATABASE
    supabase_url: str | None = None
    supabase_key: str | None = None

    # Sessions
    access_token_ttl: int = 3600
    refresh_token_ttl: int = 60 * 60 * 24 * 30
    access_cookie_name: str = "gymdesk-access-token"
    refresh_cookie_name: str = "gymdesk-refresh-token"
    session_cookie_name: str = "gymdesk_sid"

    # Routing
    login_path: str = "/login"
    home_path: str = "/dashboard"
    fallback_role: Literal["admin", "trainer", "member"] = "admin"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    settings = Settings()
    if settings.secret_key == "change-me-in-production":  # nosec B105
        warnings.warn(
            "SECRET_KEY is using the insecure default. "
            "Set SECRET_KEY environment variable for production.",
            UserWarning,
            stacklevel=2,
        )
    if settings.directory_backend == DirectoryBackend.SUPABASE and not (
        settings.supabase_url and settings.supabase_key
    ):
        msg = "DIRECTORY_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY"
        raise ValueError(msg)
    return settings
