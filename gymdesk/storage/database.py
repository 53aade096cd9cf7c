"""Async engine for the self-hosted directory backend."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from gymdesk.config.settings import get_settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool options for a URL. SQLite drivers reject the sizing arguments."""
    if database_url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True, "pool_recycle": 3600}


@lru_cache
def get_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Return a cached async engine per URL, defaulting to the environment settings."""
    if database_url is None or echo is None:
        settings = get_settings()
        database_url = database_url or settings.database_url
        echo = settings.debug if echo is None else echo
    return create_async_engine(database_url, echo=echo, **engine_options(database_url))


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the users, roles, refresh token and gym tables if missing."""
    import gymdesk.models.database  # noqa: F401  registers the tables

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
