"""SQLAlchemy async engine and session utilities."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from hireflow_api.core.config import Settings


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def _get_async_engine(database_url: str, database_echo: bool) -> AsyncEngine:
    return create_async_engine(database_url, echo=database_echo, future=True)


@lru_cache
def _get_session_maker(database_url: str, database_echo: bool) -> async_sessionmaker:
    engine = _get_async_engine(database_url, database_echo)
    return async_sessionmaker(engine, expire_on_commit=False)


def get_async_engine(settings: Settings) -> AsyncEngine:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return _get_async_engine(settings.database_url, settings.database_echo)


def get_session_maker(settings: Settings) -> async_sessionmaker:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return _get_session_maker(settings.database_url, settings.database_echo)


async def create_tables(settings: Settings) -> None:
    """Create all tables for the configured database (dev and tests)."""

    from hireflow_api.db.base import Base
    from hireflow_api.db import models  # noqa: F401 -- register models

    _ensure_sqlite_directory(settings.database_url)
    engine = get_async_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
