from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

# One engine per process. Serverless workers reuse it across warm invocations;
# a failed connection clears it so the next request builds a fresh one.
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    pass


def _database_url() -> str:
    return os.getenv("DATABASE_URL", "postgresql+asyncpg://localhost/shopping_list")


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, value, default)
        return default


def engine_options(url: str) -> dict:
    """Pool and driver options for the async engine.

    Short connect timeout so a cold start fails fast instead of hanging the request.
    """
    options: dict = {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": _int_env("DB_POOL_SIZE", 10),
        "pool_timeout": _int_env("DB_CONNECT_TIMEOUT", 10),
        "pool_recycle": _int_env("DB_POOL_RECYCLE", 300),
    }
    if "+asyncpg" in url:
        options["connect_args"] = {
            "timeout": _int_env("DB_CONNECT_TIMEOUT", 10),
            "command_timeout": _int_env("DB_COMMAND_TIMEOUT", 45),
        }
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = _database_url()
        logger.info("Creating new database engine")
        _engine = create_async_engine(url, **engine_options(url))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    """Dispose the cached engine (if any) and forget it."""
    global _engine, _session_factory
    engine = _engine
    _engine = None
    _session_factory = None
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")


async def ping_database() -> None:
    """Run a trivial query. On failure the cached engine is dropped and the error re-raised."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Database ping failed: %s", exc)
        await dispose_engine()
        raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session
