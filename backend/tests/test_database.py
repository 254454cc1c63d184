"""
Tests for the cached engine in db/database.py. No database is contacted.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shoplist.db import database


@pytest.fixture(autouse=True)
def fresh_engine(monkeypatch):
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_session_factory", None)
    created = []

    def fake_create(url, **options):
        engine = MagicMock(name=f"engine{len(created)}")
        engine.dispose = AsyncMock()
        engine.url = url
        engine.options = options
        created.append(engine)
        return engine

    monkeypatch.setattr(database, "create_async_engine", fake_create)
    return created


class TestEngineOptions:
    def test_asyncpg_gets_driver_timeouts(self, monkeypatch):
        monkeypatch.setenv("DB_COMMAND_TIMEOUT", "30")
        opts = database.engine_options("postgresql+asyncpg://db/shop")
        assert opts["pool_pre_ping"] is True
        assert opts["connect_args"] == {"timeout": 10, "command_timeout": 30}

    def test_other_drivers_skip_connect_args(self):
        assert "connect_args" not in database.engine_options("postgresql+psycopg://db/shop")

    def test_bad_integer_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("DB_POOL_SIZE", "lots")
        assert database.engine_options("postgresql+asyncpg://db/shop")["pool_size"] == 10


class TestEngineCache:
    def test_engine_is_reused(self, fresh_engine, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/shop")
        first = database.get_engine()
        assert database.get_engine() is first
        assert len(fresh_engine) == 1
        assert first.url == "postgresql+asyncpg://db/shop"

    async def test_dispose_forgets_engine(self, fresh_engine):
        first = database.get_engine()
        database.get_session_factory()
        await database.dispose_engine()
        first.dispose.assert_awaited_once()
        assert database._session_factory is None
        assert database.get_engine() is not first

    async def test_dispose_without_engine_is_noop(self, fresh_engine):
        await database.dispose_engine()
        assert fresh_engine == []

    async def test_failed_ping_resets_engine(self, fresh_engine):
        broken = database.get_engine()
        broken.connect.side_effect = OSError("connection refused")
        with pytest.raises(OSError):
            await database.ping_database()
        broken.dispose.assert_awaited_once()
        assert database._engine is None
