"""
Shared fixtures for all test modules.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from shoplist.auth.jwt import get_current_user
from shoplist.db.database import get_db
from shoplist.db.models import Product, User
from shoplist.main import app

from .factories import make_product, make_user


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user() -> User:
    return make_user()


@pytest.fixture
def products(user: User) -> list[Product]:
    return [
        make_product("Bread", user_id=user.id, category="Bakery", unit="unit"),
        make_product("Eggs", user_id=user.id, unit="dozen", brand="Happy Hens"),
        make_product("Milk", user_id=user.id),
    ]


@pytest.fixture
def db_session() -> MagicMock:
    """Stand-in AsyncSession; tests patch the managers, so it is rarely touched."""
    db = MagicMock()
    db.get = AsyncMock(return_value=None)
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    return db


@pytest.fixture
def anon_client(db_session: MagicMock, monkeypatch) -> TestClient:
    """Client with a fake DB but real authentication."""
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("CLIENT_URL", "http://client.test")

    async def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client: TestClient, user: User) -> TestClient:
    """Client already signed in as `user`."""
    app.dependency_overrides[get_current_user] = lambda: user
    return anon_client
