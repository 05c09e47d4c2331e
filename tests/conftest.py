"""
Shared fixtures: a throwaway SQLite database per test, an async session
for store-level tests and a ``TestClient`` wired to the same database.
"""

import asyncio
import os

# Must be set before ``config.settings`` is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from database.models import Base
from database.session import get_db_session


def _engine(tmp_path):
    return create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}",
        poolclass=NullPool,
    )


async def _create_all(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def session(tmp_path):
    engine = _engine(tmp_path)
    await _create_all(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        yield db
    await engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """Session factory for API tests; tables are created up front."""
    engine = _engine(tmp_path)
    asyncio.run(_create_all(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory):
    from main import app

    async def _override_session():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Return a helper that signs a user up and yields ``(token, user)``.

    Cookies are cleared afterwards so later requests only authenticate
    through the headers the test passes explicitly.
    """

    def _register(username: str, email: str = None, password: str = "password123"):
        resp = client.post(
            "/api/auth/signup",
            json={
                "username": username,
                "email": email or f"{username}@example.com",
                "password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        client.cookies.clear()
        body = resp.json()
        return body["token"], body["user"]

    return _register
