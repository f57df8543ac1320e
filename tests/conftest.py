"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable

# In-memory SQLite, no Redis: each test gets a fresh database
os.environ.setdefault("CASINO_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CASINO_LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from casino.auth.jwt import create_access_token
from casino.config import get_settings
from casino.database import close_db, get_engine, get_session, init_db
from casino.db.models import User
from casino.db.schema import ensure_schema
from casino.dependencies import get_redis_dep
from casino.main import create_app


@pytest.fixture
def override_settings(monkeypatch):
    """Override settings for one test: override_settings(debug=True)."""

    def _override(**values: object) -> None:
        for key, value in values.items():
            monkeypatch.setenv(f"CASINO_{key.upper()}", str(value))
        get_settings.cache_clear()

    get_settings.cache_clear()
    yield _override
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory database with the schema bootstrapped."""
    get_settings.cache_clear()
    settings = get_settings()
    await init_db(settings.database_url)
    assert await ensure_schema(get_engine()) is True
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Independent sessions over one file-backed database, for concurrent callers."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'casino.db'}")
    assert await ensure_schema(engine) is True
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for committed users. The auth service owns this table in production."""

    async def _make(user_id: str = "player-0001", name: str = "Player One", chip_balance: int = 10_000) -> User:
        user = User(id=user_id, name=name, chip_balance=chip_balance)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest_asyncio.fixture
async def app(database) -> FastAPI:
    """Application wired to the test database, with Redis disabled."""
    application = create_app()
    application.state.schema_ready = True
    application.dependency_overrides[get_redis_dep] = lambda: None
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. Lifespan is not run; the database fixture stands in for it."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
