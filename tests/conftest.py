"""Fixtures backed by an in-memory SQLite user store."""

import os
from collections.abc import AsyncGenerator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import httpx
import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ecolibres.database import create_schema, get_session
from ecolibres.main import create_app
from ecolibres.schemas import UserIdentity
from ecolibres.store import UserStore


@pytest.fixture()
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def store(db_session: AsyncSession) -> UserStore:
    return UserStore(db_session)


@pytest.fixture()
def reload_user(session_factory):
    """Read a user back through a brand new session."""

    async def _reload(uid: str):
        async with session_factory() as session:
            return await UserStore(session).get_user(uid)

    return _reload


@pytest.fixture()
async def user(store: UserStore):
    return await store.find_or_create(
        UserIdentity(uid="firebase-uid-1", email="ana@example.com", display_name="Ana")
    )


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
