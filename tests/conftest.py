"""Shared test fixtures."""

import uuid

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.db.models  # noqa: F401
from app.core.auth import ActingSession
from app.core.db import Base, get_db
from app.core.security import create_access_token
from app.main import app as fastapi_app


# One in-memory SQLite database per test, shared by every session through StaticPool.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    """Yield a fresh async session on an empty schema."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def acting() -> ActingSession:
    return ActingSession(user_id=uuid.uuid4(), organization_id=uuid.uuid4())


@pytest.fixture
def other_org() -> ActingSession:
    """A caller from a different organization."""
    return ActingSession(user_id=uuid.uuid4(), organization_id=uuid.uuid4())


def auth_headers(session: ActingSession) -> dict:
    token = create_access_token(session.user_id, session.organization_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(acting) -> dict:
    return auth_headers(acting)


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the app, with each request on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def other_headers(other_org) -> dict:
    return auth_headers(other_org)
