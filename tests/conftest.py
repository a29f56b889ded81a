"""
Shared fixtures: an in-memory SQLite database per test, seeded staff
accounts and an httpx client wired to the FastAPI app.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV_MODE", "development")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from restaurant_crm.core.config import get_settings
from restaurant_crm.database import get_db, init_db
from restaurant_crm.main import app
from restaurant_crm.models import User, UserRole


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def users(session_maker) -> dict[str, User]:
    async with session_maker() as session:
        accounts = {
            "admin": User(name="Admin User", email="admin@restaurant.com", role=UserRole.ADMIN),
            "manager": User(name="Manager Smith", email="manager@restaurant.com", role=UserRole.MANAGER),
            "staff": User(name="Staff Johnson", email="staff@restaurant.com", role=UserRole.STAFF),
        }
        session.add_all(accounts.values())
        await session.commit()
    return accounts


@pytest.fixture
async def client(session_maker, users):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": str(users["admin"].id)},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def as_user(users):
    """Headers acting as one of the seeded accounts."""
    def _headers(role: str) -> dict[str, str]:
        return {"X-User-Id": str(users[role].id)}
    return _headers


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
