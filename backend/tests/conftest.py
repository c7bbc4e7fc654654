"""Pytest configuration and fixtures for DeskGuard tests.

Provides an in-memory SQLite database, seeded users, bearer tokens and an
httpx client wired to the FastAPI app.
"""

from types import SimpleNamespace
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from deskguard.auth.jwt import create_access_token
from deskguard.auth.schema import Role
from deskguard.config import settings
from deskguard.database import Base, get_db
from deskguard.main import app
from deskguard.models.user import User


# ── Plain user records for engine tests ──────────────────────────

@pytest.fixture
def make_user() -> Callable[..., SimpleNamespace]:
    """Build an authenticated user record (id + role) without a database."""

    def _make(role, user_id: str = "u-1") -> SimpleNamespace:
        return SimpleNamespace(id=user_id, role=role)

    return _make


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def users(session_factory) -> dict[str, User]:
    """One active user per role, plus an admin stripped of manageRoles
    and an inactive user."""
    records = {
        "portal": User(username="portal1", full_name="Portal User", role=Role.PORTAL),
        "user": User(username="user1", full_name="Regular User", role=Role.USER),
        "admin": User(username="admin1", full_name="Admin User", role=Role.ADMIN),
        "superuser": User(username="root", full_name="Super User", role=Role.SUPERUSER),
        "restricted_admin": User(
            username="admin2",
            full_name="Restricted Admin",
            role=Role.ADMIN,
            custom_permissions={"users": {"manageRoles": False}},
        ),
        "inactive": User(
            username="gone", full_name="Inactive User", role=Role.USER, is_active=False
        ),
    }
    async with session_factory() as session:
        session.add_all(records.values())
        await session.commit()
    return records


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """Bearer headers for a user, as the login service would issue them."""

    def _headers(user: User) -> dict:
        token = create_access_token(user_id=user.id, role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ── HTTP client ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency pointed at the test engine."""
    monkeypatch.setattr(settings, "permission_cache_enabled", False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
