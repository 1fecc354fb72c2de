"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests (set BEFORE the app is imported)
- A fresh in-memory SQLite database per test
- An httpx AsyncClient bound to the app, with `get_db` overridden
- Helpers to create users and log them in
"""

import os

# Settings are read at import time, so these must come first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"  # keep hashing fast in tests

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool

from device_portal.core.config import settings
from device_portal.core.database import build_engine, get_db
from device_portal.main import app
from device_portal.models import Base, UserRole
from device_portal.services import user_service

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """A session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Test client; every request gets its own DB session, like production."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(session_factory):
    """Insert a user in its own committed session and return it."""

    async def _create(username, password=DEFAULT_PASSWORD, role=UserRole.AGENT, **profile):
        async with session_factory() as session:
            user = await user_service.create_user(
                username, password, session, role=role, **profile,
            )
            await session.commit()
            return user

    return _create


@pytest.fixture
def login(client):
    """Log in and return bearer headers; the client's cookie jar is left empty."""

    async def _login(username, password=DEFAULT_PASSWORD):
        response = await client.post(
            "/api/auth/login", json={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text
        token = response.cookies[settings.SESSION_COOKIE_NAME]
        client.cookies.clear()
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
async def admin(create_user):
    return await create_user("root", role=UserRole.ADMIN)


@pytest.fixture
async def agent(create_user):
    return await create_user(
        "acme",
        company_name="Acme Ltd",
        email="ops@acme.example",
        phone="555-0100",
        contact_person="Jane Roe",
    )


@pytest.fixture
async def admin_headers(admin, login):
    return await login(admin.username)


@pytest.fixture
async def agent_headers(agent, login):
    return await login(agent.username)
