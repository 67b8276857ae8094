"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment variables are set BEFORE taskvault is imported, because
   `settings` is read once at import time (test secrets, cheap bcrypt).
2. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps a single connection so every session sees the same database.
3. The app's get_db dependency is overridden to hand out sessions bound
   to that engine. The real auth gate runs; tests log in for real.

Nothing is shared between tests, so there is no cleanup to get wrong.
"""

import os

os.environ.setdefault("TASKVAULT_ENVIRONMENT", "test")
os.environ.setdefault("TASKVAULT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKVAULT_JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("TASKVAULT_JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("TASKVAULT_BCRYPT_ROUNDS", "4")

import uuid  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskvault.db.engine import get_db, init_models  # noqa: E402
from taskvault.main import app  # noqa: E402


@pytest_asyncio.fixture()
async def engine():
    """Per-test in-memory database with the full schema."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Direct session for service-level tests and DB inspection."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's get_db overridden for testing.

    Learn: Auth is NOT mocked. Protected routes need a real access token,
    which the `auth_headers` fixture obtains by registering a user.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client, email=None, password="password_123"):
    """Register a user through the API and return the response data."""
    email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/auth/register", json={"email": email, "password": password}
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def auth_headers(client):
    """Authorization header for a freshly registered user ("user A")."""
    data = await register(client)
    return bearer(data["accessToken"])


@pytest_asyncio.fixture()
async def other_auth_headers(client):
    """Authorization header for a second, unrelated user ("user B")."""
    data = await register(client)
    return bearer(data["accessToken"])
