"""Pytest configuration for all tests."""

import os

# Settings are read at import time, so the environment goes first.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./clientdesk-test.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.db.session import build_engine, build_session_factory, get_db
from app.models import AccessLevel, Base, Client, User, UserRole
from app.services.access_grants import AccessGrantStore
from app.services.selection import SelectionStore
from main import app

PASSWORD = "correct-horse-battery"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine(tmp_path):
    """A fresh SQLite database file per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'clientdesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make(role: UserRole = UserRole.user, email: str | None = None, name: str | None = None) -> User:
        user = User(
            name=name or f"{role.value.title()} User",
            email=email or f"{role.value}-{uuid4().hex[:8]}@example.com",
            hashed_password=PASSWORD_HASH,
            role=role.value,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_client(db):
    async def _make(name: str | None = None, industry: str = "Healthcare", active: bool = True) -> Client:
        client = Client(
            name=name or f"Client {uuid4().hex[:6]}",
            industry=industry,
            active=active,
        )
        db.add(client)
        await db.commit()
        await db.refresh(client)
        return client

    return _make


@pytest.fixture
def grant(db):
    async def _grant(user: User, client: Client, level: AccessLevel = AccessLevel.read) -> None:
        await AccessGrantStore(db).grant(user.id, client.id, level)
        await db.commit()

    return _grant


@pytest.fixture
def revoke(db):
    async def _revoke(user: User, client: Client) -> None:
        await AccessGrantStore(db).revoke(user.id, client.id)
        await db.commit()

    return _revoke


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the per-test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    original_factory = app.state.session_factory
    app.state.session_factory = session_factory
    original_store = app.state.selection_store
    app.state.selection_store = SelectionStore(max_age=3600)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.session_factory = original_factory
    app.state.selection_store = original_store


@pytest.fixture
def login(client):
    async def _login(user: User, password: str = PASSWORD):
        response = await client.post(
            "/login", data={"email": user.email, "password": password}
        )
        assert response.status_code == 303, response.text
        return response

    return _login


@pytest.fixture
def fresh(session_factory):
    """Run a callable against a brand-new session (bypasses identity-map caching)."""

    async def _fresh(fn):
        async with session_factory() as session:
            return await fn(session)

    return _fresh
