"""Pytest configuration and fixtures for engine, service and API tests."""
import itertools
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

import config
from arena.models import Base, User
from arena.models.base import async_session_factory, engine
from web.api.main import app

_emails = itertools.count(1)


@pytest.fixture
async def _reset_db():
    """Fresh tables for every test (ASGI lifespan doesn't run with httpx)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def session(_reset_db):
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client(_reset_db):
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def token_for(user: User) -> str:
    """Mint a token the way the auth service does."""
    return jwt.encode({"sub": str(user.id), "role": user.role}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def make_user(_reset_db):
    """Factory: await make_user("Alice", coins=100) -> committed User."""

    async def _make(name: str = "Player", coins: int = 100, role: str = "player", status: str = "active") -> User:
        async with async_session_factory() as s:
            user = User(
                name=name,
                email=f"user{next(_emails)}@example.com",
                role=role,
                status=status,
                coins=coins,
            )
            s.add(user)
            await s.commit()
            await s.refresh(user)
            return user

    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user("Admin", coins=0, role="admin")


@pytest.fixture
def auth_headers(admin):
    """Authorization headers for an admin user."""
    return headers_for(admin)
