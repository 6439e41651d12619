"""Async test fixtures for DealDesk tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dealdesk.config import settings
from dealdesk.database import get_db
from dealdesk.models.base import Base
from dealdesk.models.enums import Role
from dealdesk.models.user import User
from dealdesk.security.policy import Actor
from dealdesk.security.session import issue_session_token


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def auth_secret(monkeypatch):
    monkeypatch.setattr(settings, "auth_secret", "test-secret")
    return "test-secret"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


async def _make_user(db: AsyncSession, role: Role, name: str, email: str) -> User:
    user = User(name=name, email=email, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db: AsyncSession) -> User:
    return await _make_user(db, Role.ADMIN, "Ada Admin", "admin@example.com")


@pytest_asyncio.fixture
async def manager(db: AsyncSession) -> User:
    return await _make_user(db, Role.MANAGER, "Max Manager", "manager@example.com")


@pytest_asyncio.fixture
async def rep(db: AsyncSession) -> User:
    return await _make_user(db, Role.REP, "Rita Rep", "rep@example.com")


@pytest_asyncio.fixture
async def other_rep(db: AsyncSession) -> User:
    return await _make_user(db, Role.REP, "Omar Rep", "rep2@example.com")


@pytest_asyncio.fixture
async def viewer(db: AsyncSession) -> User:
    return await _make_user(db, Role.READ_ONLY, "Vic Viewer", "viewer@example.com")


@pytest.fixture
def as_actor():
    """Build the explicit ``Actor`` a service call runs as."""

    def _as_actor(user: User) -> Actor:
        return Actor(id=user.id, role=user.role)

    return _as_actor


@pytest.fixture
def auth():
    """Authorization headers carrying a session token for ``user``."""

    def _auth(user: User) -> dict[str, str]:
        token = issue_session_token(settings, user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _auth


@pytest_asyncio.fixture
async def client(engine):
    """HTTPX async test client against the DealDesk app."""
    from dealdesk.app import app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
