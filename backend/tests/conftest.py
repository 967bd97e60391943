"""
Pytest fixtures for test database, client, and authentication.

Tests run against a SQLite file database (aiosqlite) so that concurrent
sessions really are separate connections. Tables are created and dropped
per test for isolation.
"""

import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./planorama_test.db")

# Settings are read once at import time
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from planorama.main import app
from planorama.db.base import Base
from planorama.db.session import get_db
from planorama.core.security import create_access_token, hash_password
from planorama.models import Event, InvitationToken, OrganizerSettings, User

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Factory for extra, independent sessions (one connection each)."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, role: str = "admin") -> User:
    user = User(email=email, hashed_password=hash_password("testpassword123"), role=role)
    db.add(user)
    await db.flush()
    db.add(OrganizerSettings(user_id=user.id))
    await db.commit()
    await db.refresh(user)
    return user


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """An organizer (admin) account."""
    return await _make_user(db_session, "organizer@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second organizer who owns nothing of test_user's."""
    return await _make_user(db_session, "other@example.com")


@pytest_asyncio.fixture
async def plain_user(db_session: AsyncSession) -> User:
    """A non-admin account."""
    return await _make_user(db_session, "guest@example.com", role="user")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return _headers(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest_asyncio.fixture
async def plain_headers(plain_user: User) -> dict:
    return _headers(plain_user)


async def make_event(db: AsyncSession, organizer: User, capacity: int = 100, **overrides) -> Event:
    fields = dict(
        title="Summer Party",
        description="Drinks on the roof",
        date=datetime.now(timezone.utc) + timedelta(days=30),
        location="Rooftop",
        category="party",
        capacity=capacity,
        host_name="Alex Host",
        host_mobile="5550100",
        host_email="host@example.com",
        organizer_id=organizer.id,
        attendee_count=0,
    )
    fields.update(overrides)
    event = Event(**fields)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


async def make_token(db: AsyncSession, event: Event, email: str, name: str = None, user_id: int = None) -> InvitationToken:
    token = InvitationToken(
        event_id=event.id,
        email=email,
        name=name,
        token=os.urandom(32).hex(),
        user_id=user_id,
    )
    db.add(token)
    await db.commit()
    await db.refresh(token)
    return token


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, test_user: User) -> Event:
    """An event with 100 spots."""
    return await make_event(db_session, test_user)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, test_user: User) -> Event:
    """An event with 10 spots."""
    return await make_event(db_session, test_user, capacity=10, title="Dinner Club")


@pytest_asyncio.fixture
async def guest_token(db_session: AsyncSession, small_event: Event) -> InvitationToken:
    return await make_token(db_session, small_event, "ann@example.com", name="Ann")
