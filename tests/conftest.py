import os
import re
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from uuid import uuid4

# Settings are read at import time; configure them before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-password")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.core.exceptions import NotificationFailedException
from app.core.redis_client import CacheManager
from app.core.security import create_access_token, get_password_hash
from app.database import get_db
from app.dependencies import get_blob_store, get_cache_manager, get_clock, get_notifier
from app.main import app
from app.models import doctors, metadata, users

TEST_PASSWORD = "correct-horse-battery"

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeNotifier:
    """Records outgoing messages instead of sending them."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to_email: str, subject: str, html_content: str) -> None:
        if self.fail:
            raise NotificationFailedException() from ConnectionRefusedError("smtp down")
        self.sent.append({"to": to_email, "subject": subject, "body": html_content})

    def last_code(self, to_email: str) -> str:
        """Six-digit code from the latest message sent to an address."""
        for message in reversed(self.sent):
            if message["to"] == to_email:
                return re.search(r"\b(\d{6})\b", message["body"]).group(1)
        raise AssertionError(f"no message sent to {to_email}")


class FakeBlobStore:
    """Keeps uploads in memory and returns predictable URLs."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}

    async def store(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        name = f"{folder}/{filename}"
        self.objects[name] = data
        return f"https://storage.test/{name}"


class FakeRedis:
    """Dictionary standing in for the Redis commands CacheManager uses."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def set(self, key, value):
        self.values[key] = value

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl

    def exists(self, key):
        return int(key in self.values)


class MutableClock:
    """Clock that tests can move forward."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache_manager(fake_redis) -> CacheManager:
    return CacheManager(fake_redis)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a session on a fresh in-memory database."""
    # StaticPool keeps the single connection the in-memory database lives in
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, notifier, blob_store, cache_manager, clock
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with external collaborators replaced."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_cache_manager] = lambda: cache_manager
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def create_account(db: AsyncSession, table, verified: bool = True, **values) -> dict:
    """Insert an account row directly and return its values."""
    account = {
        "id": uuid4(),
        "email": f"{uuid4().hex[:8]}@example.com",
        "password_hash": get_password_hash(TEST_PASSWORD),
        "is_verified": verified,
        "name": "Test Account",
        **values,
    }
    await db.execute(insert(table).values(**account))
    await db.commit()
    return account


def bearer(settings, subject, kind: str, **kwargs) -> dict:
    """Authorization header for a subject of the given kind."""
    token = create_access_token(
        data={"sub": str(subject), "kind": kind}, settings=settings, **kwargs
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> dict:
    """Verified user account."""
    return await create_account(db_session, users, name="Pat Patient", email="pat@example.com")


@pytest_asyncio.fixture
async def test_doctor(db_session: AsyncSession) -> dict:
    """Verified, available doctor account."""
    return await create_account(
        db_session,
        doctors,
        name="Dr. Dana",
        email="dana@example.com",
        speciality="General physician",
        available=True,
    )


@pytest.fixture
def user_headers(settings, test_user) -> dict:
    return bearer(settings, test_user["id"], "user")


@pytest.fixture
def doctor_headers(settings, test_doctor) -> dict:
    return bearer(settings, test_doctor["id"], "doctor")
