"""Pytest configuration and fixtures.

Database Handling:
- Uses TEST_DATABASE_URL when set (e.g. a PostgreSQL test database)
- Otherwise a fresh SQLite file per test through aiosqlite
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Set test environment variables before importing app modules
_TMP_DIR = tempfile.mkdtemp(prefix="registration-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/import.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["DB_AUTO_CREATE"] = "false"

TEST_JWT_SECRET = os.environ["JWT_SECRET_KEY"]
TEST_PASSWORD = "correct-horse-battery"

from registration.core.config import Settings  # noqa: E402
from registration.core.database import Base, build_session_maker  # noqa: E402
from registration.models import Account  # noqa: E402
from registration.services import (  # noqa: E402
    AccountStore,
    AuthenticationEngine,
    LockoutPolicy,
    RevocationRegistry,
    SecurityAuditService,
    TokenCodec,
)
from registration.services.auth import hash_password  # noqa: E402
from registration.services.mappers import RegistrationInput  # noqa: E402

# Hashing is deliberately slow; hash the shared test password once
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FakeClock:
    """Controllable wall clock shared by the codec, registry and policy."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

    def time(self) -> float:
        return self.current.timestamp()

    def utcnow(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def registration_input(**overrides) -> RegistrationInput:
    values = {
        "email": "ada@example.com",
        "password": TEST_PASSWORD,
        "username": "ada",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "phone": None,
        "terms_accepted": True,
        "privacy_accepted": True,
    }
    values.update(overrides)
    return RegistrationInput(**values)


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret_key": TEST_JWT_SECRET,
        "db_auto_create": False,
        "rate_limit_auth_requests_per_minute": 10000,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a database engine with all tables for one test."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest.fixture
def store(session_maker) -> AccountStore:
    return AccountStore(session_maker)


# --- Core Components ---


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(TEST_JWT_SECRET, validity_seconds=3600, clock=clock.time)


@pytest.fixture
def registry(codec: TokenCodec, clock: FakeClock) -> RevocationRegistry:
    return RevocationRegistry(codec, clock=clock.time)


@pytest.fixture
def policy(store: AccountStore, clock: FakeClock) -> LockoutPolicy:
    return LockoutPolicy(
        store,
        max_failed_attempts=5,
        lock_duration=timedelta(hours=24),
        clock=clock.utcnow,
    )


@pytest.fixture
def auth_engine(store, codec, registry, policy) -> AuthenticationEngine:
    return AuthenticationEngine(store, codec, registry, policy, SecurityAuditService())


@pytest.fixture
def account_factory(store: AccountStore):
    """Insert accounts directly, skipping registration and its hashing."""

    async def _create(**overrides) -> Account:
        values = {
            "email": "grace@example.com",
            "username": "grace",
            "password_hash": TEST_PASSWORD_HASH,
            "first_name": "Grace",
            "last_name": "Hopper",
            "email_verified": False,
            "account_enabled": True,
            "account_locked": False,
            "failed_login_attempts": 0,
        }
        values.update(overrides)
        return await store.add(Account(**values))

    return _create


# --- HTTP Client ---


@pytest.fixture
def app(db_engine: AsyncEngine):
    from registration.main import create_app

    return create_app(config=make_settings(), db_engine=db_engine)


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client bound to the per-test database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
