"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "development")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config import DEFAULT_IDLE_TERMINATION_NOTICE  # noqa: E402
from app.core.database import Base  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.core.settings import ChatConfig  # noqa: E402
from app.models.chat_message import ChatMessage  # noqa: E402, F401
from app.models.chat_session import ChatSession  # noqa: E402, F401
from app.models.chat_settings import ChatSettings  # noqa: E402, F401
from app.models.enums import Role  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.token_service import TokenService  # noqa: E402

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool
)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def override_get_session_factory() -> async_sessionmaker[AsyncSession]:
    return test_session_factory


# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the global redis_client used by middleware and get_redis()."""
    monkeypatch.setattr("app.core.redis.redis_client", fake_redis)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """Rate limit counters are process-global; start each test clean."""
    limiter.reset()


# --- Time ---

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0, tzinfo=UTC)


# --- Chat policy ---

CHAT_CONFIG = ChatConfig(
    default_max_user_message_length=500,
    default_max_session_duration_minutes=60,
    admin_max_message_length=5000,
    history_limit=100,
    admin_sessions_limit=500,
    idle_termination_seconds=60,
    idle_sweep_batch_size=20,
    idle_sweep_interval_seconds=30,
    idle_termination_notice=DEFAULT_IDLE_TERMINATION_NOTICE,
)


class FrozenClock:
    """Manually advanced clock for deterministic expiry and idle tests."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# --- Data helpers ---


async def insert_user(
    session: AsyncSession,
    email: str,
    role: Role = Role.USER,
    username: str | None = None,
    last_seen: datetime | None = None,
    is_online: bool = False,
) -> User:
    """Insert and commit a user row."""
    user = User(
        email=email,
        username=username or email.split("@")[0],
        hashed_password="hashed",
        role=role,
        is_online=is_online,
    )
    if last_seen is not None:
        user.last_seen = last_seen
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


# --- Token helpers ---


@pytest.fixture
def token_service(fake_redis: fakeredis.aioredis.FakeRedis) -> TokenService:
    """Create a TokenService backed by fake Redis."""
    return TokenService(fake_redis)


def make_auth_headers(
    fake_redis: fakeredis.aioredis.FakeRedis,
    user_id: int = 1,
    email: str = "test@test.com",
    role: Role = Role.USER,
) -> dict[str, str]:
    """Generate Authorization headers with a valid access token."""
    ts = TokenService(fake_redis)
    token = ts.create_access_token(user_id=user_id, email=email, role=role)
    return {"Authorization": f"Bearer {token}"}


def headers_for(fake_redis: fakeredis.aioredis.FakeRedis, user: User) -> dict[str, str]:
    return make_auth_headers(fake_redis, user.id, user.email, user.role)


# --- App override & client fixtures ---


def _get_app():  # type: ignore[no-untyped-def]
    """Import app lazily and apply overrides."""
    from app.core.database import get_async_session, get_session_factory
    from app.main import app

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_session_factory] = override_get_session_factory
    app.state.presence_tracker.reset()
    return app


@pytest.fixture
async def async_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for async tests."""
    application = _get_app()
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def app_clock(clock: FrozenClock):  # type: ignore[no-untyped-def]
    """Route the application's clock dependency to the frozen test clock."""
    from app.dependencies import get_clock

    application = _get_app()
    application.dependency_overrides[get_clock] = lambda: clock
    yield clock
    application.dependency_overrides.pop(get_clock, None)


# --- DB session for tests ---


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a raw async session for repository and service tests."""
    async with test_session_factory() as session:
        yield session
