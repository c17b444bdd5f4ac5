"""Pytest fixtures for the identity service."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from identity_service.core.config import Settings, SigningSecrets
from identity_service.db.models import Account
from identity_service.db.session import close_db, create_engine, create_session_factory, init_db
from identity_service.main import create_app
from identity_service.services.identity import IdentityService, PasswordHasher

ACCESS_SECRET = "test-access-secret-0123456789abcdef01234567"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef0123456"
TEST_BCRYPT_ROUNDS = 4


class FakeClock:
    """Settable clock; advance it to expire tokens without sleeping."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingDelivery:
    """TokenDelivery that keeps what it was asked to send."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[tuple[str, UUID, str]] = []

    async def send_password_reset(self, account: Account, token: str) -> bool:
        self.sent.append(("password_reset", account.id, token))
        return self.succeed

    async def send_verification(self, account: Account, token: str) -> bool:
        self.sent.append(("verification", account.id, token))
        return self.succeed


class _BrokenSession:
    async def __aenter__(self) -> AsyncSession:
        raise OperationalError(
            "SELECT accounts.id FROM accounts",
            {},
            Exception("could not connect to server at db-internal.example:5432"),
        )

    async def __aexit__(self, *exc_info) -> bool:
        return False


def _broken_session_factory() -> _BrokenSession:
    return _BrokenSession()


@pytest.fixture
def broken_session_factory():
    """Session factory whose sessions fail as if the database were down."""
    return _broken_session_factory


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a fresh file-backed SQLite database."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'identity-test.db'}",
        ACCESS_TOKEN_SECRET=ACCESS_SECRET,
        REFRESH_TOKEN_SECRET=REFRESH_SECRET,
        BCRYPT_ROUNDS=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def secrets() -> SigningSecrets:
    return SigningSecrets(access_key=ACCESS_SECRET, refresh_key=REFRESH_SECRET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    """Async engine with the schema created."""
    engine = create_engine(settings)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def service(session_maker, secrets, delivery, clock, hasher) -> IdentityService:
    return IdentityService(session_maker, secrets, delivery, clock=clock, hasher=hasher)


@pytest_asyncio.fixture
async def app(settings: Settings, delivery: RecordingDelivery) -> AsyncIterator[FastAPI]:
    """The FastAPI app with its schema created (ASGITransport skips lifespan)."""
    application = create_app(settings, delivery=delivery)
    await init_db(application.state.engine)
    yield application
    await close_db(application.state.engine)


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
