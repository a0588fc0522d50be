"""Test configuration and fixtures.

Each test gets a fresh in-memory SQLite database:
1. The schema is created on a private engine per test
2. Endpoints share the test's session through the get_db_session override
3. Authenticated clients carry real access tokens, so guards run unmodified
"""

from collections.abc import AsyncGenerator
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables before settings are instantiated
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from prometheus_client import REGISTRY  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.config.settings import settings  # noqa: E402
from src.database.base import Base, utcnow  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.auth.jwt_utils import create_access_token  # noqa: E402
from src.features.user.models import User, UserRole  # noqa: E402
from src.main import app  # noqa: E402
from src.shared.email.email_service import get_email_service  # noqa: E402

TEST_PASSWORD = "TestPass123"
WEBHOOK_SECRET = "test-webhook-secret"


# Database Setup - Function Scope (fresh database per test)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine; StaticPool keeps the single connection (and its data) alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Database session shared by the test body and the endpoints it calls."""
    async_session = AsyncSession(bind=db_engine, expire_on_commit=False)
    try:
        yield async_session
    finally:
        await async_session.close()


# Mock Database Initialization


@pytest.fixture(autouse=True)
def mock_db_initialization(monkeypatch):
    """Mock init_db and close_db so lifespan doesn't interfere with tests."""
    import src.main as main_module

    async def mock_init_db():
        pass

    async def mock_close_db():
        pass

    monkeypatch.setattr(main_module, "init_db", mock_init_db)
    monkeypatch.setattr(main_module, "close_db", mock_close_db)


# FastAPI Client & Dependency Overrides


class FakeEmailService:
    """Records outgoing emails instead of talking to an SMTP server."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: list[tuple[str, str, str]] = []

    async def send_email_verification(self, to_email: str, verify_url: str) -> bool:
        self.sent.append(("verify", to_email, verify_url))
        return self.deliver

    async def send_password_reset(self, to_email: str, reset_url: str) -> bool:
        self.sent.append(("reset", to_email, reset_url))
        return self.deliver


@pytest.fixture
def email_outbox() -> FakeEmailService:
    return FakeEmailService()


@pytest_asyncio.fixture(autouse=True)
async def override_dependencies(session: AsyncSession, email_outbox: FakeEmailService):
    """Route endpoints to the test session and the fake email outbox."""

    async def _get_test_session():
        yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    app.dependency_overrides[get_email_service] = lambda: email_outbox
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an unauthenticated async HTTP test client.

    Cookies set by responses (access/refresh tokens) are kept in the client's jar.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test User Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create test users.

    Usage:
        user = await make_user()                                   # verified owner
        collaborator = await make_user(role=UserRole.COLLABORATOR)
        pending = await make_user(verified=False)
    """
    counter = 0

    async def _factory(
        email=None,
        name="Test User",
        password=TEST_PASSWORD,
        role=UserRole.OWNER,
        verified=True,
    ) -> User:
        nonlocal counter
        counter += 1

        user = User(
            email=email or f"testuser{counter}@example.com",
            name=name,
            password_hash=User.hash_password(password),
            role=role,
            email_verified_at=utcnow() if verified else None,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    yield _factory


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest_asyncio.fixture
async def owner_client(client: AsyncClient, make_user):
    """Client authenticated as an owner through a real access token.

    Returns:
        tuple: (client, user)

    """
    user = await make_user()
    client.headers.update(bearer(user))
    yield client, user


@pytest_asyncio.fixture
async def collaborator_client(client: AsyncClient, make_user):
    """Client authenticated as a collaborator.

    Returns:
        tuple: (client, user)

    """
    user = await make_user(role=UserRole.COLLABORATOR)
    client.headers.update(bearer(user))
    yield client, user


# Service (automation) access


@pytest_asyncio.fixture
async def service_user(make_user, monkeypatch) -> User:
    """Configure the webhook secret and a designated service user."""
    user = await make_user(email="automation@example.com", role=UserRole.AUTOMATION)
    monkeypatch.setattr(settings, "webhook_secret", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "service_user_id", str(user.id))
    monkeypatch.setattr(settings, "service_user_email", None)
    return user


@pytest.fixture
def service_headers() -> dict[str, str]:
    return {"x-cronostudio-webhook-secret": WEBHOOK_SECRET}


# Metrics


@pytest.fixture
def metric_count():
    """Current value of ``cronostudio_events_total`` for an event (0.0 if never emitted)."""

    def _count(event: str, reason: str = "") -> float:
        value = REGISTRY.get_sample_value("cronostudio_events_total", {"event": event, "reason": reason})
        return value or 0.0

    return _count


@pytest.fixture
def auth_headers():
    """``auth_headers(user)`` builds an Authorization header with a fresh access token."""
    return bearer
