"""Global test configuration and fixtures for FotoReel API."""

from collections.abc import AsyncGenerator
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.api.core.constants import JWT_ALGORITHM
from src.database.models import Base, UserProfile
from src.modules.payments.gateway import PaymentGatewayClient
from src.modules.video.vidu_client import ViduClient, ViduTask
from src.modules.video.vision import NSFWCheckResult, VisionService
from src.utils.settings.auth import AuthSettings
from tests.factories import UserProfileFactory


TEST_JWT_SECRET = "test-jwt-secret-key-for-testing-only"


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Settings are read per request, so env overrides apply everywhere."""
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("ENVIRONMENT", "DEV")
    monkeypatch.setenv("LEDGER_BACKEND", "sqlalchemy")
    monkeypatch.setenv("WEBHOOK_RATE_LIMIT_BACKEND", "memory")
    monkeypatch.delenv("MERCADOPAGO_WEBHOOK_SECRET", raising=False)


@pytest.fixture(autouse=True)
def reset_webhook_rate_limits():
    """Webhook counters live at module level and would leak between tests."""
    from src.api.core.dependencies import _memory_rate_limit_store

    _memory_rate_limit_store.reset()
    yield
    _memory_rate_limit_store.reset()


@pytest_asyncio.fixture
async def async_engine():
    """One in-memory SQLite database per test, shared by every session."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def service_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for the service under test, apart from the one seeding data.

    Services roll back on failure, which would expire the test's own objects.
    """
    async with session_factory() as session:
        yield session


# Test Data Fixtures
@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> UserProfile:
    return await UserProfileFactory.create_async(db_session, credits_balance=5)


@pytest_asyncio.fixture
async def broke_user(db_session: AsyncSession) -> UserProfile:
    return await UserProfileFactory.create_async(db_session, credits_balance=0)


# External service doubles
@pytest.fixture
def mock_vidu() -> MagicMock:
    vidu = MagicMock(spec=ViduClient)
    vidu.create_task = AsyncMock(
        return_value=ViduTask(
            task_id="vidu-task-1", state="created", raw={"task_id": "vidu-task-1"}
        )
    )
    return vidu


@pytest.fixture
def mock_vision() -> MagicMock:
    vision = MagicMock(spec=VisionService)
    vision.check_nsfw = AsyncMock(return_value=NSFWCheckResult(is_nsfw=False))
    vision.describe_image = AsyncMock(return_value="A dog on a beach")
    vision.refine_prompt = AsyncMock(
        side_effect=lambda prompt, description: f"Refined: {prompt}"
    )
    return vision


@pytest.fixture
def mock_gateway() -> MagicMock:
    gateway = MagicMock(spec=PaymentGatewayClient)
    gateway.get_payment_with_retry = AsyncMock()
    gateway.get_payment = AsyncMock()
    gateway.get_merchant_order = AsyncMock()
    gateway.search_payments_by_preference = AsyncMock(return_value=[])
    gateway.create_preference = AsyncMock(
        return_value={
            "id": "pref-123",
            "init_point": "https://mp.test/checkout/pref-123",
            "sandbox_init_point": "https://sandbox.mp.test/checkout/pref-123",
        }
    )
    return gateway


@pytest_asyncio.fixture
async def app(session_factory, mock_vidu, mock_vision, mock_gateway):
    """FastAPI app bound to the test database with external services faked."""
    from src.api.core.dependencies import get_gateway
    from src.main import app
    from src.modules.video.vidu_client import get_vidu_client
    from src.modules.video.vision import get_vision_service

    app.dependency_overrides[get_vidu_client] = lambda: mock_vidu
    app.dependency_overrides[get_vision_service] = lambda: mock_vision
    app.dependency_overrides[get_gateway] = lambda: mock_gateway

    async with LifespanManager(app):
        app.state.session_factory = session_factory
        yield app

    app.dependency_overrides.clear()


# JWT Token Fixtures
@pytest.fixture()
def jwt_token_factory() -> Callable[..., str]:
    """Factory for Supabase-style access tokens."""
    auth_settings = AuthSettings()

    def create_token(
        user_id: str, email: str | None = None, name: str = "Test User", **claims
    ) -> str:
        payload = {
            "sub": user_id,
            "email": email,
            "role": "authenticated",
            "aud": auth_settings.SUPABASE_JWT_AUDIENCE,
            "user_metadata": {"full_name": name},
            **claims,
        }
        return jwt.encode(
            payload, auth_settings.SUPABASE_JWT_SECRET, algorithm=JWT_ALGORITHM
        )

    return create_token


@pytest_asyncio.fixture
async def user_token(test_user: UserProfile, jwt_token_factory) -> str:
    return jwt_token_factory(str(test_user.id), test_user.email, test_user.full_name)


# HTTP Client Fixtures
@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test-fotoreel-api"
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authorized_client(
    app: FastAPI, user_token: str
) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-fotoreel-api",
        headers={"Authorization": f"Bearer {user_token}"},
    ) as ac:
        yield ac


@pytest.fixture
def client_factory(app: FastAPI, jwt_token_factory):
    """Authorized clients for users other than ``test_user``."""

    def create_client_for_user(user: UserProfile) -> AsyncClient:
        token = jwt_token_factory(str(user.id), user.email, user.full_name)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test-fotoreel-api",
            headers={"Authorization": f"Bearer {token}"},
        )

    return create_client_for_user
