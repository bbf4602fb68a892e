"""
Pytest fixtures for FeatureBoard backend tests.
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
_TEST_DB_DIR = tempfile.mkdtemp(prefix="featureboard-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_DIR}/test.db")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("APP_BASE_URL", "http://app.test")
os.environ.setdefault("OAUTH_CLIENT_ID", "test-client-id")
os.environ.setdefault("OAUTH_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("OAUTH_REDIRECT_URI", "http://test/api/v1/auth/callback")
os.environ.setdefault("INTERNAL_API_SECRET", "test-internal-secret")
os.environ.setdefault("ENABLE_SESSION_REAPER", "false")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
async def db_engine() -> AsyncGenerator[Any, None]:
    """Fresh schema on the test database for every test."""
    import models  # noqa: F401
    from db.base import Base
    from db.session import engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Pooled aiosqlite connections must not outlive the test's event loop
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[Any, None]:
    """A session on the test database."""
    from db.session import async_session_maker

    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def app(db_engine: Any) -> AsyncGenerator[Any, None]:
    """FastAPI application backed by the test database."""
    from main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with a fixed user agent (stable anonymous fingerprint)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"User-Agent": "featureboard-tests/1.0"},
    ) as ac:
        yield ac


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_recorder() -> MagicMock:
    """Security event recorder that only remembers calls."""
    recorder = MagicMock()
    recorder.record = AsyncMock(return_value=None)
    return recorder


@pytest.fixture
def sample_profile_data() -> dict[str, Any]:
    """Provider profile payload as returned inside ``{"data": ...}``."""
    return {
        "id": "2244994945",
        "username": "featurefan",
        "name": "Feature Fan",
        "profile_image_url": "https://pbs.twimg.com/profile_images/1/avatar_normal.jpg",
    }


@pytest.fixture
def mock_provider(sample_profile_data: dict[str, Any]) -> MagicMock:
    """Identity provider whose token and profile calls succeed."""
    from schemas.auth import ProviderProfile, ProviderTokens

    provider = MagicMock()
    provider.exchange_code = AsyncMock(
        return_value=ProviderTokens(access_token="provider-access-token", token_type="bearer")
    )
    provider.fetch_profile = AsyncMock(return_value=ProviderProfile(**sample_profile_data))
    return provider

