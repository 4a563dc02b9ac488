"""
Shared test fixtures for the profile service tests.

Provides database session management, test clients, upload storage and
identity token fixtures.
"""

import os
import shutil
import tempfile
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path

# Settings are read at import time; point uploads and the test database at a
# scratch directory before the application is imported.
_SCRATCH_DIR = Path(tempfile.mkdtemp(prefix="profile-service-tests-"))
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_DIR", str(_SCRATCH_DIR / "uploads"))
os.environ.setdefault("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_SCRATCH_DIR / 'test.db'}")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from profile_api.auth.jwt import create_identity_token  # noqa: E402
from profile_api.config import settings  # noqa: E402
from profile_api.database import Base, get_db  # noqa: E402
from profile_api.main import app  # noqa: E402
from profile_api.middleware.rate_limit import reset_limiter  # noqa: E402

# Import models so they're registered with Base.metadata before table creation
from profile_api.models import User, UserProfile  # noqa: E402, F401
from profile_api.services.storage import UploadConfig, get_upload_config  # noqa: E402

TEST_DATABASE_URL = settings.test_database_url

# Create test engine with NullPool to avoid connection issues
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# --- Rate Limiter Reset Fixture ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset rate limiter before each test to ensure test isolation."""
    reset_limiter()
    yield


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create tables before each test function, drop after.
    Provides isolated database state per test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# --- Upload Fixtures ---


@pytest.fixture
def upload_config() -> Generator[UploadConfig, None, None]:
    """Upload config rooted at the directory served under /uploads."""
    config = UploadConfig(base_dir=Path(settings.upload_dir))
    yield config
    shutil.rmtree(config.target_dir, ignore_errors=True)


# --- Client Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession, upload_config: UploadConfig
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.
    Overrides the database and upload dependencies.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upload_config] = lambda: upload_config

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Identity Fixtures ---


@pytest.fixture
def identity() -> dict[str, str]:
    """The primary caller."""
    return {"uid": "uid-alice", "email": "alice@example.com"}


@pytest.fixture
def second_identity() -> dict[str, str]:
    """Another caller for uniqueness and isolation scenarios."""
    return {"uid": "uid-bob", "email": "bob@example.com"}


@pytest.fixture
def auth_headers() -> Callable[[dict[str, str]], dict[str, str]]:
    """Factory fixture for creating bearer Authorization headers."""

    def _auth_headers(who: dict[str, str]) -> dict[str, str]:
        token = create_identity_token(who["uid"], who.get("email"))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


# --- Utility Fixtures ---


@pytest.fixture
def count_rows(db_session: AsyncSession):
    """Count rows of a model directly in the test database."""

    async def _count_rows(model) -> int:
        result = await db_session.execute(select(func.count()).select_from(model))
        return result.scalar_one()

    return _count_rows
