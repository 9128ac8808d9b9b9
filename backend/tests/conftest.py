"""Test configuration and fixtures for the document archive."""

import os

# Must be set before any docarchive module reads the settings.
os.environ["DATABASE_URI"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "local"
os.environ["JWT_SECRET_KEY"] = "test_secret_key_for_tests"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["GOOGLE_DRIVE_FOLDER_ID"] = "root-folder"

from typing import Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from docarchive.infrastructure.logging import configure_testing_logging, mark_logging_configured  # noqa: E402

configure_testing_logging()
mark_logging_configured()

from docarchive.infrastructure.cache import get_cache  # noqa: E402
from docarchive.infrastructure.database.session import Base, async_session  # noqa: E402
from docarchive.interfaces.api.dependencies import get_analysis, get_registry, get_storage  # noqa: E402
from docarchive.interfaces.main import app  # noqa: E402
from docarchive.modules import models  # noqa: E402, F401
from docarchive.modules.pipeline import PipelineRegistry  # noqa: E402
from docarchive.modules.user.seed import seed_default_users  # noqa: E402
from helpers import (  # noqa: E402
    ADMIN_CREDENTIALS,
    PNG_BYTES,
    USER_CREDENTIALS,
    FakeAnalysis,
    FakeStorage,
    letter_extraction,
    login,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty read cache."""
    get_cache().clear()
    yield
    get_cache().clear()


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """Create a fresh in-memory database for one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_db_engine):
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_storage() -> FakeStorage:
    storage = FakeStorage()
    storage.add("folder-1", "Letters", "application/vnd.google-apps.folder")
    storage.add("file-letter", "letter.jpg", "image/jpeg", PNG_BYTES)
    storage.add("file-photo", "photo.png", "image/png", PNG_BYTES)
    storage.add("file-report", "report.pdf", "application/pdf", b"%PDF-1.4")
    storage.add("file-nested", "nested.png", "image/png", PNG_BYTES, parent="folder-1")
    return storage


@pytest.fixture
def fake_analysis() -> FakeAnalysis:
    return FakeAnalysis(letter_extraction())


@pytest.fixture
def pipeline_registry() -> PipelineRegistry:
    return PipelineRegistry(ttl_seconds=3600)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, fake_storage, fake_analysis, pipeline_registry):
    """Test client with its own database, the default accounts and fake external services."""
    app.dependency_overrides = {}

    async def override_get_db():
        """Each request gets its own database session."""
        async with session_factory() as session:
            yield session

    app.dependency_overrides[async_session] = override_get_db
    app.dependency_overrides[get_storage] = lambda: fake_storage
    app.dependency_overrides[get_analysis] = lambda: fake_analysis
    app.dependency_overrides[get_registry] = lambda: pipeline_registry

    async with session_factory() as session:
        await seed_default_users(session)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


@pytest_asyncio.fixture
async def user_token(client: AsyncClient) -> str:
    return await login(client, USER_CREDENTIALS)


@pytest_asyncio.fixture
async def admin_token(client: AsyncClient) -> str:
    return await login(client, ADMIN_CREDENTIALS)


@pytest.fixture
def auth_headers(user_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}
