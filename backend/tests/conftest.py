"""
Feedline Backend - Test Configuration (conftest.py)
=====================================================

Shared pytest fixtures for the whole suite.

Fixtures:
    ├── temp_storage:    Temporary storage root (images bucket lives beneath it)
    ├── test_settings:   Settings pointing at SQLite and temp_storage
    ├── engine:          In-memory SQLite async engine, disposed after the test
    ├── make_app:        create_app() bound to the fixtures above
    ├── test_client:     HTTPX AsyncClient for the default app
    ├── auth_header:     Builds an Authorization header with a signed token
    └── sample_png_bytes / sample_jpeg_bytes: tiny image payloads
"""

import os
import tempfile

# Environment for the module-level app in feedline.main, set before any
# feedline import reads it.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="feedline_test_")
os.environ["JWT_SECRET"] = "test-secret-not-for-production-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from feedline.config import Settings
from feedline.main import create_app
from feedline.services.auth_service import create_access_token

TEST_SECRET = "test-secret-not-for-production-0123456789"
FIXED_TIMESTAMP = "2024-01-01T00:00:00.000Z"


def fixed_clock() -> str:
    return FIXED_TIMESTAMP


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def test_settings(temp_storage):
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        storage_root=temp_storage,
        jwt_secret=TEST_SECRET,
        log_level="WARNING",
        max_upload_size=64 * 1024,
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    yield engine
    await engine.dispose()


@pytest.fixture
def make_app(test_settings, engine):
    """
    Build an app wired to the test settings and engine.

    Usage:
        app = make_app(schema=my_schema, root_value=my_root)
    """

    def _make(**kwargs):
        kwargs.setdefault("engine", engine)
        kwargs.setdefault("clock", fixed_clock)
        return create_app(kwargs.pop("app_settings", test_settings), **kwargs)

    return _make


def client_for(app) -> AsyncClient:
    # raise_app_exceptions=False: the safety-net handler's response is what we assert on
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
def client_factory():
    """Wrap any app in an AsyncClient: `async with client_factory(app) as client:`."""
    return client_for


@pytest_asyncio.fixture
async def test_client(make_app):
    async with client_for(make_app()) as client:
        yield client


@pytest.fixture
def auth_header():
    def _header(user_id: str = "user-1", **claims) -> dict:
        token = create_access_token({"userId": user_id, **claims}, TEST_SECRET)
        return {"Authorization": f"Bearer {token}"}

    return _header


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an empty IHDR-sized tail; enough for storage tests."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


@pytest.fixture
def sample_jpeg_bytes():
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )
