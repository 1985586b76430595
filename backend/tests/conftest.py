"""
MELONOTES Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── relational_storage: RelationalStorage on a fresh SQLite file
    ├── document_storage:   DocumentStorage over an InMemoryKeyspace
    ├── storage:            parametrized over both backends
    ├── seeded_storage:     `storage` after the startup seeder ran
    ├── client:             HTTPX AsyncClient talking to an app on seeded_storage
    └── auth_headers:       Authorization header from a real login

httpx's ASGITransport does not run the lifespan, so the fixtures initialize
and seed storage themselves.
"""

import os
import tempfile

# Override settings for testing BEFORE any melonotes import reads them
os.environ["STORAGE_BACKEND"] = "relational"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="melonotes_test_")
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from melonotes.config import settings  # noqa: E402
from melonotes.seed import seed  # noqa: E402
from melonotes.storage.base import StorageAdapter  # noqa: E402
from melonotes.storage.document import DocumentStorage  # noqa: E402
from melonotes.storage.relational import RelationalStorage  # noqa: E402

from tests.fakes import InMemoryKeyspace  # noqa: E402

SEED_USERNAME = "frieren"
SEED_PASSWORD = "MeldaErkan!5352"


def _relational(tmp_path) -> RelationalStorage:
    return RelationalStorage(database_url=f"sqlite+aiosqlite:///{tmp_path / 'melonotes.db'}")


# ══════════════════════════════════════════════════════════════════════════
# Storage Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def relational_storage(tmp_path) -> AsyncGenerator[RelationalStorage, None]:
    storage = _relational(tmp_path)
    await storage.init()
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def document_storage() -> AsyncGenerator[DocumentStorage, None]:
    storage = DocumentStorage(InMemoryKeyspace())
    await storage.init()
    yield storage
    await storage.close()


@pytest_asyncio.fixture(params=["relational", "document"])
async def storage(request, tmp_path) -> AsyncGenerator[StorageAdapter, None]:
    """
    Each test using this fixture runs once per backend; the shared
    repository and API suites are the contract both backends must meet.
    """
    if request.param == "relational":
        adapter: StorageAdapter = _relational(tmp_path)
    else:
        adapter = DocumentStorage(InMemoryKeyspace())
    await adapter.init()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def seeded_storage(storage) -> StorageAdapter:
    await seed(storage, settings)
    return storage


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(seeded_storage) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight into a fresh app.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from melonotes.main import create_app

    app = create_app(storage=seeded_storage)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture
async def auth_headers(client) -> dict:
    response = await client.post(
        "/api/auth/login", json={"username": SEED_USERNAME, "password": SEED_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def sample_image_bytes():
    """PNG signature followed by filler; uploads are checked by extension and size only."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
