"""
MELONOTES Backend — Storage Factory Tests
===========================================

What:  Backend selection and the startup retry around storage.init().
How:   Settings built per test; init() replaced with an AsyncMock so the
       retry loop can be driven through failures without a real outage.
"""

from unittest.mock import AsyncMock

import pytest

from melonotes.config import Settings
from melonotes.exceptions import StorageError
from melonotes.storage.document import DocumentStorage
from melonotes.storage.factory import connect_storage, create_storage
from melonotes.storage.relational import RelationalStorage

from tests.fakes import InMemoryKeyspace


def _settings(**overrides) -> Settings:
    values = {
        "storage_connect_attempts": 3,
        "storage_connect_min_wait": 0,
        "storage_connect_max_wait": 0,
        "database_url": "sqlite+aiosqlite:///:memory:",
    }
    values.update(overrides)
    return Settings(**values)


class TestCreateStorage:

    def test_relational_by_default(self):
        storage = create_storage(_settings(storage_backend="relational"))
        assert isinstance(storage, RelationalStorage)
        assert storage.backend == "relational"

    def test_document_backend(self):
        storage = create_storage(_settings(storage_backend="document", couchbase_bucket="notes"))
        assert isinstance(storage, DocumentStorage)
        assert storage.backend == "document"
        assert storage.case_sensitive_search is True


class TestConnectStorage:

    async def test_retries_until_init_succeeds(self):
        storage = DocumentStorage(InMemoryKeyspace())
        storage.init = AsyncMock(side_effect=[StorageError(), StorageError(), None])

        await connect_storage(storage, _settings())

        assert storage.init.await_count == 3

    async def test_gives_up_after_last_attempt(self):
        storage = DocumentStorage(InMemoryKeyspace())
        storage.init = AsyncMock(side_effect=StorageError(context={"error": "refused"}))

        with pytest.raises(StorageError):
            await connect_storage(storage, _settings(storage_connect_attempts=2))

        assert storage.init.await_count == 2

    async def test_other_errors_are_not_retried(self):
        storage = DocumentStorage(InMemoryKeyspace())
        storage.init = AsyncMock(side_effect=ValueError("bad config"))

        with pytest.raises(ValueError):
            await connect_storage(storage, _settings())

        assert storage.init.await_count == 1
