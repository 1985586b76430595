"""
MELONOTES Backend — Storage Construction & Startup
====================================================

What:  Builds the configured StorageAdapter and brings it up with retries.
How:   create_storage() picks the backend from settings.storage_backend.
       connect_storage() calls init() under tenacity: exponential backoff
       with jitter, retrying only StorageError, logging every retry.
       When attempts are exhausted the last StorageError propagates and the
       application fails to start.
Who:   The application lifespan (main.py).
"""

import logging
from typing import Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from melonotes.config import Settings, settings as default_settings
from melonotes.exceptions import StorageError
from melonotes.storage.base import StorageAdapter

logger = logging.getLogger(__name__)


def create_storage(settings: Optional[Settings] = None) -> StorageAdapter:
    """Instantiate (but do not connect) the adapter named by STORAGE_BACKEND."""
    cfg = settings or default_settings

    if cfg.storage_backend == "document":
        # Imported here so the relational backend runs without the Couchbase SDK loaded
        from melonotes.storage.couchbase_keyspace import CouchbaseKeyspace
        from melonotes.storage.document import DocumentStorage

        return DocumentStorage(CouchbaseKeyspace(cfg))

    from melonotes.storage.relational import RelationalStorage

    return RelationalStorage(settings=cfg)


async def connect_storage(storage: StorageAdapter, settings: Optional[Settings] = None) -> None:
    """
    Run storage.init() with retries.

    Raises:
        StorageError: the store was still unreachable after the last attempt.
    """
    cfg = settings or default_settings

    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(StorageError),
        stop=stop_after_attempt(cfg.storage_connect_attempts),
        wait=wait_exponential_jitter(
            initial=cfg.storage_connect_min_wait,
            max=cfg.storage_connect_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            await storage.init()

    logger.info("Storage backend '%s' connected", storage.backend)
