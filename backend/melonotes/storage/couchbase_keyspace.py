"""
MELONOTES Backend — Couchbase Keyspace
========================================

What:  Keyspace implementation backed by a Couchbase bucket's default collection.
How:   Uses the async Couchbase SDK (acouchbase). Key-value operations go to
       the collection; filtered retrieval goes through parameterised N1QL
       built by storage/n1ql.py with REQUEST_PLUS consistency, so a query
       issued right after a write sees that write.
Who:   Built by storage/factory.py for STORAGE_BACKEND=document.
When:  connect() runs in the application lifespan (retried by tenacity).

Counters:
    increment() uses the binary counter API (initial=1, delta=1), which the
    server applies atomically. Two concurrent creates can never receive the
    same id.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from acouchbase.cluster import Cluster
from couchbase.auth import PasswordAuthenticator
from couchbase.exceptions import CouchbaseException, DocumentNotFoundException
from couchbase.n1ql import QueryScanConsistency
from couchbase.options import (
    ClusterOptions,
    DeltaValue,
    IncrementOptions,
    QueryOptions,
    SignedInt64,
)

from melonotes.config import Settings, settings as default_settings
from melonotes.exceptions import StorageError
from melonotes.storage import n1ql
from melonotes.storage.base import ARRAY_FIELDS, Query
from melonotes.storage.document import Document, Keyspace

logger = logging.getLogger(__name__)


class CouchbaseKeyspace(Keyspace):
    """Couchbase bucket (default scope and collection) as a Keyspace."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._bucket_name = n1ql.bucket_name(self._settings.couchbase_bucket)
        self._cluster: Optional[Cluster] = None
        self._collection = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        cfg = self._settings
        logger.info(
            "Connecting to Couchbase at %s (bucket=%s)",
            cfg.couchbase_connection_string,
            self._bucket_name,
        )
        options = ClusterOptions(
            PasswordAuthenticator(cfg.couchbase_username, cfg.couchbase_password)
        )
        if cfg.couchbase_wan_profile:
            options.apply_profile("wan_development")

        try:
            self._cluster = await Cluster.connect(cfg.couchbase_connection_string, options)
            bucket = self._cluster.bucket(self._bucket_name)
            await bucket.on_connect()
            self._collection = bucket.default_collection()
        except CouchbaseException as e:
            self._cluster = None
            raise StorageError(
                context={"operation": "connect", "error": str(e)}
            ) from e

        if cfg.couchbase_create_indexes:
            await self._create_indexes()
        logger.info("Couchbase keyspace ready")

    async def close(self) -> None:
        if self._cluster is not None:
            await self._cluster.close()
            self._cluster = None
            self._collection = None

    async def _create_indexes(self) -> None:
        for statement in n1ql.index_statements(self._bucket_name):
            await self._run(statement, {})

    # ── Helpers ───────────────────────────────────────────────────────────

    def _require_connection(self):
        if self._cluster is None or self._collection is None:
            raise StorageError(context={"error": "Couchbase keyspace is not connected"})
        return self._cluster, self._collection

    async def _run(self, statement: str, params: Dict[str, Any]) -> List[Any]:
        cluster, _ = self._require_connection()
        options = QueryOptions(
            named_parameters=params,
            scan_consistency=QueryScanConsistency.REQUEST_PLUS,
            timeout=timedelta(seconds=75),
        )
        try:
            result = cluster.query(statement, options)
            return [row async for row in result.rows()]
        except CouchbaseException as e:
            logger.error("N1QL failed: %s | %s", statement, e)
            raise StorageError(
                context={"operation": "query", "statement": statement, "error": str(e)}
            ) from e

    # ── Keyspace ──────────────────────────────────────────────────────────

    async def ping(self) -> None:
        await self._run("SELECT RAW 1", {})

    async def get(self, key: str) -> Optional[Document]:
        _, collection = self._require_connection()
        try:
            result = await collection.get(key)
        except DocumentNotFoundException:
            return None
        except CouchbaseException as e:
            raise StorageError(context={"operation": "get", "key": key, "error": str(e)}) from e
        return result.content_as[dict]

    async def upsert(self, key: str, document: Document) -> None:
        _, collection = self._require_connection()
        try:
            await collection.upsert(key, document)
        except CouchbaseException as e:
            raise StorageError(
                context={"operation": "upsert", "key": key, "error": str(e)}
            ) from e

    async def remove(self, key: str) -> bool:
        _, collection = self._require_connection()
        try:
            await collection.remove(key)
        except DocumentNotFoundException:
            return False
        except CouchbaseException as e:
            raise StorageError(
                context={"operation": "remove", "key": key, "error": str(e)}
            ) from e
        return True

    async def select(self, kind: str, query: Query) -> List[Document]:
        statement, params = n1ql.build_select(
            self._bucket_name, kind, query, ARRAY_FIELDS.get(kind, frozenset())
        )
        return await self._run(statement, params)

    async def count(self, kind: str, query: Query) -> int:
        statement, params = n1ql.build_count(
            self._bucket_name, kind, query, ARRAY_FIELDS.get(kind, frozenset())
        )
        rows = await self._run(statement, params)
        return int(rows[0]) if rows else 0

    async def increment(self, key: str) -> int:
        _, collection = self._require_connection()
        try:
            result = await collection.binary().increment(
                key, IncrementOptions(initial=SignedInt64(1), delta=DeltaValue(1))
            )
        except CouchbaseException as e:
            raise StorageError(
                context={"operation": "increment", "key": key, "error": str(e)}
            ) from e
        return int(result.content)
