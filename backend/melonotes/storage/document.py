"""
MELONOTES Backend — Document Storage Adapter
==============================================

What:  StorageAdapter over a flat document keyspace (Couchbase in production).
How:   Every record is one JSON document stored under the key `<kind>::<id>`
       with a `type` field naming its kind. Ids come from an atomic counter
       document per kind (`counter::<kind>`), incremented by the store itself.
       Note tags are an embedded array of tag ids on the note document.
       Datetimes are ISO-8601 strings in the store and `datetime` to callers.
Who:   Built by storage/factory.py when STORAGE_BACKEND=document.

Keyspace:
    DocumentStorage does not talk to Couchbase directly. It drives a
    `Keyspace` (get / upsert / remove / select / count / increment), which
    CouchbaseKeyspace implements with the Couchbase SDK and N1QL. Tests
    drive it with an in-memory keyspace.

Search collation:
    N1QL CONTAINS() is case-sensitive, so case_sensitive_search is True.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from melonotes.storage.base import (
    DATETIME_FIELDS,
    KINDS,
    Query,
    Record,
    StorageAdapter,
)

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def document_key(kind: str, record_id: int) -> str:
    return f"{kind}::{record_id}"


def counter_key(kind: str) -> str:
    return f"counter::{kind}"


class Keyspace(ABC):
    """
    Minimal document-store surface DocumentStorage needs.

    Implementations raise StorageError for driver failures. A missing key is
    not a failure: get() returns None and remove() returns False.
    """

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def ping(self) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def upsert(self, key: str, document: Document) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> bool:
        ...

    @abstractmethod
    async def select(self, kind: str, query: Query) -> List[Document]:
        """Documents with `type == kind` matching `query`, in `query.order_by` order."""

    @abstractmethod
    async def count(self, kind: str, query: Query) -> int:
        ...

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically add one to the counter at `key` (starting at 1) and return it."""


class DocumentStorage(StorageAdapter):
    """StorageAdapter over a Keyspace."""

    backend = "document"
    case_sensitive_search = True

    def __init__(self, keyspace: Keyspace):
        self._keyspace = keyspace

    @property
    def keyspace(self) -> Keyspace:
        return self._keyspace

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def init(self) -> None:
        await self._keyspace.connect()

    async def close(self) -> None:
        await self._keyspace.close()

    async def ping(self) -> None:
        await self._keyspace.ping()

    # ── Encoding ──────────────────────────────────────────────────────────

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in KINDS:
            raise ValueError(f"Unknown entity kind '{kind}'")

    @staticmethod
    def _encode(kind: str, record: Record) -> Document:
        document: Document = {"type": kind}
        for name, value in record.items():
            if isinstance(value, datetime):
                value = value.isoformat(timespec="microseconds")
            elif isinstance(value, tuple):
                value = list(value)
            document[name] = value
        return document

    @staticmethod
    def _decode(document: Optional[Document]) -> Optional[Record]:
        if document is None:
            return None
        record = {k: v for k, v in document.items() if k != "type"}
        for name in DATETIME_FIELDS:
            value = record.get(name)
            if isinstance(value, str):
                record[name] = datetime.fromisoformat(value)
        return record

    # ── StorageAdapter ────────────────────────────────────────────────────

    async def get(self, kind: str, record_id: int) -> Optional[Record]:
        self._check_kind(kind)
        return self._decode(await self._keyspace.get(document_key(kind, record_id)))

    async def put(self, kind: str, record: Record) -> Record:
        self._check_kind(kind)
        record_id = record.get("id")
        if record_id is None:
            record_id = await self._keyspace.increment(counter_key(kind))
            document = self._encode(kind, {**record, "id": record_id})
        else:
            # Fields the caller left out keep their stored values
            existing = await self._keyspace.get(document_key(kind, record_id)) or {}
            document = {**existing, **self._encode(kind, record)}
        await self._keyspace.upsert(document_key(kind, record_id), document)
        return self._decode(document)

    async def remove(self, kind: str, record_id: int) -> bool:
        self._check_kind(kind)
        return await self._keyspace.remove(document_key(kind, record_id))

    async def query(self, kind: str, query: Optional[Query] = None) -> List[Record]:
        self._check_kind(kind)
        documents = await self._keyspace.select(kind, query or Query())
        return [self._decode(doc) for doc in documents]

    async def count(self, kind: str, query: Optional[Query] = None) -> int:
        self._check_kind(kind)
        return await self._keyspace.count(kind, query or Query())
