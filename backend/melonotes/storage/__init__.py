"""
Persistence adapters.

    StorageAdapter      abstract contract (base.py)
    RelationalStorage   SQLAlchemy tables (relational.py)
    DocumentStorage     `type::id` documents over a Keyspace (document.py)
    CouchbaseKeyspace   Couchbase SDK keyspace (couchbase_keyspace.py)
"""

from melonotes.storage.base import Query, Record, StorageAdapter
from melonotes.storage.factory import connect_storage, create_storage

__all__ = ["Query", "Record", "StorageAdapter", "connect_storage", "create_storage"]
