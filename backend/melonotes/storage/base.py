"""
MELONOTES Backend — Storage Adapter Contract
==============================================

What:  The abstract persistence interface every repository is written against,
       and the `Query` value object used for filtered retrieval.
How:   Records are plain dicts keyed by field name with an integer `id`.
       Two implementations exist:
       - RelationalStorage (storage/relational.py): SQLAlchemy ORM tables
       - DocumentStorage (storage/document.py): `type::id` documents in a keyspace
Who:   Repositories (repositories/) and the application lifespan.

Contract summary:
    get(kind, id)       → record, or None when missing
    put(kind, record)   → insert when record has no id, upsert otherwise
    remove(kind, id)    → True when something was removed
    query(kind, Query)  → filtered, ordered list of records
    count(kind, Query)  → number of matching records

Failures other than "missing" surface as ConflictError (unique constraint)
or StorageError (anything else the driver raised).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

# Entity kinds shared by both backends; also the document `type` discriminator
USER = "user"
CATEGORY = "category"
TAG = "tag"
NOTE = "note"
SOLUTION = "solution"
STEP = "step"
CODE_SNIPPET = "code_snippet"
SCRIPT = "script"
IMAGE = "image"

KINDS = (USER, CATEGORY, TAG, NOTE, SOLUTION, STEP, CODE_SNIPPET, SCRIPT, IMAGE)

# Fields holding a list of ids rather than a scalar
ARRAY_FIELDS: Dict[str, frozenset] = {NOTE: frozenset({"tags"})}

# Fields carrying datetimes; the document backend stores them as ISO strings
DATETIME_FIELDS = frozenset({"created_at", "updated_at"})

Record = Dict[str, Any]


@dataclass
class Query:
    """
    Backend-neutral description of a filtered, ordered retrieval.

    Attributes:
        equals:        field → value exact matches (None matches a null field)
        search:        substring searched for in any of `search_fields`
        search_fields: text fields OR-ed together for `search`
        any_of:        field → allowed values; for an array field (note tags)
                       a record matches when the arrays overlap
        order_by:      (field, descending) pairs, applied in order
    """

    equals: Dict[str, Any] = field(default_factory=dict)
    search: Optional[str] = None
    search_fields: Tuple[str, ...] = ()
    any_of: Dict[str, Sequence[Any]] = field(default_factory=dict)
    order_by: Tuple[Tuple[str, bool], ...] = ()

    @classmethod
    def where(cls, **equals: Any) -> "Query":
        return cls(equals=equals)

    def ordered(self, *fields: str) -> "Query":
        """
        Return a copy ordered by `fields`; a leading "-" means descending.

            Query.where(note_id=1).ordered("priority", "id")
        """
        order = tuple((f[1:], True) if f.startswith("-") else (f, False) for f in fields)
        return Query(
            equals=dict(self.equals),
            search=self.search,
            search_fields=self.search_fields,
            any_of=dict(self.any_of),
            order_by=order,
        )


class StorageAdapter(ABC):
    """
    Abstract persistence contract implemented by both backends.

    Lifecycle:
        init() is called once from the application lifespan before any
        request is served; close() is called on shutdown. Every other
        method is safe to call concurrently (asyncio.gather) because each
        call is independent of the others.
    """

    #: Name reported by /health and logged at startup
    backend: str = "abstract"

    #: Whether Query.search distinguishes "performance" from "Performance"
    case_sensitive_search: bool = False

    async def init(self) -> None:
        """Connect and prepare the schema/indexes. Raises StorageError on failure."""

    async def close(self) -> None:
        """Release connections. Safe to call more than once."""

    @abstractmethod
    async def ping(self) -> None:
        """Cheap round trip; raises StorageError when the store is unreachable."""

    @abstractmethod
    async def get(self, kind: str, record_id: int) -> Optional[Record]:
        ...

    @abstractmethod
    async def put(self, kind: str, record: Record) -> Record:
        ...

    @abstractmethod
    async def remove(self, kind: str, record_id: int) -> bool:
        ...

    @abstractmethod
    async def query(self, kind: str, query: Optional[Query] = None) -> List[Record]:
        ...

    @abstractmethod
    async def count(self, kind: str, query: Optional[Query] = None) -> int:
        ...
