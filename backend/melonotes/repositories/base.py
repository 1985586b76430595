"""
Base Repository.

Common CRUD operations shared by every entity repository, written once
against the StorageAdapter contract so both backends behave identically.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from melonotes.exceptions import NotFoundError
from melonotes.storage.base import Query, Record, StorageAdapter

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Repository:
    """
    Base repository with common CRUD operations.

    Subclasses set the entity kind, the name used in error messages, and the
    fields a caller may write:

        class StepRepository(Repository):
            kind = STEP
            resource = "Step"
            fields = ("solution_id", "step_number", "description", "completed")
    """

    kind: str
    resource: str
    fields: tuple = ()
    default_order: tuple = ("id",)

    def __init__(self, storage: StorageAdapter) -> None:
        self.storage = storage

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in data.items() if k in self.fields}

    async def get_or_none(self, record_id: int) -> Optional[Record]:
        return await self.storage.get(self.kind, record_id)

    async def get_record(self, record_id: int) -> Record:
        """
        Get the stored record by ID.

        Raises:
            NotFoundError: If record not found
        """
        record = await self.storage.get(self.kind, record_id)
        if record is None:
            raise NotFoundError(self.resource, record_id)
        return record

    async def get_by_id(self, record_id: int) -> Record:
        return await self.get_record(record_id)

    async def exists(self, record_id: int) -> bool:
        return await self.storage.get(self.kind, record_id) is not None

    async def list(self, query: Optional[Query] = None) -> List[Record]:
        return await self.storage.query(
            self.kind, query or Query().ordered(*self.default_order)
        )

    async def create(self, data: Dict[str, Any]) -> Record:
        """Create a new record."""
        return await self.storage.put(self.kind, self._writable(data))

    async def update(self, record_id: int, changes: Dict[str, Any]) -> Record:
        """
        Merge `changes` into an existing record; fields not present keep their values.

        Raises:
            NotFoundError: If record not found
        """
        existing = await self.get_record(record_id)
        merged = {**existing, **self._writable(changes), "id": record_id}
        return await self.storage.put(self.kind, merged)

    async def delete(self, record_id: int) -> None:
        """
        Delete a record by ID.

        Raises:
            NotFoundError: If record not found
        """
        if not await self.storage.remove(self.kind, record_id):
            raise NotFoundError(self.resource, record_id)
