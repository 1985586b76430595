"""
Category & Tag Repositories.

Both are name/color lookup tables with unique names, listed alphabetically.
Uniqueness is checked before writing so both backends answer 409; the
relational backend additionally enforces it with a UNIQUE constraint. On the
document backend the check and the write are separate operations, so two
simultaneous creates with the same name can both succeed.

Deleting a category or tag first detaches it from every note that references
it: the category is cleared, the tag id is removed from the note's tag list.
The relational schema would do the same through its foreign keys; doing it
here keeps the document backend identical.
"""

import logging
from typing import Any, Dict, Optional

from melonotes.exceptions import ConflictError
from melonotes.models.taxonomy import DEFAULT_COLOR
from melonotes.repositories.base import Repository, utcnow
from melonotes.storage.base import CATEGORY, NOTE, TAG, Query, Record

logger = logging.getLogger(__name__)


class NamedRepository(Repository):
    """Shared behaviour for entities identified to users by a unique name."""

    fields = ("name", "color", "created_at")
    default_order = ("name", "id")

    async def get_by_name(self, name: str) -> Optional[Record]:
        matches = await self.storage.query(self.kind, Query.where(name=name))
        return matches[0] if matches else None

    async def _ensure_unique(self, name: str, exclude_id: Optional[int] = None) -> None:
        existing = await self.get_by_name(name)
        if existing is not None and existing["id"] != exclude_id:
            raise ConflictError(
                message=f"{self.resource} already exists",
                context={"name": name, "existing_id": existing["id"]},
            )

    async def create(self, data: Dict[str, Any]) -> Record:
        await self._ensure_unique(data["name"])
        return await super().create(
            {
                "name": data["name"],
                "color": data.get("color") or DEFAULT_COLOR,
                "created_at": utcnow(),
            }
        )

    async def update(self, record_id: int, changes: Dict[str, Any]) -> Record:
        await self.get_record(record_id)
        if changes.get("name") is not None:
            await self._ensure_unique(changes["name"], exclude_id=record_id)
        # name and color are never cleared
        return await super().update(
            record_id, {k: v for k, v in changes.items() if v is not None}
        )


class CategoryRepository(NamedRepository):
    kind = CATEGORY
    resource = "Category"

    async def delete(self, record_id: int) -> None:
        """Delete the category; notes filed under it become uncategorized."""
        await self.get_record(record_id)
        filed = await self.storage.query(NOTE, Query.where(category_id=record_id))
        for note in filed:
            await self.storage.put(NOTE, {**note, "category_id": None})
        await super().delete(record_id)
        logger.info("Deleted category %s, cleared it on %d notes", record_id, len(filed))


class TagRepository(NamedRepository):
    kind = TAG
    resource = "Tag"

    async def delete(self, record_id: int) -> None:
        """Delete the tag and remove it from every note carrying it."""
        await self.get_record(record_id)
        tagged = await self.storage.query(NOTE, Query(any_of={"tags": [record_id]}))
        for note in tagged:
            remaining = [tid for tid in note.get("tags") or [] if tid != record_id]
            await self.storage.put(NOTE, {**note, "tags": remaining})
        await super().delete(record_id)
        logger.info("Deleted tag %s, removed it from %d notes", record_id, len(tagged))
