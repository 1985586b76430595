"""
Note Repository.

Data access for notes: nested creation, expanded detail reads, filtered and
enriched listing, merge updates and cascading deletes.

Expansion (get_by_id):
    After the note itself is fetched, the category, every tag, the
    solutions (each with its steps), code snippets, scripts and images are
    all looked up concurrently with asyncio.gather. gather returns results
    in argument order, so the response is assembled by position no matter
    which lookup finishes first.

Dangling references:
    A tag id on a note whose tag has since been deleted (possible on the
    document backend, where tags are an embedded array) is dropped from the
    response rather than failing the read. A missing category resolves to a
    null name and color.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from melonotes.exceptions import ValidationError
from melonotes.repositories.artifact import (
    CodeSnippetRepository,
    ImageRepository,
    ScriptRepository,
)
from melonotes.repositories.base import Repository, utcnow
from melonotes.repositories.solution import SolutionRepository
from melonotes.storage.base import CATEGORY, NOTE, TAG, Query, Record, StorageAdapter

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("title", "problem", "problem_definition", "analysis")

# Required on every note; an explicit null in an update leaves them unchanged
REQUIRED_FIELDS = ("title", "priority", "status")


class NoteRepository(Repository):
    kind = NOTE
    resource = "Note"
    fields = (
        "title",
        "problem",
        "problem_definition",
        "analysis",
        "why_solution_a",
        "why_switch_to_b",
        "category_id",
        "priority",
        "status",
        "tags",
        "created_at",
        "updated_at",
    )
    default_order = ("-updated_at", "-id")

    def __init__(self, storage: StorageAdapter) -> None:
        super().__init__(storage)
        self.solutions = SolutionRepository(storage)
        self.code_snippets = CodeSnippetRepository(storage)
        self.scripts = ScriptRepository(storage)
        self.images = ImageRepository(storage)

    # ── References ────────────────────────────────────────────────────────

    async def _check_references(
        self, category_id: Optional[int], tag_ids: Sequence[int]
    ) -> None:
        """Every referenced category and tag must exist; report all that don't."""
        lookups = []
        if category_id is not None:
            lookups.append(("category_id", CATEGORY, category_id))
        lookups.extend(("tags", TAG, tid) for tid in dict.fromkeys(tag_ids))
        if not lookups:
            return

        found = await asyncio.gather(
            *(self.storage.get(kind, rid) for _, kind, rid in lookups)
        )
        errors = [
            {"field": field, "message": f"{kind.capitalize()} {rid} does not exist"}
            for (field, kind, rid), record in zip(lookups, found)
            if record is None
        ]
        if errors:
            raise ValidationError(message="Note references missing records", errors=errors)

    @staticmethod
    def _check_nested_links(data: Dict[str, Any]) -> None:
        # Solution ids do not exist until the note is written
        errors = [
            {
                "field": f"{group}.{index}.solution_id",
                "message": "A new note's snippets and scripts cannot reference a solution",
            }
            for group in ("code_snippets", "scripts")
            for index, item in enumerate(data.get(group) or [])
            if item.get("solution_id") is not None
        ]
        if errors:
            raise ValidationError(message="Validation failed", errors=errors)

    async def _resolve_tags(self, note_id: int, tag_ids: Sequence[int]) -> List[Record]:
        found = await asyncio.gather(*(self.storage.get(TAG, tid) for tid in tag_ids))
        tags = [tag for tag in found if tag is not None]
        if len(tags) != len(tag_ids):
            missing = [tid for tid, tag in zip(tag_ids, found) if tag is None]
            logger.warning("Note %s references missing tags %s", note_id, missing)
        return tags

    async def _category_of(self, note: Record) -> Optional[Record]:
        if note.get("category_id") is None:
            return None
        return await self.storage.get(CATEGORY, note["category_id"])

    # ── Create ────────────────────────────────────────────────────────────

    async def create(self, data: Dict[str, Any]) -> Record:
        """
        Create a note with its nested solutions (and their steps), code
        snippets and scripts, then return the expanded note.

        Nested records are written one after another in submission order;
        each record's index supplies its default label, priority or
        execution order.
        """
        tag_ids = list(dict.fromkeys(data.get("tags") or []))
        self._check_nested_links(data)
        await self._check_references(data.get("category_id"), tag_ids)

        now = utcnow()
        note = await super().create(
            {
                **data,
                "priority": data.get("priority") or 1,
                "status": data.get("status") or "active",
                "tags": tag_ids,
                "created_at": now,
                "updated_at": now,
            }
        )
        note_id = note["id"]

        for index, solution in enumerate(data.get("solutions") or []):
            await self.solutions.create(note_id, solution, position=index)
        for index, snippet in enumerate(data.get("code_snippets") or []):
            await self.code_snippets.create(note_id, snippet, position=index)
        for index, script in enumerate(data.get("scripts") or []):
            await self.scripts.create(note_id, script, position=index)

        logger.info("Created note %s '%s'", note_id, note["title"])
        return await self.get_by_id(note_id)

    # ── Read ──────────────────────────────────────────────────────────────

    async def get_by_id(self, note_id: int) -> Record:
        """
        The note expanded with category name/color, resolved tags, solutions
        (by priority, each with steps by step number), code snippets and
        scripts (by execution order) and images.

        Raises:
            NotFoundError: If the note does not exist
        """
        note = await self.get_record(note_id)
        category, tags, solutions, snippets, scripts, images = await asyncio.gather(
            self._category_of(note),
            self._resolve_tags(note_id, note.get("tags") or []),
            self.solutions.list_for_note(note_id),
            self.code_snippets.list_for_note(note_id),
            self.scripts.list_for_note(note_id),
            self.images.list_for_note(note_id),
        )
        return {
            **note,
            "category_name": category["name"] if category else None,
            "category_color": category["color"] if category else None,
            "tags": tags,
            "solutions": solutions,
            "code_snippets": snippets,
            "scripts": scripts,
            "images": images,
        }

    async def list_notes(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        tag_ids: Optional[Sequence[int]] = None,
    ) -> List[Record]:
        """
        Notes matching every given filter, most recently updated first, each
        enriched with category name/color and resolved tags.

        search matches a substring of title, problem, problem_definition or
        analysis; tag_ids matches notes carrying any of the given tags.
        """
        query = Query(order_by=(("updated_at", True), ("id", True)))
        if category_id is not None:
            query.equals["category_id"] = category_id
        if status:
            query.equals["status"] = status
        if search:
            query.search = search
            query.search_fields = SEARCH_FIELDS
        if tag_ids:
            query.any_of["tags"] = list(tag_ids)

        notes, categories, tags = await asyncio.gather(
            self.storage.query(NOTE, query),
            self.storage.query(CATEGORY),
            self.storage.query(TAG),
        )
        categories_by_id = {c["id"]: c for c in categories}
        tags_by_id = {t["id"]: t for t in tags}

        enriched = []
        for note in notes:
            category = categories_by_id.get(note.get("category_id"))
            enriched.append(
                {
                    **note,
                    "category_name": category["name"] if category else None,
                    "category_color": category["color"] if category else None,
                    "tags": [
                        tags_by_id[tid] for tid in note.get("tags") or [] if tid in tags_by_id
                    ],
                }
            )
        return enriched

    # ── Update ────────────────────────────────────────────────────────────

    async def update(self, note_id: int, changes: Dict[str, Any]) -> Record:
        """
        Merge the given fields into the note and bump updated_at.

        An explicit null clears an optional field (category_id, problem, ...);
        `tags`, when given, replaces the whole tag set.
        """
        existing = await self.get_record(note_id)
        changes = {
            k: v for k, v in changes.items()
            if not (k in REQUIRED_FIELDS and v is None)
        }
        if "tags" in changes:
            changes["tags"] = list(dict.fromkeys(changes["tags"] or []))
        await self._check_references(changes.get("category_id"), changes.get("tags") or [])

        merged = {
            **existing,
            **self._writable(changes),
            "id": note_id,
            "updated_at": utcnow(),
        }
        await self.storage.put(NOTE, merged)
        return await self.get_by_id(note_id)

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete(self, note_id: int) -> List[str]:
        """
        Delete the note and everything it owns.

        Children are removed explicitly (steps, solutions, snippets, scripts,
        images, then the note) so the document backend, which has no
        foreign keys, ends in the same state as the relational one.

        Returns:
            Filenames of the note's images, for the caller to remove from disk

        Raises:
            NotFoundError: If the note does not exist
        """
        await self.get_record(note_id)
        await self.solutions.delete_for_note(note_id)
        await self.code_snippets.delete_for_note(note_id)
        await self.scripts.delete_for_note(note_id)
        images = await self.images.list_for_note(note_id)
        await self.images.delete_for_note(note_id)
        await super().delete(note_id)
        logger.info("Deleted note %s", note_id)
        return [image["filename"] for image in images]
