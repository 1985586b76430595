"""
Code Snippet, Script & Image Repositories.

Artifacts hang off a note (snippets and scripts optionally also name a
solution) and are listed in execution order, or upload order for images.
"""

from typing import Any, Dict, List, Optional

from melonotes.exceptions import ValidationError
from melonotes.repositories.base import Repository, utcnow
from melonotes.storage.base import CODE_SNIPPET, IMAGE, SCRIPT, SOLUTION, Query, Record


class NoteChildRepository(Repository):
    """Records owned by a note; deleted together with it."""

    async def list_for_note(self, note_id: int) -> List[Record]:
        return await self.list(Query.where(note_id=note_id).ordered(*self.default_order))

    async def delete_for_note(self, note_id: int) -> int:
        records = await self.storage.query(self.kind, Query.where(note_id=note_id))
        for record in records:
            await self.storage.remove(self.kind, record["id"])
        return len(records)


class SolutionArtifactRepository(NoteChildRepository):
    """
    Note children that may also point at one of the note's solutions.
    Deleting that solution deletes them too.
    """

    async def _check_solution(self, note_id: int, solution_id: Optional[int]) -> None:
        if solution_id is None:
            return
        solution = await self.storage.get(SOLUTION, solution_id)
        if solution is None or solution["note_id"] != note_id:
            raise ValidationError(
                message=f"Solution {solution_id} does not belong to note {note_id}",
                field="solution_id",
            )

    async def delete_for_solution(self, solution_id: int) -> int:
        records = await self.storage.query(self.kind, Query.where(solution_id=solution_id))
        for record in records:
            await self.storage.remove(self.kind, record["id"])
        return len(records)

    async def update(self, record_id: int, changes: Dict[str, Any]) -> Record:
        if changes.get("solution_id") is not None:
            existing = await self.get_record(record_id)
            await self._check_solution(existing["note_id"], changes["solution_id"])
        return await super().update(record_id, changes)


class CodeSnippetRepository(SolutionArtifactRepository):
    kind = CODE_SNIPPET
    resource = "Code snippet"
    fields = (
        "note_id",
        "solution_id",
        "title",
        "language",
        "code",
        "description",
        "execution_order",
    )
    default_order = ("execution_order", "id")

    async def create(self, note_id: int, data: Dict[str, Any], position: int = 0) -> Record:
        await self._check_solution(note_id, data.get("solution_id"))
        return await super().create(
            {
                "note_id": note_id,
                "solution_id": data.get("solution_id"),
                "title": data.get("title"),
                "language": data.get("language") or "sql",
                "code": data.get("code") or "",
                "description": data.get("description"),
                "execution_order": data.get("execution_order") or position + 1,
            }
        )

    async def update(self, snippet_id: int, changes: Dict[str, Any]) -> Record:
        changes = {
            k: v for k, v in changes.items()
            if not (k in ("language", "code", "execution_order") and v is None)
        }
        return await super().update(snippet_id, changes)


class ScriptRepository(SolutionArtifactRepository):
    kind = SCRIPT
    resource = "Script"
    fields = (
        "note_id",
        "solution_id",
        "title",
        "script_type",
        "content",
        "description",
        "execution_order",
    )
    default_order = ("execution_order", "id")

    async def create(self, note_id: int, data: Dict[str, Any], position: int = 0) -> Record:
        await self._check_solution(note_id, data.get("solution_id"))
        return await super().create(
            {
                "note_id": note_id,
                "solution_id": data.get("solution_id"),
                "title": data.get("title"),
                "script_type": data.get("script_type") or "bash",
                "content": data.get("content") or "",
                "description": data.get("description"),
                "execution_order": data.get("execution_order") or position + 1,
            }
        )

    async def update(self, script_id: int, changes: Dict[str, Any]) -> Record:
        changes = {
            k: v for k, v in changes.items()
            if not (k in ("script_type", "content", "execution_order") and v is None)
        }
        return await super().update(script_id, changes)


class ImageRepository(NoteChildRepository):
    kind = IMAGE
    resource = "Image"
    fields = ("note_id", "filename", "description", "created_at")
    default_order = ("created_at", "id")

    async def create(
        self, note_id: int, filename: str, description: Optional[str] = None
    ) -> Record:
        return await super().create(
            {
                "note_id": note_id,
                "filename": filename,
                "description": description,
                "created_at": utcnow(),
            }
        )
