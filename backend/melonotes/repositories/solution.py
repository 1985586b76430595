"""
Solution & Step Repositories.

A solution is one remediation plan for a note ("Plan A", "Plan B", ...);
its steps are the ordered tasks of that plan, each completable on its own.
"""

import asyncio
import logging
from typing import Any, Dict, List

from melonotes.repositories.artifact import CodeSnippetRepository, ScriptRepository
from melonotes.repositories.base import Repository
from melonotes.storage.base import SOLUTION, STEP, Query, Record

logger = logging.getLogger(__name__)


def plan_label(position: int) -> str:
    """0 → "Plan A", 1 → "Plan B", ... past Z the position is spelled out."""
    if position < 26:
        return f"Plan {chr(ord('A') + position)}"
    return f"Plan {position + 1}"


class StepRepository(Repository):
    kind = STEP
    resource = "Step"
    fields = ("solution_id", "step_number", "description", "completed")
    default_order = ("step_number", "id")

    async def create(self, solution_id: int, data: Dict[str, Any], position: int = 0) -> Record:
        return await super().create(
            {
                "solution_id": solution_id,
                "step_number": data.get("step_number") or position + 1,
                "description": data.get("description") or "",
                "completed": bool(data.get("completed", False)),
            }
        )

    async def list_for_solution(self, solution_id: int) -> List[Record]:
        return await self.list(Query.where(solution_id=solution_id).ordered("step_number", "id"))

    async def set_completed(self, step_id: int, completed: bool) -> Record:
        """Flip one step's completed flag; nothing else on the step changes."""
        return await self.update(step_id, {"completed": completed})

    async def delete_for_solution(self, solution_id: int) -> int:
        steps = await self.storage.query(STEP, Query.where(solution_id=solution_id))
        for step in steps:
            await self.storage.remove(STEP, step["id"])
        return len(steps)


class SolutionRepository(Repository):
    kind = SOLUTION
    resource = "Solution"
    fields = ("note_id", "plan_type", "description", "reasoning", "priority")
    default_order = ("priority", "id")

    def __init__(self, storage) -> None:
        super().__init__(storage)
        self.steps = StepRepository(storage)

    async def create(self, note_id: int, data: Dict[str, Any], position: int = 0) -> Record:
        """
        Create a solution and its nested steps.

        `position` is the solution's index among its siblings; it supplies the
        default plan label and priority, as each step's index supplies its
        step number.
        """
        solution = await super().create(
            {
                "note_id": note_id,
                "plan_type": data.get("plan_type") or plan_label(position),
                "description": data.get("description"),
                "reasoning": data.get("reasoning"),
                "priority": data.get("priority") or position + 1,
            }
        )
        steps = []
        for index, step in enumerate(data.get("steps") or []):
            steps.append(await self.steps.create(solution["id"], step, position=index))
        return {**solution, "steps": steps}

    async def get_by_id(self, solution_id: int) -> Record:
        solution = await self.get_record(solution_id)
        return {**solution, "steps": await self.steps.list_for_solution(solution_id)}

    async def list_for_note(self, note_id: int) -> List[Record]:
        """Solutions ordered by priority, each with its steps fetched concurrently."""
        solutions = await self.list(Query.where(note_id=note_id).ordered("priority", "id"))
        steps = await asyncio.gather(
            *(self.steps.list_for_solution(s["id"]) for s in solutions)
        )
        return [{**solution, "steps": s} for solution, s in zip(solutions, steps)]

    async def update(self, solution_id: int, changes: Dict[str, Any]) -> Record:
        # plan_type and priority are required on the record
        changes = {
            k: v for k, v in changes.items()
            if not (k in ("plan_type", "priority") and v is None)
        }
        await super().update(solution_id, changes)
        return await self.get_by_id(solution_id)

    async def delete(self, solution_id: int) -> None:
        """Delete a solution with its steps and the snippets and scripts pointing at it."""
        await self.get_record(solution_id)
        await self.steps.delete_for_solution(solution_id)
        await CodeSnippetRepository(self.storage).delete_for_solution(solution_id)
        await ScriptRepository(self.storage).delete_for_solution(solution_id)
        await super().delete(solution_id)

    async def delete_for_note(self, note_id: int) -> int:
        solutions = await self.storage.query(SOLUTION, Query.where(note_id=note_id))
        for solution in solutions:
            await self.steps.delete_for_solution(solution["id"])
            await self.storage.remove(SOLUTION, solution["id"])
        if solutions:
            logger.debug("Removed %d solutions of note %s", len(solutions), note_id)
        return len(solutions)
