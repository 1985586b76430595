"""
MELONOTES Backend — Solution, Step, Code Snippet & Script Routes
==================================================================

What:  Manage the records a note owns after the note exists.
How:   Creation is nested under the owner (/notes/{id}/solutions,
       /solutions/{id}/steps, ...); reads, updates and deletes address the
       record directly. The owner must exist, otherwise 404.

PUT /api/steps/{id} only toggles `completed`; it is the checkbox behind
every step in the note detail view.
"""

from fastapi import APIRouter, Depends

from melonotes.dependencies import (
    CodeSnippets,
    Notes,
    Scripts,
    Solutions,
    Steps,
    get_current_user,
)
from melonotes.schemas.common import ErrorResponse, MessageResponse
from melonotes.schemas.note import (
    CodeSnippetCreate,
    CodeSnippetResponse,
    CodeSnippetUpdate,
    ScriptCreate,
    ScriptResponse,
    ScriptUpdate,
    SolutionCreate,
    SolutionResponse,
    SolutionUpdate,
    StepCreate,
    StepResponse,
    StepUpdate,
)

router = APIRouter(
    prefix="/api",
    dependencies=[Depends(get_current_user)],
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Record or owner not found", "model": ErrorResponse},
    },
)


# ── Solutions ─────────────────────────────────────────────────────────────


@router.post(
    "/notes/{note_id}/solutions",
    response_model=SolutionResponse,
    status_code=201,
    tags=["Solutions"],
    summary="Add a solution (with optional steps) to a note",
)
async def create_solution(
    note_id: int, body: SolutionCreate, notes: Notes, solutions: Solutions
) -> SolutionResponse:
    await notes.get_record(note_id)
    existing = await solutions.list_for_note(note_id)
    record = await solutions.create(note_id, body.model_dump(), position=len(existing))
    return SolutionResponse(**record, message="Solution created successfully")


@router.get(
    "/solutions/{solution_id}",
    response_model=SolutionResponse,
    tags=["Solutions"],
    summary="Get a solution with its steps",
)
async def get_solution(solution_id: int, solutions: Solutions) -> SolutionResponse:
    record = await solutions.get_by_id(solution_id)
    return SolutionResponse(**record, message="Solution retrieved")


@router.put(
    "/solutions/{solution_id}",
    response_model=SolutionResponse,
    tags=["Solutions"],
    summary="Update a solution's label, text or priority",
)
async def update_solution(
    solution_id: int, body: SolutionUpdate, solutions: Solutions
) -> SolutionResponse:
    record = await solutions.update(solution_id, body.model_dump(exclude_unset=True))
    return SolutionResponse(**record, message="Solution updated successfully")


@router.delete(
    "/solutions/{solution_id}",
    response_model=MessageResponse,
    tags=["Solutions"],
    summary="Delete a solution and its steps",
)
async def delete_solution(solution_id: int, solutions: Solutions) -> MessageResponse:
    await solutions.delete(solution_id)
    return MessageResponse(message="Solution deleted successfully")


# ── Steps ─────────────────────────────────────────────────────────────────


@router.post(
    "/solutions/{solution_id}/steps",
    response_model=StepResponse,
    status_code=201,
    tags=["Steps"],
    summary="Append a step to a solution",
)
async def create_step(
    solution_id: int, body: StepCreate, solutions: Solutions, steps: Steps
) -> StepResponse:
    await solutions.get_record(solution_id)
    existing = await steps.list_for_solution(solution_id)
    record = await steps.create(solution_id, body.model_dump(), position=len(existing))
    return StepResponse(**record, message="Step created successfully")


@router.put(
    "/steps/{step_id}",
    response_model=StepResponse,
    tags=["Steps"],
    summary="Mark a step completed or not completed",
)
async def update_step(step_id: int, body: StepUpdate, steps: Steps) -> StepResponse:
    record = await steps.set_completed(step_id, body.completed)
    return StepResponse(**record, message="Step updated successfully")


@router.delete(
    "/steps/{step_id}",
    response_model=MessageResponse,
    tags=["Steps"],
    summary="Delete a step",
)
async def delete_step(step_id: int, steps: Steps) -> MessageResponse:
    await steps.delete(step_id)
    return MessageResponse(message="Step deleted successfully")


# ── Code Snippets ─────────────────────────────────────────────────────────


@router.post(
    "/notes/{note_id}/code-snippets",
    response_model=CodeSnippetResponse,
    status_code=201,
    tags=["Code Snippets"],
    summary="Add a code snippet to a note",
)
async def create_code_snippet(
    note_id: int, body: CodeSnippetCreate, notes: Notes, snippets: CodeSnippets
) -> CodeSnippetResponse:
    await notes.get_record(note_id)
    existing = await snippets.list_for_note(note_id)
    record = await snippets.create(note_id, body.model_dump(), position=len(existing))
    return CodeSnippetResponse(**record, message="Code snippet created successfully")


@router.put(
    "/code-snippets/{snippet_id}",
    response_model=CodeSnippetResponse,
    tags=["Code Snippets"],
    summary="Update a code snippet",
)
async def update_code_snippet(
    snippet_id: int, body: CodeSnippetUpdate, snippets: CodeSnippets
) -> CodeSnippetResponse:
    record = await snippets.update(snippet_id, body.model_dump(exclude_unset=True))
    return CodeSnippetResponse(**record, message="Code snippet updated successfully")


@router.delete(
    "/code-snippets/{snippet_id}",
    response_model=MessageResponse,
    tags=["Code Snippets"],
    summary="Delete a code snippet",
)
async def delete_code_snippet(snippet_id: int, snippets: CodeSnippets) -> MessageResponse:
    await snippets.delete(snippet_id)
    return MessageResponse(message="Code snippet deleted successfully")


# ── Scripts ───────────────────────────────────────────────────────────────


@router.post(
    "/notes/{note_id}/scripts",
    response_model=ScriptResponse,
    status_code=201,
    tags=["Scripts"],
    summary="Add a script to a note",
)
async def create_script(
    note_id: int, body: ScriptCreate, notes: Notes, scripts: Scripts
) -> ScriptResponse:
    await notes.get_record(note_id)
    existing = await scripts.list_for_note(note_id)
    record = await scripts.create(note_id, body.model_dump(), position=len(existing))
    return ScriptResponse(**record, message="Script created successfully")


@router.put(
    "/scripts/{script_id}",
    response_model=ScriptResponse,
    tags=["Scripts"],
    summary="Update a script",
)
async def update_script(script_id: int, body: ScriptUpdate, scripts: Scripts) -> ScriptResponse:
    record = await scripts.update(script_id, body.model_dump(exclude_unset=True))
    return ScriptResponse(**record, message="Script updated successfully")


@router.delete(
    "/scripts/{script_id}",
    response_model=MessageResponse,
    tags=["Scripts"],
    summary="Delete a script",
)
async def delete_script(script_id: int, scripts: Scripts) -> MessageResponse:
    await scripts.delete(script_id)
    return MessageResponse(message="Script deleted successfully")
