"""
MELONOTES Backend — Notes Route Handlers
==========================================

What:  List, read, create, update and delete notes.
How:   Query/body validation by FastAPI + Pydantic, then delegation to
       NoteRepository, which expands and enriches the records.
Who:   The frontend note list, note editor and note detail pages.

Filtering (GET /api/notes):
    search    substring of title, problem, problem_definition or analysis
    category  category id
    status    active | completed | archived
    tags      comma-separated tag ids; a note matches if it has any of them
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from melonotes.dependencies import Notes, get_current_user
from melonotes.exceptions import ValidationError
from melonotes.schemas.common import ErrorResponse, MessageResponse
from melonotes.schemas.note import (
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteStatus,
    NoteUpdate,
)
from melonotes.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Notes"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)


def parse_tag_ids(raw: Optional[str]) -> List[int]:
    """'1, 3,5' → [1, 3, 5]; blank entries are skipped."""
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValidationError(
                message=f"Tag filter must be comma-separated ids, got '{part}'",
                field="tags",
            )
        ids.append(int(part))
    return ids


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={400: {"description": "Invalid filter", "model": ErrorResponse}},
    summary="List notes, most recently updated first",
)
async def list_notes(
    notes: Notes,
    search: Optional[str] = Query(default=None, description="Substring to look for"),
    category: Optional[int] = Query(default=None, description="Category id"),
    status: Optional[NoteStatus] = Query(default=None, description="Note status"),
    tags: Optional[str] = Query(default=None, description="Comma-separated tag ids"),
) -> NoteListResponse:
    records = await notes.list_notes(
        search=search.strip() if search else None,
        category_id=category,
        status=status,
        tag_ids=parse_tag_ids(tags),
    )
    return NoteListResponse(notes=records, total=len(records), message="Notes retrieved")


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a note with its tags, solutions, steps, code snippets, scripts and images",
)
async def get_note(note_id: int, notes: Notes) -> NoteResponse:
    record = await notes.get_by_id(note_id)
    return NoteResponse(**record, message="Note retrieved")


@router.post(
    "/notes",
    response_model=NoteResponse,
    status_code=201,
    responses={400: {"description": "Invalid input", "model": ErrorResponse}},
    summary="Create a note with nested solutions, code snippets and scripts",
)
async def create_note(body: NoteCreate, notes: Notes) -> NoteResponse:
    record = await notes.create(body.model_dump())
    return NoteResponse(**record, message="Note created successfully")


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Update the fields given; other fields are left as they are",
)
async def update_note(note_id: int, body: NoteUpdate, notes: Notes) -> NoteResponse:
    record = await notes.update(note_id, body.model_dump(exclude_unset=True))
    return NoteResponse(**record, message="Note updated successfully")


@router.delete(
    "/notes/{note_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Delete a note and everything it owns",
)
async def delete_note(note_id: int, notes: Notes) -> MessageResponse:
    for filename in await notes.delete(note_id):
        await file_service.remove(filename)
    return MessageResponse(message="Note deleted successfully")
