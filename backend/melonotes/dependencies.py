"""
FastAPI Dependencies.

Shared dependencies for request handling: the storage handle created in
the lifespan, repositories bound to it, and the bearer-token gate.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from melonotes.exceptions import AuthError
from melonotes.repositories import (
    CategoryRepository,
    CodeSnippetRepository,
    ImageRepository,
    NoteRepository,
    ScriptRepository,
    SolutionRepository,
    StepRepository,
    TagRepository,
    UserRepository,
)
from melonotes.services.auth_service import auth_service
from melonotes.storage.base import StorageAdapter

NO_TOKEN = "Access denied. No token provided."

# auto_error=False so a missing header reaches our handler as AuthError (401)
_bearer = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> StorageAdapter:
    """The adapter the lifespan stored on app.state."""
    return request.app.state.storage


Storage = Annotated[StorageAdapter, Depends(get_storage)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer)],
) -> Dict[str, Any]:
    """
    Verify the bearer token and return {"id", "username"} from its claims.

    Raises:
        AuthError: no Authorization header, or an invalid/expired token
    """
    if credentials is None or not credentials.credentials:
        raise AuthError(NO_TOKEN)
    claims = auth_service.decode_token(credentials.credentials)
    return {"id": claims["user_id"], "username": claims["username"]}


CurrentUser = Annotated[Dict[str, Any], Depends(get_current_user)]


# ── Repositories ──────────────────────────────────────────────────────────


def get_user_repository(storage: Storage) -> UserRepository:
    return UserRepository(storage)


def get_category_repository(storage: Storage) -> CategoryRepository:
    return CategoryRepository(storage)


def get_tag_repository(storage: Storage) -> TagRepository:
    return TagRepository(storage)


def get_note_repository(storage: Storage) -> NoteRepository:
    return NoteRepository(storage)


def get_solution_repository(storage: Storage) -> SolutionRepository:
    return SolutionRepository(storage)


def get_step_repository(storage: Storage) -> StepRepository:
    return StepRepository(storage)


def get_code_snippet_repository(storage: Storage) -> CodeSnippetRepository:
    return CodeSnippetRepository(storage)


def get_script_repository(storage: Storage) -> ScriptRepository:
    return ScriptRepository(storage)


def get_image_repository(storage: Storage) -> ImageRepository:
    return ImageRepository(storage)


Users = Annotated[UserRepository, Depends(get_user_repository)]
Categories = Annotated[CategoryRepository, Depends(get_category_repository)]
Tags = Annotated[TagRepository, Depends(get_tag_repository)]
Notes = Annotated[NoteRepository, Depends(get_note_repository)]
Solutions = Annotated[SolutionRepository, Depends(get_solution_repository)]
Steps = Annotated[StepRepository, Depends(get_step_repository)]
CodeSnippets = Annotated[CodeSnippetRepository, Depends(get_code_snippet_repository)]
Scripts = Annotated[ScriptRepository, Depends(get_script_repository)]
Images = Annotated[ImageRepository, Depends(get_image_repository)]
