"""
MELONOTES Backend — Category & Tag Routes
===========================================

What:  CRUD for the two lookup tables used to classify notes.
How:   Bodies validated by Pydantic (non-blank name, hex color); duplicate
       names answered with 409 by the repository. Deleting either never
       deletes notes.
"""

from fastapi import APIRouter, Depends

from melonotes.dependencies import Categories, Tags, get_current_user
from melonotes.schemas.common import ErrorResponse, MessageResponse
from melonotes.schemas.taxonomy import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
    TagCreate,
    TagListResponse,
    TagResponse,
)

router = APIRouter(prefix="/api", dependencies=[Depends(get_current_user)])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}


# ── Categories ────────────────────────────────────────────────────────────


@router.get(
    "/categories",
    response_model=CategoryListResponse,
    tags=["Categories"],
    summary="List categories ordered by name",
)
async def list_categories(categories: Categories) -> CategoryListResponse:
    records = await categories.list()
    return CategoryListResponse(
        categories=records, total=len(records), message="Categories retrieved"
    )


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=201,
    tags=["Categories"],
    responses={**_ERRORS, 409: {"description": "Name already used", "model": ErrorResponse}},
    summary="Create a category",
)
async def create_category(body: CategoryCreate, categories: Categories) -> CategoryResponse:
    record = await categories.create(body.model_dump())
    return CategoryResponse(**record, message="Category created successfully")


@router.put(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    tags=["Categories"],
    responses={
        **_ERRORS,
        404: {"description": "Category not found", "model": ErrorResponse},
        409: {"description": "Name already used", "model": ErrorResponse},
    },
    summary="Rename or recolor a category",
)
async def update_category(
    category_id: int, body: CategoryUpdate, categories: Categories
) -> CategoryResponse:
    record = await categories.update(category_id, body.model_dump(exclude_unset=True))
    return CategoryResponse(**record, message="Category updated successfully")


@router.delete(
    "/categories/{category_id}",
    response_model=MessageResponse,
    tags=["Categories"],
    responses={404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Delete a category; its notes keep existing without one",
)
async def delete_category(category_id: int, categories: Categories) -> MessageResponse:
    await categories.delete(category_id)
    return MessageResponse(message="Category deleted successfully")


# ── Tags ──────────────────────────────────────────────────────────────────


@router.get(
    "/tags",
    response_model=TagListResponse,
    tags=["Tags"],
    summary="List tags ordered by name",
)
async def list_tags(tags: Tags) -> TagListResponse:
    records = await tags.list()
    return TagListResponse(tags=records, total=len(records), message="Tags retrieved")


@router.post(
    "/tags",
    response_model=TagResponse,
    status_code=201,
    tags=["Tags"],
    responses={**_ERRORS, 409: {"description": "Name already used", "model": ErrorResponse}},
    summary="Create a tag",
)
async def create_tag(body: TagCreate, tags: Tags) -> TagResponse:
    record = await tags.create(body.model_dump())
    return TagResponse(**record, message="Tag created successfully")


@router.delete(
    "/tags/{tag_id}",
    response_model=MessageResponse,
    tags=["Tags"],
    responses={404: {"description": "Tag not found", "model": ErrorResponse}},
    summary="Delete a tag; notes carrying it keep existing",
)
async def delete_tag(tag_id: int, tags: Tags) -> MessageResponse:
    await tags.delete(tag_id)
    return MessageResponse(message="Tag deleted successfully")
