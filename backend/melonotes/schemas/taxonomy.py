"""Category and tag request/response models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from melonotes.schemas.common import HexColor, NonBlankStr


class CategoryCreate(BaseModel):
    name: NonBlankStr = Field(max_length=100)
    color: Optional[HexColor] = Field(default=None, description="Hex color, defaults to #FF69B4")


class CategoryUpdate(BaseModel):
    name: Optional[NonBlankStr] = Field(default=None, max_length=100)
    color: Optional[HexColor] = None


class TagCreate(BaseModel):
    name: NonBlankStr = Field(max_length=100)
    color: Optional[HexColor] = Field(default=None, description="Hex color, defaults to #FF69B4")


class CategoryOut(BaseModel):
    id: int
    name: str
    color: str
    created_at: Optional[datetime] = None


class TagOut(BaseModel):
    id: int
    name: str
    color: str
    created_at: Optional[datetime] = None


class CategoryResponse(CategoryOut):
    message: str


class TagResponse(TagOut):
    message: str


class CategoryListResponse(BaseModel):
    categories: List[CategoryOut]
    total: int
    message: str


class TagListResponse(BaseModel):
    tags: List[TagOut]
    total: int
    message: str
