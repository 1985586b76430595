"""
MELONOTES Backend — Category & Tag Models
===========================================

What:  Lookup tables used to classify notes.
How:   A note points at zero or one category (notes.category_id) and at any
       number of tags through the note_tags join table (models/note.py).

Deletion semantics:
    - Deleting a category sets notes.category_id to NULL (ON DELETE SET NULL).
    - Deleting a tag removes its note_tags rows (ON DELETE CASCADE).
    Neither ever deletes a note.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from melonotes.database import Base

DEFAULT_COLOR = "#FF69B4"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DEFAULT_COLOR, server_default=DEFAULT_COLOR
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DEFAULT_COLOR, server_default=DEFAULT_COLOR
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
