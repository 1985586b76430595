"""
MELONOTES Backend — Note Model
================================

What:  ORM model for the `notes` table and its `note_tags` join table.
How:   Inherits from DeclarativeBase; RelationalStorage maps a note record's
       `tags` list onto note_tags rows, ordered by the join row id so the
       order a client submitted tags in is the order it reads them back.
Who:   RelationalStorage, Alembic.

Indexes:
    - updated_at: the notes list is always ordered by it, newest first
    - category_id / status: the two exact-match list filters
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from melonotes.database import Base

NOTE_STATUSES = ("active", "completed", "archived")


class Note(Base):
    """
    A tracked technical problem; the root of the entity graph.

    Owns solutions, code snippets, scripts and images (all ON DELETE CASCADE).
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    problem: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    problem_definition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    analysis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    why_solution_a: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    why_switch_to_b: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", server_default="active"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_notes_priority_range"),
        CheckConstraint(
            "status IN ('active', 'completed', 'archived')", name="ck_notes_status_valid"
        ),
        Index("idx_notes_updated_at", "updated_at"),
        Index("idx_notes_category_id", "category_id"),
        Index("idx_notes_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title[:30]}', status='{self.status}')>"


class NoteTag(Base):
    __tablename__ = "note_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("note_id", "tag_id", name="uq_note_tags_pair"),
        Index("idx_note_tags_tag_id", "tag_id"),
    )
