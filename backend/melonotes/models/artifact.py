"""Code snippets, scripts and uploaded images owned by a note."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from melonotes.database import Base


class CodeSnippet(Base):
    __tablename__ = "code_snippets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    solution_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("solutions.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    language: Mapped[str] = mapped_column(
        String(50), nullable=False, default="sql", server_default="sql"
    )
    code: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    execution_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )

    __table_args__ = (Index("idx_code_snippets_note_id", "note_id"),)


class Script(Base):
    __tablename__ = "scripts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    solution_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("solutions.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    script_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="bash", server_default="bash"
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    execution_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )

    __table_args__ = (Index("idx_scripts_note_id", "note_id"),)


class Image(Base):
    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    # Name under UPLOAD_DIR, served at /uploads/<filename>
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("idx_images_note_id", "note_id"),)
