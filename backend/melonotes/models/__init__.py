"""
ORM models for the relational backend.

Importing this package registers every table with `Base.metadata`, which
RelationalStorage.init() (create_all) and Alembic both depend on.
"""

from melonotes.models.user import User
from melonotes.models.taxonomy import Category, Tag
from melonotes.models.note import Note, NoteTag
from melonotes.models.solution import Solution, Step
from melonotes.models.artifact import CodeSnippet, Script, Image

__all__ = [
    "User",
    "Category",
    "Tag",
    "Note",
    "NoteTag",
    "Solution",
    "Step",
    "CodeSnippet",
    "Script",
    "Image",
]
