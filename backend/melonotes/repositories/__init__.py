"""
Entity repositories, one per entity, written against StorageAdapter.
"""

from melonotes.repositories.artifact import (
    CodeSnippetRepository,
    ImageRepository,
    ScriptRepository,
)
from melonotes.repositories.note import NoteRepository
from melonotes.repositories.solution import SolutionRepository, StepRepository
from melonotes.repositories.taxonomy import CategoryRepository, TagRepository
from melonotes.repositories.user import UserRepository

__all__ = [
    "CategoryRepository",
    "CodeSnippetRepository",
    "ImageRepository",
    "NoteRepository",
    "ScriptRepository",
    "SolutionRepository",
    "StepRepository",
    "TagRepository",
    "UserRepository",
]
