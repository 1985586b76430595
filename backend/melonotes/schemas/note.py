"""
MELONOTES Backend — Note Request/Response Schemas
===================================================

What:  Pydantic models for notes and everything a note owns (solutions,
       steps, code snippets, scripts, images).
How:   FastAPI validates request bodies against the *Create / *Update
       models and serializes responses through the *Out models. Any
       validation failure is answered with a 400 listing every bad field.

Wire naming:
    Code snippets travel as `codeSnippets` in JSON (both directions);
    `code_snippets` is also accepted on input.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from melonotes.schemas.common import NonBlankStr
from melonotes.schemas.taxonomy import TagOut

NoteStatus = Literal["active", "completed", "archived"]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class StepCreate(BaseModel):
    description: str = ""
    step_number: Optional[int] = Field(default=None, ge=1, description="Defaults to position + 1")
    completed: bool = False


class StepUpdate(BaseModel):
    completed: bool = Field(description="New completion state")


class SolutionCreate(BaseModel):
    plan_type: Optional[str] = Field(default=None, max_length=100, description="Defaults to 'Plan A', 'Plan B', ...")
    description: Optional[str] = None
    reasoning: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1, description="Defaults to position + 1")
    steps: List[StepCreate] = Field(default_factory=list)


class SolutionUpdate(BaseModel):
    plan_type: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    reasoning: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1)


class CodeSnippetCreate(BaseModel):
    solution_id: Optional[int] = None
    title: Optional[str] = Field(default=None, max_length=255)
    language: Optional[str] = Field(default=None, max_length=50, description="Defaults to 'sql'")
    code: str = ""
    description: Optional[str] = None
    execution_order: Optional[int] = Field(default=None, ge=1)


class CodeSnippetUpdate(BaseModel):
    solution_id: Optional[int] = None
    title: Optional[str] = Field(default=None, max_length=255)
    language: Optional[str] = Field(default=None, max_length=50)
    code: Optional[str] = None
    description: Optional[str] = None
    execution_order: Optional[int] = Field(default=None, ge=1)


class ScriptCreate(BaseModel):
    solution_id: Optional[int] = None
    title: Optional[str] = Field(default=None, max_length=255)
    script_type: Optional[str] = Field(default=None, max_length=50, description="Defaults to 'bash'")
    content: str = ""
    description: Optional[str] = None
    execution_order: Optional[int] = Field(default=None, ge=1)


class ScriptUpdate(BaseModel):
    solution_id: Optional[int] = None
    title: Optional[str] = Field(default=None, max_length=255)
    script_type: Optional[str] = Field(default=None, max_length=50)
    content: Optional[str] = None
    description: Optional[str] = None
    execution_order: Optional[int] = Field(default=None, ge=1)


class NoteCreate(BaseModel):
    """
    What:  Body of POST /api/notes.
    How:   Nested solutions (with steps), code snippets and scripts are
           created together with the note, in the order given.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: NonBlankStr = Field(max_length=255)
    problem: Optional[str] = None
    problem_definition: Optional[str] = None
    analysis: Optional[str] = None
    why_solution_a: Optional[str] = None
    why_switch_to_b: Optional[str] = None
    category_id: Optional[int] = None
    priority: int = Field(default=1, ge=1, le=5)
    status: NoteStatus = "active"
    tags: List[int] = Field(default_factory=list, description="Tag ids")
    solutions: List[SolutionCreate] = Field(default_factory=list)
    code_snippets: List[CodeSnippetCreate] = Field(
        default_factory=list,
        validation_alias=AliasChoices("codeSnippets", "code_snippets"),
    )
    scripts: List[ScriptCreate] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """
    Body of PUT /api/notes/{id}. Only the fields present are changed;
    `tags` replaces the whole tag set; null clears an optional field.
    """
    title: Optional[NonBlankStr] = Field(default=None, max_length=255)
    problem: Optional[str] = None
    problem_definition: Optional[str] = None
    analysis: Optional[str] = None
    why_solution_a: Optional[str] = None
    why_switch_to_b: Optional[str] = None
    category_id: Optional[int] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    status: Optional[NoteStatus] = None
    tags: Optional[List[int]] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class StepOut(BaseModel):
    id: int
    solution_id: int
    step_number: int
    description: str
    completed: bool


class SolutionOut(BaseModel):
    id: int
    note_id: int
    plan_type: str
    description: Optional[str] = None
    reasoning: Optional[str] = None
    priority: int
    steps: List[StepOut] = Field(default_factory=list)


class CodeSnippetOut(BaseModel):
    id: int
    note_id: int
    solution_id: Optional[int] = None
    title: Optional[str] = None
    language: str
    code: str
    description: Optional[str] = None
    execution_order: int


class ScriptOut(BaseModel):
    id: int
    note_id: int
    solution_id: Optional[int] = None
    title: Optional[str] = None
    script_type: str
    content: str
    description: Optional[str] = None
    execution_order: int


class ImageOut(BaseModel):
    id: int
    note_id: int
    filename: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def url(self) -> str:
        return f"/uploads/{self.filename}"


class NoteSummary(BaseModel):
    """A note as it appears in GET /api/notes: tags resolved, children omitted."""
    id: int
    title: str
    problem: Optional[str] = None
    problem_definition: Optional[str] = None
    analysis: Optional[str] = None
    why_solution_a: Optional[str] = None
    why_switch_to_b: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    priority: int
    status: str
    tags: List[TagOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class NoteDetail(NoteSummary):
    solutions: List[SolutionOut] = Field(default_factory=list)
    code_snippets: List[CodeSnippetOut] = Field(
        default_factory=list,
        validation_alias=AliasChoices("code_snippets", "codeSnippets"),
        serialization_alias="codeSnippets",
    )
    scripts: List[ScriptOut] = Field(default_factory=list)
    images: List[ImageOut] = Field(default_factory=list)


class NoteResponse(NoteDetail):
    message: str


class NoteListResponse(BaseModel):
    notes: List[NoteSummary]
    total: int
    message: str


class SolutionResponse(SolutionOut):
    message: str


class StepResponse(StepOut):
    message: str


class CodeSnippetResponse(CodeSnippetOut):
    message: str


class ScriptResponse(ScriptOut):
    message: str


class UploadResponse(BaseModel):
    message: str
    url: str = Field(description="Public path of the stored image")
    filename: str
    image: Optional[ImageOut] = Field(
        default=None, description="Image record, when the upload named a note"
    )
