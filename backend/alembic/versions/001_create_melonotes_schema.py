"""Create MELONOTES schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates users, categories, tags, notes, note_tags, solutions, steps,
       code_snippets, scripts and images.
How:   Integer autoincrement keys throughout; children reference their owner
       with ON DELETE CASCADE, notes reference categories with SET NULL.

Rollback: downgrade() drops every table (destructive, all data lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_COLOR = "#FF69B4"


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("password", sa.String(255), nullable=False),
        _created_at(),
    )

    for table in ("categories", "tags"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(100), nullable=False, unique=True),
            sa.Column("color", sa.String(16), nullable=False, server_default=DEFAULT_COLOR),
            _created_at(),
        )

    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("problem", sa.Text(), nullable=True),
        sa.Column("problem_definition", sa.Text(), nullable=True),
        sa.Column("analysis", sa.Text(), nullable=True),
        sa.Column("why_solution_a", sa.Text(), nullable=True),
        sa.Column("why_switch_to_b", sa.Text(), nullable=True),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("priority BETWEEN 1 AND 5", name="ck_notes_priority_range"),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'archived')", name="ck_notes_status_valid"
        ),
    )
    op.create_index("idx_notes_updated_at", "notes", ["updated_at"])
    op.create_index("idx_notes_category_id", "notes", ["category_id"])
    op.create_index("idx_notes_status", "notes", ["status"])

    op.create_table(
        "note_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "note_id", sa.Integer(), sa.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "tag_id", sa.Integer(), sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
        ),
        sa.UniqueConstraint("note_id", "tag_id", name="uq_note_tags_pair"),
    )
    op.create_index("idx_note_tags_tag_id", "note_tags", ["tag_id"])

    op.create_table(
        "solutions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "note_id", sa.Integer(), sa.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("plan_type", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("idx_solutions_note_id", "solutions", ["note_id"])

    op.create_table(
        "steps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "solution_id",
            sa.Integer(),
            sa.ForeignKey("solutions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("idx_steps_solution_id", "steps", ["solution_id"])

    for table, kind_column, kind_default, body_column in (
        ("code_snippets", "language", "sql", "code"),
        ("scripts", "script_type", "bash", "content"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "note_id",
                sa.Integer(),
                sa.ForeignKey("notes.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "solution_id",
                sa.Integer(),
                sa.ForeignKey("solutions.id", ondelete="CASCADE"),
                nullable=True,
            ),
            sa.Column("title", sa.String(255), nullable=True),
            sa.Column(kind_column, sa.String(50), nullable=False, server_default=kind_default),
            sa.Column(body_column, sa.Text(), nullable=False, server_default=""),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("execution_order", sa.Integer(), nullable=False, server_default="1"),
        )
        op.create_index(f"idx_{table}_note_id", table, ["note_id"])

    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "note_id", sa.Integer(), sa.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("idx_images_note_id", "images", ["note_id"])


def downgrade() -> None:
    for table in (
        "images",
        "scripts",
        "code_snippets",
        "steps",
        "solutions",
        "note_tags",
        "notes",
        "tags",
        "categories",
        "users",
    ):
        op.drop_table(table)
