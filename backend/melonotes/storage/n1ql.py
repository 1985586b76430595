"""
MELONOTES Backend — N1QL Statement Builder
============================================

What:  Translates a `Query` into a parameterised N1QL statement.
How:   Pure functions; values always travel as named parameters ($name),
       identifiers (bucket, field names) are checked against a strict
       pattern before being spliced into the statement text.
Who:   CouchbaseKeyspace.

Example:
    build_select("melonotes", "note", Query(search="Index",
                 search_fields=("title",), any_of={"tags": [3]}),
                 array_fields={"tags"})
    →
    SELECT d.* FROM `melonotes` AS d
    WHERE d.type = $type AND (CONTAINS(d.title, $search))
      AND ANY v IN d.tags SATISFIES v IN $any0 END
"""

import re
from typing import AbstractSet, Any, Dict, List, Tuple

from melonotes.storage.base import Query

_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_BUCKET = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.%\-]*$")

# Secondary indexes created on startup; names match the fields they cover
INDEX_STATEMENTS = (
    "CREATE PRIMARY INDEX IF NOT EXISTS ON `{bucket}`",
    "CREATE INDEX IF NOT EXISTS idx_type ON `{bucket}`(type)",
    'CREATE INDEX IF NOT EXISTS idx_user_username ON `{bucket}`(username) WHERE type = "user"',
    'CREATE INDEX IF NOT EXISTS idx_note_category ON `{bucket}`(category_id) WHERE type = "note"',
    'CREATE INDEX IF NOT EXISTS idx_note_status ON `{bucket}`(status) WHERE type = "note"',
    'CREATE INDEX IF NOT EXISTS idx_note_updated ON `{bucket}`(updated_at) WHERE type = "note"',
    'CREATE INDEX IF NOT EXISTS idx_solution_note ON `{bucket}`(note_id) WHERE type = "solution"',
    'CREATE INDEX IF NOT EXISTS idx_step_solution ON `{bucket}`(solution_id) WHERE type = "step"',
    'CREATE INDEX IF NOT EXISTS idx_code_note ON `{bucket}`(note_id) WHERE type = "code_snippet"',
    'CREATE INDEX IF NOT EXISTS idx_script_note ON `{bucket}`(note_id) WHERE type = "script"',
    'CREATE INDEX IF NOT EXISTS idx_image_note ON `{bucket}`(note_id) WHERE type = "image"',
)


def identifier(name: str) -> str:
    if not _FIELD.match(name):
        raise ValueError(f"Invalid N1QL identifier '{name}'")
    return name


def bucket_name(name: str) -> str:
    if not _BUCKET.match(name):
        raise ValueError(f"Invalid bucket name '{name}'")
    return name


def build_where(
    kind: str,
    query: Query,
    array_fields: AbstractSet[str] = frozenset(),
) -> Tuple[str, Dict[str, Any]]:
    """Return the WHERE clause (without the keyword) and its named parameters."""
    clauses: List[str] = ["d.type = $type"]
    params: Dict[str, Any] = {"type": kind}

    for i, (name, value) in enumerate(query.equals.items()):
        field = identifier(name)
        if value is None:
            clauses.append(f"(d.{field} IS NULL OR d.{field} IS MISSING)")
        else:
            param = f"eq{i}"
            clauses.append(f"d.{field} = ${param}")
            params[param] = value

    if query.search and query.search_fields:
        params["search"] = query.search
        parts = " OR ".join(
            f"CONTAINS(d.{identifier(name)}, $search)" for name in query.search_fields
        )
        clauses.append(f"({parts})")

    for i, (name, values) in enumerate(query.any_of.items()):
        field = identifier(name)
        param = f"any{i}"
        params[param] = list(values)
        if name in array_fields:
            clauses.append(f"ANY v IN d.{field} SATISFIES v IN ${param} END")
        else:
            clauses.append(f"d.{field} IN ${param}")

    return " AND ".join(clauses), params


def build_order_by(query: Query) -> str:
    if not query.order_by:
        return ""
    terms = ", ".join(
        f"d.{identifier(name)} {'DESC' if descending else 'ASC'}"
        for name, descending in query.order_by
    )
    return f" ORDER BY {terms}"


def build_select(
    bucket: str,
    kind: str,
    query: Query,
    array_fields: AbstractSet[str] = frozenset(),
) -> Tuple[str, Dict[str, Any]]:
    where, params = build_where(kind, query, array_fields)
    statement = (
        f"SELECT d.* FROM `{bucket_name(bucket)}` AS d WHERE {where}{build_order_by(query)}"
    )
    return statement, params


def build_count(
    bucket: str,
    kind: str,
    query: Query,
    array_fields: AbstractSet[str] = frozenset(),
) -> Tuple[str, Dict[str, Any]]:
    where, params = build_where(kind, query, array_fields)
    return f"SELECT RAW COUNT(*) FROM `{bucket_name(bucket)}` AS d WHERE {where}", params


def index_statements(bucket: str) -> List[str]:
    return [stmt.format(bucket=bucket_name(bucket)) for stmt in INDEX_STATEMENTS]
