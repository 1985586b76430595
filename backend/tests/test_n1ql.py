"""
MELONOTES Backend — N1QL Builder Tests
========================================

What:  The statements CouchbaseKeyspace sends, checked as text.
How:   Pure functions, no cluster needed.
"""

import pytest

from melonotes.storage.base import Query
from melonotes.storage.n1ql import (
    bucket_name,
    build_count,
    build_select,
    build_where,
    identifier,
    index_statements,
)


class TestIdentifiers:

    @pytest.mark.parametrize("name", ["title", "category_id", "_private", "step2"])
    def test_valid_identifiers(self, name):
        assert identifier(name) == name

    @pytest.mark.parametrize("name", ["", "2fast", "title; DROP", "a.b", "`x`"])
    def test_invalid_identifiers(self, name):
        with pytest.raises(ValueError, match="Invalid N1QL identifier"):
            identifier(name)

    def test_bucket_names(self):
        assert bucket_name("melonotes") == "melonotes"
        assert bucket_name("travel-sample") == "travel-sample"
        with pytest.raises(ValueError, match="Invalid bucket name"):
            bucket_name("bad`bucket")


class TestWhere:

    def test_type_only(self):
        where, params = build_where("tag", Query())
        assert where == "d.type = $type"
        assert params == {"type": "tag"}

    def test_equals_values_are_parameters(self):
        where, params = build_where("note", Query.where(status="active", category_id=3))
        assert where == "d.type = $type AND d.status = $eq0 AND d.category_id = $eq1"
        assert params == {"type": "note", "eq0": "active", "eq1": 3}

    def test_equals_none_matches_null_or_missing(self):
        where, params = build_where("note", Query.where(category_id=None))
        assert "(d.category_id IS NULL OR d.category_id IS MISSING)" in where
        assert set(params) == {"type"}

    def test_search_over_fields(self):
        where, params = build_where(
            "note", Query(search="O'Brien", search_fields=("title", "analysis"))
        )
        assert "(CONTAINS(d.title, $search) OR CONTAINS(d.analysis, $search))" in where
        assert params["search"] == "O'Brien"
        assert "O'Brien" not in where

    def test_search_without_fields_ignored(self):
        where, params = build_where("note", Query(search="x"))
        assert where == "d.type = $type"
        assert "search" not in params

    def test_any_of_array_and_scalar(self):
        where, params = build_where(
            "note",
            Query(any_of={"tags": (1, 2), "priority": [4, 5]}),
            array_fields={"tags"},
        )
        assert "ANY v IN d.tags SATISFIES v IN $any0 END" in where
        assert "d.priority IN $any1" in where
        assert params["any0"] == [1, 2]
        assert params["any1"] == [4, 5]

    def test_bad_field_name_rejected(self):
        with pytest.raises(ValueError):
            build_where("note", Query.where(**{"status = 1 OR 1": "x"}))


class TestStatements:

    def test_select_with_order(self):
        statement, params = build_select(
            "melonotes", "note", Query.where(status="active").ordered("-updated_at", "id")
        )
        assert statement == (
            "SELECT d.* FROM `melonotes` AS d WHERE d.type = $type AND d.status = $eq0"
            " ORDER BY d.updated_at DESC, d.id ASC"
        )
        assert params == {"type": "note", "eq0": "active"}

    def test_select_without_order(self):
        statement, _ = build_select("melonotes", "tag", Query())
        assert "ORDER BY" not in statement

    def test_count(self):
        statement, params = build_count("melonotes", "step", Query.where(solution_id=7))
        assert statement == (
            "SELECT RAW COUNT(*) FROM `melonotes` AS d WHERE d.type = $type AND d.solution_id = $eq0"
        )
        assert params == {"type": "step", "eq0": 7}

    def test_index_statements_name_the_bucket(self):
        statements = index_statements("notes_bucket")
        assert statements[0] == "CREATE PRIMARY INDEX IF NOT EXISTS ON `notes_bucket`"
        assert all("`notes_bucket`" in s for s in statements)
        assert any("idx_note_updated" in s for s in statements)
