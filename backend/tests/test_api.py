"""
MELONOTES Backend — API Integration Tests
===========================================

What:  End-to-end tests through the HTTP surface.
How:   HTTPX AsyncClient against a seeded app; every test runs once per
       storage backend (see the `storage` fixture in conftest.py).

Test Strategy:
    ✅ Health and welcome
    ✅ Login, verify, token gate, request ids in error bodies
    ✅ Category / tag CRUD with color validation and 409 on duplicates
    ✅ Notes CRUD, filters, `codeSnippets` wire name, seeded sample data
    ✅ Solutions, steps, code snippets, scripts
    ✅ Uploads: store, attach to a note, serve
    ✅ Login throttling
"""

import os
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from melonotes.config import settings
from melonotes.dependencies import NO_TOKEN
from melonotes.exceptions import StorageError
from melonotes.main import create_app
from melonotes.repositories import ImageRepository

SQL_NOTE = "MELO İÇİN ÖZEL - SQL Performance Problemi"
BACKUP_NOTE = "Backup Strategy Optimization"


async def _ids_by_name(client, headers, resource):
    response = await client.get(f"/api/{resource}", headers=headers)
    assert response.status_code == 200
    return {item["name"]: item["id"] for item in response.json()[resource]}


async def _note_id(client, headers, title):
    response = await client.get("/api/notes", headers=headers)
    return next(n["id"] for n in response.json()["notes"] if n["title"] == title)


async def _create_note(client, headers, **fields):
    body = {"title": "Blocking sessions", **fields}
    response = await client.post("/api/notes", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════


class TestHealth:

    async def test_health(self, client, storage):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "connected"
        assert data["backend"] == storage.backend
        assert data["uptime_seconds"] >= 0

    async def test_health_reports_unreachable_storage(self, document_storage):
        document_storage.keyspace.fail_ping = True
        app = create_app(storage=document_storage)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            response = await http.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["storage"] == "disconnected"

    async def test_welcome(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Welcome to the MELONOTES API"
        assert "POST /api/auth/login" in response.json()["endpoints"]


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════


class TestAuth:

    async def test_login(self, client):
        response = await client.post(
            "/api/auth/login", json={"username": "frieren", "password": "MeldaErkan!5352"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["username"] == "frieren"
        assert data["message"] == "Welcome back to MELONOTES, frieren!"

    async def test_wrong_password(self, client):
        response = await client.post(
            "/api/auth/login", json={"username": "frieren", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"
        assert response.json()["message"] == "Invalid credentials"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_unknown_user_same_answer(self, client):
        response = await client.post(
            "/api/auth/login", json={"username": "himmel", "password": "MeldaErkan!5352"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test_missing_password(self, client):
        response = await client.post("/api/auth/login", json={"username": "frieren"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "password"

    async def test_verify(self, client, auth_headers):
        response = await client.get("/api/auth/verify", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "frieren"

    async def test_no_token(self, client):
        response = await client.get("/api/notes")
        assert response.status_code == 401
        assert response.json()["message"] == NO_TOKEN

    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/notes", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token."

    async def test_request_id_echoed_in_header_and_error(self, client):
        response = await client.get("/api/notes", headers={"X-Request-ID": "abc12345"})
        assert response.headers["x-request-id"] == "abc12345"
        assert response.json()["request_id"] == "abc12345"

    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert len(response.headers["x-request-id"]) == 8


# ══════════════════════════════════════════════════════════════════════════
# Categories & Tags
# ══════════════════════════════════════════════════════════════════════════


class TestCategories:

    async def test_seeded_list_sorted(self, client, auth_headers):
        response = await client.get("/api/categories", headers=auth_headers)
        data = response.json()
        names = [c["name"] for c in data["categories"]]
        assert data["total"] == 5
        assert names == sorted(names)
        assert "Backup & Recovery" in names

    async def test_create_with_default_color(self, client, auth_headers):
        response = await client.post(
            "/api/categories", json={"name": "Replikasyon"}, headers=auth_headers
        )
        assert response.status_code == 201
        assert response.json()["color"] == "#FF69B4"
        assert response.json()["message"] == "Category created successfully"

    async def test_bad_color(self, client, auth_headers):
        response = await client.post(
            "/api/categories", json={"name": "Renkli", "color": "pink"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "color", "message": "Color must be a valid hex color"}
        ]

    async def test_blank_name(self, client, auth_headers):
        response = await client.post(
            "/api/categories", json={"name": "   "}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "name"

    async def test_duplicate_name(self, client, auth_headers):
        response = await client.post(
            "/api/categories", json={"name": "Güvenlik"}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    async def test_update_and_delete(self, client, auth_headers):
        created = (
            await client.post("/api/categories", json={"name": "Temp"}, headers=auth_headers)
        ).json()

        response = await client.put(
            f"/api/categories/{created['id']}", json={"color": "#123456"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Temp"
        assert response.json()["color"] == "#123456"

        response = await client.delete(f"/api/categories/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        response = await client.delete(f"/api/categories/{created['id']}", headers=auth_headers)
        assert response.status_code == 404

    async def test_deleting_category_keeps_notes(self, client, auth_headers):
        categories = await _ids_by_name(client, auth_headers, "categories")
        backup_id = await _note_id(client, auth_headers, BACKUP_NOTE)

        await client.delete(
            f"/api/categories/{categories['Backup & Recovery']}", headers=auth_headers
        )

        note = (await client.get(f"/api/notes/{backup_id}", headers=auth_headers)).json()
        assert note["title"] == BACKUP_NOTE
        assert note["category_name"] is None
        assert note["category_id"] is None

        response = await client.get(
            "/api/notes",
            params={"category": categories["Backup & Recovery"]},
            headers=auth_headers,
        )
        assert response.json()["notes"] == []


class TestTags:

    async def test_seeded_tags(self, client, auth_headers):
        tags = await _ids_by_name(client, auth_headers, "tags")
        assert len(tags) == 15
        assert "MSSQL" in tags

    async def test_duplicate(self, client, auth_headers):
        response = await client.post("/api/tags", json={"name": "MSSQL"}, headers=auth_headers)
        assert response.status_code == 409

    async def test_create_and_delete(self, client, auth_headers):
        response = await client.post(
            "/api/tags", json={"name": "Deadlock", "color": "#abc"}, headers=auth_headers
        )
        assert response.status_code == 201
        tag_id = response.json()["id"]

        response = await client.delete(f"/api/tags/{tag_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Tag deleted successfully"

    async def test_deleted_tag_disappears_from_notes(self, client, auth_headers):
        tags = await _ids_by_name(client, auth_headers, "tags")
        sql_id = await _note_id(client, auth_headers, SQL_NOTE)

        await client.delete(f"/api/tags/{tags['Indexing']}", headers=auth_headers)

        note = (await client.get(f"/api/notes/{sql_id}", headers=auth_headers)).json()
        assert "Indexing" not in [t["name"] for t in note["tags"]]
        assert "MSSQL" in [t["name"] for t in note["tags"]]

        response = await client.get(
            "/api/notes", params={"tags": str(tags["Indexing"])}, headers=auth_headers
        )
        assert response.json()["notes"] == []


# ══════════════════════════════════════════════════════════════════════════
# Notes
# ══════════════════════════════════════════════════════════════════════════


class TestNotes:

    async def test_seeded_notes(self, client, auth_headers):
        response = await client.get("/api/notes", headers=auth_headers)
        data = response.json()
        assert data["total"] == 2
        assert {n["title"] for n in data["notes"]} == {SQL_NOTE, BACKUP_NOTE}

    async def test_seeded_sql_note_detail(self, client, auth_headers):
        note_id = await _note_id(client, auth_headers, SQL_NOTE)
        response = await client.get(f"/api/notes/{note_id}", headers=auth_headers)
        assert response.status_code == 200
        note = response.json()

        assert note["category_name"] == "Database Performance"
        assert note["priority"] == 3
        assert {t["name"] for t in note["tags"]} >= {"MSSQL", "Performance"}
        assert len(note["solutions"]) >= 1
        assert len(note["solutions"][0]["steps"]) >= 1
        assert note["solutions"][0]["plan_type"].startswith("Plan A")
        assert note["codeSnippets"]
        assert "code_snippets" not in note
        assert note["scripts"]

    async def test_search(self, client, auth_headers):
        response = await client.get(
            "/api/notes", params={"search": "Performance"}, headers=auth_headers
        )
        assert SQL_NOTE in [n["title"] for n in response.json()["notes"]]

    async def test_filter_by_category(self, client, auth_headers):
        categories = await _ids_by_name(client, auth_headers, "categories")
        response = await client.get(
            "/api/notes",
            params={"category": categories["Backup & Recovery"]},
            headers=auth_headers,
        )
        assert [n["title"] for n in response.json()["notes"]] == [BACKUP_NOTE]

    async def test_filter_by_tags(self, client, auth_headers):
        tags = await _ids_by_name(client, auth_headers, "tags")

        response = await client.get(
            "/api/notes", params={"tags": str(tags["MSSQL"])}, headers=auth_headers
        )
        assert response.json()["total"] == 2

        response = await client.get(
            "/api/notes",
            params={"tags": f"{tags['Backup']}, {tags['Redis']}"},
            headers=auth_headers,
        )
        assert [n["title"] for n in response.json()["notes"]] == [BACKUP_NOTE]

    async def test_bad_tag_filter(self, client, auth_headers):
        response = await client.get("/api/notes", params={"tags": "1,two"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "tags"

    async def test_bad_status_filter(self, client, auth_headers):
        response = await client.get(
            "/api/notes", params={"status": "deleted"}, headers=auth_headers
        )
        assert response.status_code == 400

    async def test_create_full_note(self, client, auth_headers):
        tags = await _ids_by_name(client, auth_headers, "tags")
        categories = await _ids_by_name(client, auth_headers, "categories")

        note = await _create_note(
            client,
            auth_headers,
            problem="Report queries time out",
            category_id=categories["SQL Sorgulama"],
            tags=[tags["Redis"], tags["MSSQL"]],
            priority=4,
            solutions=[
                {"description": "Kill the blocker", "steps": [{"description": "Find it"}]},
                {"description": "Add RCSI"},
            ],
            codeSnippets=[{"title": "Blockers", "code": "EXEC sp_who2;"}],
            scripts=[{"content": "echo done", "script_type": "bash"}],
        )

        assert note["message"] == "Note created successfully"
        assert note["category_name"] == "SQL Sorgulama"
        assert [t["name"] for t in note["tags"]] == ["Redis", "MSSQL"]
        assert [s["plan_type"] for s in note["solutions"]] == ["Plan A", "Plan B"]
        assert note["solutions"][0]["steps"][0]["step_number"] == 1
        assert note["codeSnippets"][0]["code"] == "EXEC sp_who2;"
        assert note["codeSnippets"][0]["language"] == "sql"
        assert note["scripts"][0]["content"] == "echo done"

        fetched = (await client.get(f"/api/notes/{note['id']}", headers=auth_headers)).json()
        assert fetched["codeSnippets"] == note["codeSnippets"]

    async def test_snake_case_snippets_accepted(self, client, auth_headers):
        note = await _create_note(client, auth_headers, code_snippets=[{"code": "SELECT 1"}])
        assert note["codeSnippets"][0]["code"] == "SELECT 1"

    @pytest.mark.parametrize(
        "body,field",
        [
            ({"title": "x", "priority": 9}, "priority"),
            ({"title": "x", "status": "done"}, "status"),
            ({"problem": "untitled"}, "title"),
            ({"title": "   "}, "title"),
        ],
    )
    async def test_invalid_body(self, client, auth_headers, body, field):
        response = await client.post("/api/notes", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert field in [e["field"] for e in response.json()["errors"]]

    async def test_unknown_tag_rejected(self, client, auth_headers):
        response = await client.post(
            "/api/notes", json={"title": "x", "tags": [99999]}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "tags"

    async def test_update(self, client, auth_headers):
        note = await _create_note(client, auth_headers, problem="waits", priority=2)

        response = await client.put(
            f"/api/notes/{note['id']}",
            json={"status": "completed", "problem": None},
            headers=auth_headers,
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["status"] == "completed"
        assert updated["problem"] is None
        assert updated["priority"] == 2
        assert updated["message"] == "Note updated successfully"

    async def test_update_missing(self, client, auth_headers):
        response = await client.put(
            "/api/notes/99999", json={"title": "ghost"}, headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_delete(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{"steps": [{}]}])

        response = await client.delete(f"/api/notes/{note['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Note deleted successfully"

        response = await client.get(f"/api/notes/{note['id']}", headers=auth_headers)
        assert response.status_code == 404
        response = await client.get(
            f"/api/solutions/{note['solutions'][0]['id']}", headers=auth_headers
        )
        assert response.status_code == 404

    async def test_title_kept_as_submitted(self, client, auth_headers):
        note = await _create_note(client, auth_headers, title="  Slow query  ")

        fetched = (await client.get(f"/api/notes/{note['id']}", headers=auth_headers)).json()
        assert fetched["title"] == "  Slow query  "


# ══════════════════════════════════════════════════════════════════════════
# Solutions, Steps, Snippets, Scripts
# ══════════════════════════════════════════════════════════════════════════


class TestNoteChildren:

    async def test_add_solution_gets_next_label(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{}, {}])

        response = await client.post(
            f"/api/notes/{note['id']}/solutions",
            json={"description": "Partition the table", "steps": [{"description": "Plan"}]},
            headers=auth_headers,
        )
        assert response.status_code == 201
        solution = response.json()
        assert solution["plan_type"] == "Plan C"
        assert solution["priority"] == 3
        assert solution["steps"][0]["description"] == "Plan"

    async def test_solution_for_missing_note(self, client, auth_headers):
        response = await client.post(
            "/api/notes/99999/solutions", json={}, headers=auth_headers
        )
        assert response.status_code == 404

    async def test_update_solution(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{"description": "old"}])
        solution_id = note["solutions"][0]["id"]

        response = await client.put(
            f"/api/solutions/{solution_id}",
            json={"reasoning": "Lowest risk", "plan_type": None},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["reasoning"] == "Lowest risk"
        assert response.json()["plan_type"] == "Plan A"
        assert response.json()["description"] == "old"

    async def test_steps(self, client, auth_headers):
        note = await _create_note(
            client, auth_headers, solutions=[{"steps": [{"description": "one"}]}]
        )
        solution_id = note["solutions"][0]["id"]

        response = await client.post(
            f"/api/solutions/{solution_id}/steps",
            json={"description": "two"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        step = response.json()
        assert step["step_number"] == 2
        assert step["completed"] is False

        response = await client.put(
            f"/api/steps/{step['id']}", json={"completed": True}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["completed"] is True

        solution = (
            await client.get(f"/api/solutions/{solution_id}", headers=auth_headers)
        ).json()
        assert [s["completed"] for s in solution["steps"]] == [False, True]

        response = await client.delete(f"/api/steps/{step['id']}", headers=auth_headers)
        assert response.status_code == 200

    async def test_step_update_requires_completed(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{"steps": [{}]}])
        step_id = note["solutions"][0]["steps"][0]["id"]
        response = await client.put(f"/api/steps/{step_id}", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "completed"

    async def test_missing_step(self, client, auth_headers):
        response = await client.put(
            "/api/steps/99999", json={"completed": True}, headers=auth_headers
        )
        assert response.status_code == 404

    async def test_code_snippets(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{}])
        solution_id = note["solutions"][0]["id"]

        response = await client.post(
            f"/api/notes/{note['id']}/code-snippets",
            json={"code": "SELECT 1", "solution_id": solution_id},
            headers=auth_headers,
        )
        assert response.status_code == 201
        snippet = response.json()
        assert snippet["language"] == "sql"
        assert snippet["execution_order"] == 1

        response = await client.put(
            f"/api/code-snippets/{snippet['id']}",
            json={"language": "tsql", "code": "SELECT 2"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["code"] == "SELECT 2"
        assert response.json()["solution_id"] == solution_id

        response = await client.delete(
            f"/api/code-snippets/{snippet['id']}", headers=auth_headers
        )
        assert response.status_code == 200

    async def test_snippet_solution_must_share_note(self, client, auth_headers):
        owner = await _create_note(client, auth_headers, solutions=[{}])
        other = await _create_note(client, auth_headers, title="Other")

        response = await client.post(
            f"/api/notes/{other['id']}/code-snippets",
            json={"code": "SELECT 1", "solution_id": owner["solutions"][0]["id"]},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "solution_id"

    async def test_scripts(self, client, auth_headers):
        note = await _create_note(client, auth_headers, scripts=[{"content": "first"}])

        response = await client.post(
            f"/api/notes/{note['id']}/scripts",
            json={"title": "Restart", "content": "systemctl restart mssql-server"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        script = response.json()
        assert script["script_type"] == "bash"
        assert script["execution_order"] == 2

        response = await client.put(
            f"/api/scripts/{script['id']}",
            json={"script_type": "powershell"},
            headers=auth_headers,
        )
        assert response.json()["script_type"] == "powershell"
        assert response.json()["content"] == "systemctl restart mssql-server"

        response = await client.delete(f"/api/scripts/{script['id']}", headers=auth_headers)
        assert response.status_code == 200
        response = await client.delete(f"/api/scripts/{script['id']}", headers=auth_headers)
        assert response.status_code == 404

    async def test_delete_solution_takes_its_artifacts(self, client, auth_headers):
        note = await _create_note(client, auth_headers, solutions=[{"steps": [{}]}, {}])
        solution_id = note["solutions"][0]["id"]
        await client.post(
            f"/api/notes/{note['id']}/scripts",
            json={"content": "echo linked", "solution_id": solution_id},
            headers=auth_headers,
        )
        await client.post(
            f"/api/notes/{note['id']}/scripts",
            json={"content": "echo loose"},
            headers=auth_headers,
        )

        response = await client.delete(f"/api/solutions/{solution_id}", headers=auth_headers)
        assert response.status_code == 200

        fetched = (await client.get(f"/api/notes/{note['id']}", headers=auth_headers)).json()
        assert [s["id"] for s in fetched["solutions"]] == [note["solutions"][1]["id"]]
        assert [s["content"] for s in fetched["scripts"]] == ["echo loose"]


# ══════════════════════════════════════════════════════════════════════════
# Uploads
# ══════════════════════════════════════════════════════════════════════════


class TestUploads:

    async def test_upload_attach_and_serve(self, client, auth_headers, sample_image_bytes):
        note = await _create_note(client, auth_headers)

        response = await client.post(
            "/api/upload",
            files={"image": ("query plan.png", sample_image_bytes, "image/png")},
            data={"note_id": str(note["id"]), "description": "Execution plan"},
            headers=auth_headers,
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["message"] == "Image uploaded successfully"
        assert data["url"] == f"/uploads/{data['filename']}"
        assert data["filename"].endswith("-query_plan.png")
        assert data["image"]["note_id"] == note["id"]
        assert data["image"]["url"] == data["url"]

        served = await client.get(data["url"])
        assert served.status_code == 200
        assert served.content == sample_image_bytes
        assert served.headers["content-type"] == "image/png"

        fetched = (await client.get(f"/api/notes/{note['id']}", headers=auth_headers)).json()
        assert [i["description"] for i in fetched["images"]] == ["Execution plan"]

    async def test_deleting_note_removes_its_files(self, client, auth_headers, sample_image_bytes):
        note = await _create_note(client, auth_headers)
        response = await client.post(
            "/api/upload",
            files={"image": ("waits.png", sample_image_bytes, "image/png")},
            data={"note_id": str(note["id"])},
            headers=auth_headers,
        )
        url = response.json()["url"]

        await client.delete(f"/api/notes/{note['id']}", headers=auth_headers)

        assert (await client.get(url)).status_code == 404

    async def test_failed_attach_leaves_no_file(
        self, client, auth_headers, sample_image_bytes, monkeypatch
    ):
        note = await _create_note(client, auth_headers)
        monkeypatch.setattr(ImageRepository, "create", AsyncMock(side_effect=StorageError()))
        before = set(os.listdir(settings.upload_dir))

        response = await client.post(
            "/api/upload",
            files={"image": ("locks.png", sample_image_bytes, "image/png")},
            data={"note_id": str(note["id"])},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert set(os.listdir(settings.upload_dir)) == before

    async def test_upload_without_note(self, client, auth_headers, sample_image_bytes):
        response = await client.post(
            "/api/upload",
            files={"image": ("diagram.webp", sample_image_bytes, "image/webp")},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["image"] is None

    async def test_no_file(self, client, auth_headers):
        response = await client.post(
            "/api/upload", data={"description": "nothing"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No image file provided"

    async def test_unsupported_type(self, client, auth_headers):
        response = await client.post(
            "/api/upload",
            files={"image": ("report.pdf", b"%PDF-1.7", "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "not supported" in response.json()["message"]

    async def test_unknown_note(self, client, auth_headers, sample_image_bytes):
        response = await client.post(
            "/api/upload",
            files={"image": ("plan.png", sample_image_bytes, "image/png")},
            data={"note_id": "99999"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    async def test_requires_token(self, client, sample_image_bytes):
        response = await client.post(
            "/api/upload", files={"image": ("plan.png", sample_image_bytes, "image/png")}
        )
        assert response.status_code == 401

    async def test_serve_missing(self, client):
        response = await client.get("/uploads/1700000000000-missing.png")
        assert response.status_code == 404


# ══════════════════════════════════════════════════════════════════════════
# Login Throttle
# ══════════════════════════════════════════════════════════════════════════


class TestLoginThrottle:

    async def test_too_many_attempts(self, seeded_storage, monkeypatch):
        monkeypatch.setattr(settings, "login_rate_limit_requests", 3)
        app = create_app(storage=seeded_storage)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            for _ in range(3):
                response = await http.post(
                    "/api/auth/login", json={"username": "frieren", "password": "wrong"}
                )
                assert response.status_code == 401

            response = await http.post(
                "/api/auth/login",
                json={"username": "frieren", "password": "MeldaErkan!5352"},
                headers={"X-Request-ID": "throttle"},
            )
            assert response.status_code == 429
            body = response.json()
            assert body["error"] == "rate_limit_exceeded"
            assert body["request_id"] == "throttle"
            assert int(response.headers["retry-after"]) == body["details"]["retry_after"] > 0

            # other routes are not throttled
            response = await http.get("/health")
            assert response.status_code == 200
