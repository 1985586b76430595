"""
MELONOTES Backend — File Service Unit Tests
=============================================

What:  Tests for FileService validation, storage and path resolution.
How:   Each test gets its own upload directory under pytest's tmp_path.

Test Strategy:
    ✅ Allowed extensions (.png, .jpg, .jpeg, .gif, .webp), case-insensitive
    ✅ Rejected extensions (.pdf, .exe, none)
    ✅ Empty and oversized content
    ✅ Filename sanitising
    ✅ store() writes under UPLOAD_DIR with a timestamp prefix
    ✅ resolve() refuses traversal and reports missing files
    ✅ remove() deletes stored files and never leaves UPLOAD_DIR
"""

import pytest

from melonotes.config import settings
from melonotes.exceptions import NotFoundError, ValidationError
from melonotes.services.file_service import FileService


class TestFileValidation:
    """Tests for upload validation in FileService."""

    def setup_method(self):
        self.service = FileService()

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize(
        "filename", ["plan.png", "plan.jpg", "plan.jpeg", "plan.gif", "plan.webp"]
    )
    def test_allowed_extensions(self, filename):
        assert self.service._validate_extension(filename) == "." + filename.split(".")[-1]

    def test_extension_check_is_case_insensitive(self):
        assert self.service._validate_extension("Plan.PNG") == ".png"
        assert self.service._validate_extension("plan.Jpeg") == ".jpeg"

    @pytest.mark.parametrize("filename", ["report.pdf", "malware.exe", "noextension"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service._validate_extension(filename)
        assert exc_info.value.field == "image"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service._validate_size(b"x" * 1000)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service._validate_size(b"")

    def test_too_large_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size", 100)
        with pytest.raises(ValidationError, match="too large"):
            self.service._validate_size(b"x" * 101)

    def test_exactly_at_limit_passes(self, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size", 100)
        self.service._validate_size(b"x" * 100)


class TestSanitizeFilename:

    def test_plain_name_kept(self):
        assert FileService.sanitize_filename("query-plan_v2.png") == "query-plan_v2.png"

    def test_directories_dropped(self):
        assert FileService.sanitize_filename("../../etc/passwd.png") == "passwd.png"
        assert FileService.sanitize_filename("C:\\Users\\melo\\shot.jpg") == "shot.jpg"

    def test_unsafe_characters_replaced(self):
        assert FileService.sanitize_filename("index usage (1).png") == "index_usage_1_.png"

    def test_nothing_left_falls_back(self):
        assert FileService.sanitize_filename("...") == "image"


class TestStoreAndResolve:

    @pytest.fixture
    def service(self, tmp_path):
        return FileService(upload_dir=str(tmp_path / "uploads"))

    async def test_store_writes_file(self, service, sample_image_bytes):
        stored_name, url = await service.store("execution plan.png", sample_image_bytes)

        assert stored_name.endswith("-execution_plan.png")
        assert stored_name.split("-", 1)[0].isdigit()
        assert url == f"/uploads/{stored_name}"
        assert (service.upload_dir / stored_name).read_bytes() == sample_image_bytes

    async def test_store_rejects_before_writing(self, service):
        with pytest.raises(ValidationError):
            await service.store("notes.txt", b"hello")
        assert not service.upload_dir.exists() or not any(service.upload_dir.iterdir())

    async def test_resolve_stored_file(self, service, sample_image_bytes):
        stored_name, _ = await service.store("plan.png", sample_image_bytes)
        path = service.resolve(stored_name)
        assert path.name == stored_name
        assert FileService.media_type(path) == "image/png"

    def test_resolve_traversal_rejected(self, service):
        service.ensure_upload_dir()
        with pytest.raises(ValidationError, match="Invalid file path"):
            service.resolve("../secrets.png")

    def test_resolve_missing_file(self, service):
        service.ensure_upload_dir()
        with pytest.raises(NotFoundError):
            service.resolve("1700000000000-missing.png")

    def test_unknown_media_type(self, tmp_path):
        assert FileService.media_type(tmp_path / "blob.bin") == "application/octet-stream"

    async def test_remove_deletes_stored_file(self, service, sample_image_bytes):
        stored_name, _ = await service.store("plan.png", sample_image_bytes)

        assert await service.remove(stored_name) is True
        assert not (service.upload_dir / stored_name).exists()

    async def test_remove_missing_file(self, service):
        service.ensure_upload_dir()
        assert await service.remove("1700000000000-missing.png") is False

    async def test_remove_refuses_paths_outside_upload_dir(self, service, tmp_path):
        service.ensure_upload_dir()
        outside = tmp_path / "keep.png"
        outside.write_bytes(b"x")

        assert await service.remove("../keep.png") is False
        assert outside.exists()
