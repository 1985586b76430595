"""
MELONOTES Backend — Upload Storage Service
============================================

What:  Validates and stores images uploaded through POST /api/upload.
How:   Checks extension, emptiness and size, then writes the bytes with
       aiofiles under UPLOAD_DIR as `<epoch-ms>-<sanitised original name>`.
Who:   The upload route; the file-serving route uses resolve() to map a
       public filename back to a path without leaving UPLOAD_DIR.
       Note deletion and failed uploads call remove().

Security Model:
    1. Extension check:  only common raster image types are accepted
    2. Size check:       bounded by MAX_UPLOAD_SIZE, empty files rejected
    3. Name sanitising:  directory parts dropped, unsafe characters replaced
    4. resolve():        refuses any name that escapes the upload directory
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from melonotes.config import settings
from melonotes.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileService:
    """
    Manages upload validation and storage.

    Directory Structure:
        uploads/
        ├── 1718000000000-query-plan.png
        └── 1718000012345-index_usage.jpg
    """

    def __init__(self, upload_dir: Optional[str] = None):
        """
        Args:
            upload_dir: Override the upload directory (used in tests).
                        If None, settings.upload_dir is read on each use.
        """
        self._upload_dir = upload_dir

    @property
    def upload_dir(self) -> Path:
        return Path(self._upload_dir or settings.upload_dir).resolve()

    def ensure_upload_dir(self) -> Path:
        path = self.upload_dir
        path.mkdir(parents=True, exist_ok=True)
        return path

    # ── Validation ────────────────────────────────────────────────────────

    def _validate_extension(self, filename: str) -> str:
        """Returns the normalized (lowercase) extension or raises ValidationError."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def _validate_size(self, content: bytes) -> None:
        if not content:
            raise ValidationError(message="Uploaded image is empty", field="image")

        if len(content) > settings.max_upload_size:
            max_mb = settings.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"Uploaded image is too large (max {max_mb:.1f}MB)",
                field="image",
                context={"max_size": settings.max_upload_size, "actual_size": len(content)},
            )

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Keep only the base name, with anything outside [A-Za-z0-9._-] replaced by '_'."""
        base = os.path.basename(filename.replace("\\", "/"))
        cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
        return cleaned or "image"

    # ── Storage ───────────────────────────────────────────────────────────

    async def store(self, filename: str, content: bytes) -> Tuple[str, str]:
        """
        Validate and write an upload.

        Returns:
            (stored filename, public URL path such as /uploads/<filename>)

        Raises:
            ValidationError: bad extension, empty or oversized content
            FileStorageError: the file could not be written
        """
        self._validate_extension(filename)
        self._validate_size(content)

        stored_name = f"{int(time.time() * 1000)}-{self.sanitize_filename(filename)}"
        path = self.ensure_upload_dir() / stored_name

        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("Upload stored: %s (%d bytes)", stored_name, len(content))
        return stored_name, f"/uploads/{stored_name}"

    def resolve(self, filename: str) -> Path:
        """
        Map a public filename to its path inside the upload directory.

        Raises:
            ValidationError: the name escapes the upload directory
            NotFoundError: no such file
        """
        root = self.upload_dir
        path = (root / filename).resolve()
        if root not in path.parents:
            raise ValidationError(message="Invalid file path", field="filename")
        if not path.is_file():
            raise NotFoundError(resource="file", resource_id=filename)
        return path

    async def remove(self, filename: str) -> bool:
        """
        Delete a stored upload. Missing files and names outside the upload
        directory are ignored; other failures are logged, not raised.

        Returns:
            True if a file was deleted
        """
        root = self.upload_dir
        path = (root / filename).resolve()
        if root not in path.parents:
            logger.warning("Refusing to remove %s: outside upload directory", filename)
            return False
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.debug("Cleanup: file already gone: %s", filename)
            return False
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", filename, e)
            return False
        logger.info("Cleaned up file: %s", filename)
        return True

    @staticmethod
    def media_type(path: Path) -> str:
        return MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")


file_service = FileService()
