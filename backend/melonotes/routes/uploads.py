"""
MELONOTES Backend — Upload Route Handlers
===========================================

What:  POST /api/upload stores an image; GET /uploads/{filename} serves it.
How:   Receives multipart form data, delegates validation and writing to
       FileService, and records an Image row when the form names a note.
Who:   The note editor's image picker; <img> tags on the note detail page.

Request Flow (POST /api/upload):
    1. Client sends multipart/form-data with `image`, optional `note_id`
       and `description`
    2. The named note must exist (404 otherwise) before anything is written
    3. FileService validates extension and size, then writes the file
    4. Record the Image; if that fails the written file is removed again
    5. Return 201 with the public URL and the image record, if any

Serving is public so stored URLs can be used directly in <img> tags.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from melonotes.dependencies import Images, Notes, get_current_user
from melonotes.exceptions import ValidationError
from melonotes.schemas.common import ErrorResponse
from melonotes.schemas.note import UploadResponse
from melonotes.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.post(
    "/api/upload",
    status_code=201,
    response_model=UploadResponse,
    dependencies=[Depends(get_current_user)],
    responses={
        400: {"description": "Missing, empty, oversized or unsupported image", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Upload an image, optionally attaching it to a note",
)
async def upload_image(
    notes: Notes,
    images: Images,
    image: Optional[UploadFile] = File(default=None, description="PNG, JPG, JPEG, GIF or WEBP"),
    note_id: Optional[int] = Form(default=None, description="Note to attach the image to"),
    description: Optional[str] = Form(default=None),
) -> UploadResponse:
    if image is None or not image.filename:
        raise ValidationError(message="No image file provided", field="image")

    try:
        if note_id is not None:
            await notes.get_record(note_id)

        content = await image.read()
        logger.info(
            "Received upload: filename=%s, size=%d bytes, note=%s",
            image.filename,
            len(content),
            note_id,
        )
        stored_name, url = await file_service.store(image.filename, content)
    finally:
        await image.close()

    record = None
    if note_id is not None:
        try:
            record = await images.create(note_id, stored_name, description)
        except Exception:
            await file_service.remove(stored_name)
            raise

    return UploadResponse(
        message="Image uploaded successfully",
        url=url,
        filename=stored_name,
        image=record,
    )


@router.get(
    "/uploads/{filename}",
    response_class=FileResponse,
    responses={404: {"description": "No such file", "model": ErrorResponse}},
    summary="Serve a stored image",
)
async def serve_upload(filename: str) -> FileResponse:
    path = file_service.resolve(filename)
    return FileResponse(path, media_type=file_service.media_type(path))
