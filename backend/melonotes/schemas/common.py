"""
MELONOTES Backend — Shared Schema Pieces
==========================================

What:  Field types and response models used across every resource.
Who:   The other schema modules and route handlers.

Response shape:
    Success bodies are the payload fields plus a human-readable `message`.
    Error bodies follow ErrorResponse.
"""

import re
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, Field

# 3, 4, 6 or 8 hex digits with an optional leading '#'
_HEX_COLOR = re.compile(r"^#?([0-9A-Fa-f]{3}|[0-9A-Fa-f]{4}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


def _check_hex_color(value: str) -> str:
    if not _HEX_COLOR.match(value):
        raise ValueError("Color must be a valid hex color")
    return value


def _check_not_blank(value: str) -> str:
    # stored as submitted
    if not value.strip():
        raise ValueError("Must not be empty")
    return value


HexColor = Annotated[str, AfterValidator(_check_hex_color)]
NonBlankStr = Annotated[str, AfterValidator(_check_not_blank)]


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome")


class FieldError(BaseModel):
    field: str = Field(description="Dotted path of the offending field")
    message: str = Field(description="What is wrong with it")


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    Example:
        {
            "error": "validation_error",
            "message": "Validation failed",
            "errors": [{"field": "priority", "message": "Input should be less than or equal to 5"}],
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None, description="Itemized validation errors")
    details: Optional[Dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    backend: str = Field(description="relational or document")
    storage: str = Field(description="connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class WelcomeResponse(BaseModel):
    message: str
    version: str
    endpoints: List[str]
