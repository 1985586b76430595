"""
MELONOTES Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by repositories, storage adapters, services and middleware.

Exception Hierarchy:
    MeloNotesError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthError                → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (duplicate unique name)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── StorageError             → 500 Internal Server Error (generic message)
    └── FileStorageError         → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class MeloNotesError(Exception):
    """
    Base exception for all MELONOTES application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MeloNotesError):
    """
    Raised when client input fails validation.

    Carries an itemized list of violations so a single response can report
    every bad field at once.

    Example response:
        {
            "error": "validation_error",
            "message": "Validation failed",
            "errors": [{"field": "color", "message": "Color must be a hex value"}]
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = errors if errors is not None else (
            [{"field": field, "message": message}] if field else []
        )


class AuthError(MeloNotesError):
    """Missing, malformed, expired or otherwise invalid credentials. HTTP 401."""

    def __init__(
        self,
        message: str = "Invalid token.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MeloNotesError):
    """
    Raised when a requested resource does not exist.

    Storage adapters return None for missing records; repositories convert
    None → NotFoundError so HTTP concerns stay out of the adapters.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(MeloNotesError):
    """A unique constraint (category or tag name, username) would be violated. HTTP 409."""

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(MeloNotesError):
    """
    Raised when the datastore fails unexpectedly.

    The message returned to the client is always generic. Driver details
    (SQL, N1QL statements, connection strings) go to the log only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(MeloNotesError):
    """Could not read or write an uploaded file. HTTP 500."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MeloNotesError):
    """Too many login attempts from one client within the throttle window. HTTP 429."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many login attempts. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
