"""
MELONOTES Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the lifespan connects the storage backend, seeds it and closes it.
Who:   uvicorn (`uvicorn melonotes.main:app` or `python -m melonotes`) and
       the test suite, which passes in its own storage adapter.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → Login Throttle      │
    │               → GZip → CORS                              │
    │                                                          │
    │  Routes:      /api/auth  /api/notes  /api/categories     │
    │               /api/tags  /api/solutions  /api/steps      │
    │               /api/code-snippets  /api/scripts           │
    │               /api/upload  /uploads  /health  /          │
    │                                                          │
    │  Storage:     app.state.storage (relational | document)  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging and report configuration problems
    2. Connect storage (with retries); failure here aborts startup
    3. Create the upload directory
    4. Seed the user, lookup tables and sample notes
    Shutdown:
    1. Close the storage backend
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from melonotes import __version__
from melonotes.config import settings
from melonotes.exceptions import (
    AuthError,
    ConflictError,
    FileStorageError,
    MeloNotesError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from melonotes.middleware.logging import RequestLoggingMiddleware
from melonotes.middleware.rate_limit import LoginRateLimitMiddleware
from melonotes.middleware.request_id import RequestIDMiddleware, request_id_var
from melonotes.routes import auth, health, notes, solutions, taxonomy, uploads
from melonotes.seed import seed
from melonotes.services.file_service import file_service
from melonotes.storage import StorageAdapter, connect_storage, create_storage

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-01-15T12:00:00 [INFO] melonotes.access: GET /api/notes 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("couchbase").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("MELONOTES Backend %s starting up...", __version__)

    for problem in settings.validate_required_for_production():
        logger.warning("Configuration: %s", problem)

    storage: Optional[StorageAdapter] = getattr(app.state, "storage", None)
    if storage is None:
        storage = create_storage(settings)
        app.state.storage = storage

    # StorageError propagates after the last retry; startup fails
    await connect_storage(storage, settings)

    upload_dir = file_service.ensure_upload_dir()
    logger.info("Upload directory: %s", upload_dir)

    if settings.seed_on_startup:
        await seed(storage, settings)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("MELONOTES Backend shutting down...")
    await storage.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, **extra) -> dict:
    body = {"error": error, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    body["request_id"] = request_id_var.get("")
    return body


def _field_path(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts) or "request"


def _clean_message(message: str) -> str:
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to HTTP status codes and the shared error body.

    Handler hierarchy:
        RequestValidationError  → 400 (FastAPI body/query validation)
        ValidationError         → 400
        AuthError               → 401
        NotFoundError           → 404
        ConflictError           → 409
        StorageError            → 500, generic message
        FileStorageError        → 500
        MeloNotesError (base)   → 500
        Exception (fallback)    → 500

    Context dicts of 5xx errors are logged, never returned. Throttled logins
    (429) are answered by LoginRateLimitMiddleware before routing.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_path(err.get("loc", ())), "message": _clean_message(err.get("msg", ""))}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Validation failed", errors=errors),
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, errors=exc.errors or None),
        )

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_error", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content=_error_body("conflict", exc.message))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "[%s] Storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later."
            ),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(MeloNotesError)
    async def handle_application_error(request: Request, exc: MeloNotesError):
        logger.error(
            "[%s] Application error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(storage: Optional[StorageAdapter] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        storage: Adapter to use instead of the one STORAGE_BACKEND names.
                 The lifespan still initializes and closes it.
    """
    app = FastAPI(
        title="MELONOTES API",
        description=(
            "Problem-tracking notes for database work: notes with categories, tags, "
            "solution plans with completable steps, code snippets, scripts and images."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    if storage is not None:
        app.state.storage = storage

    # Added innermost first; execution order is the reverse
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(LoginRateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(taxonomy.router)
    app.include_router(notes.router)
    app.include_router(solutions.router)
    app.include_router(uploads.router)

    return app


app = create_app()
