"""
MELONOTES Backend — Health Check & Welcome Routes
===================================================

What:  GET /health for monitoring probes; GET / as a short API index.
How:   /health pings the configured storage adapter and reports aggregate status.
Who:   Docker health checks, load balancers, and humans poking at the server.

Status levels:
    - healthy:   storage answered the ping (HTTP 200)
    - unhealthy: storage unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Response

from melonotes import __version__
from melonotes.dependencies import Storage
from melonotes.exceptions import StorageError
from melonotes.schemas.common import HealthResponse, WelcomeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()

ENDPOINTS = [
    "POST /api/auth/login",
    "GET /api/auth/verify",
    "GET|POST /api/categories",
    "PUT|DELETE /api/categories/{id}",
    "GET|POST /api/tags",
    "DELETE /api/tags/{id}",
    "GET|POST /api/notes",
    "GET|PUT|DELETE /api/notes/{id}",
    "POST /api/notes/{id}/solutions",
    "GET|PUT|DELETE /api/solutions/{id}",
    "POST /api/solutions/{id}/steps",
    "PUT|DELETE /api/steps/{id}",
    "POST /api/notes/{id}/code-snippets",
    "PUT|DELETE /api/code-snippets/{id}",
    "POST /api/notes/{id}/scripts",
    "PUT|DELETE /api/scripts/{id}",
    "POST /api/upload",
    "GET /uploads/{filename}",
    "GET /health",
]


@router.get("/", response_model=WelcomeResponse, summary="API index")
async def welcome() -> WelcomeResponse:
    return WelcomeResponse(
        message="Welcome to the MELONOTES API",
        version=__version__,
        endpoints=ENDPOINTS,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Storage unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(storage: Storage, response: Response) -> HealthResponse:
    """
    Ping the storage backend and report aggregate status.

    A ping is a single trivial statement (SELECT 1 / SELECT RAW 1), cheap
    enough to run on every probe.
    """
    storage_status = "connected"
    overall = "healthy"

    try:
        await storage.ping()
    except StorageError as e:
        storage_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: storage unreachable: %s", e.context or e.message)

    return HealthResponse(
        status=overall,
        version=__version__,
        backend=storage.backend,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
