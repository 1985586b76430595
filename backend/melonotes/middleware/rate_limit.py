"""
MELONOTES Backend — Login Throttle Middleware
===============================================

What:  Per-IP sliding window limit on POST /api/auth/login.
How:   Keeps the timestamps of recent login attempts per client IP in memory.
       Once an IP has made `max_requests` attempts inside the window, further
       attempts are answered with 429 and a Retry-After header until the
       oldest attempt leaves the window.

Only the login route is throttled; every other route is protected by the
bearer token instead.

Single-process only: each uvicorn worker keeps its own window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from melonotes.config import settings
from melonotes.exceptions import RateLimitExceededError
from melonotes.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"


class LoginRateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window throttle for login attempts.

    Configuration (from settings unless given):
        login_rate_limit_requests: attempts allowed per window (default: 20)
        login_rate_limit_window:   window length in seconds (default: 300)
    """

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.login_rate_limit_requests
        self.window_seconds = window_seconds or settings.login_rate_limit_window
        self._attempts: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path != LOGIN_PATH:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        attempts = [ts for ts in self._attempts[client_ip] if ts > window_start]
        self._attempts[client_ip] = attempts

        if len(attempts) >= self.max_requests:
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            logger.warning(
                "Login throttled for IP %s: %d attempts in %ds window",
                client_ip,
                len(attempts),
                self.window_seconds,
            )
            return self._reject(RateLimitExceededError(retry_after=retry_after))

        attempts.append(now)
        self._forget_idle_clients(window_start)
        return await call_next(request)

    @staticmethod
    def _reject(exc: RateLimitExceededError) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": {"retry_after": exc.retry_after},
                "request_id": request_id_var.get(""),
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    def _forget_idle_clients(self, window_start: float) -> None:
        idle = [
            ip for ip, timestamps in self._attempts.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in idle:
            del self._attempts[ip]
