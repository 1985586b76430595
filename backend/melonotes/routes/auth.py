"""
MELONOTES Backend — Authentication Routes
===========================================

What:  POST /api/auth/login (public) and GET /api/auth/verify (token required).
How:   Login checks the bcrypt hash through AuthService and issues a JWT;
       verify simply echoes the user carried by a valid token.
Who:   The frontend login screen and its session-restore check on load.

Repeated login attempts from one client are throttled by
LoginRateLimitMiddleware before they reach this handler.
"""

import logging

from fastapi import APIRouter

from melonotes.dependencies import CurrentUser, Users
from melonotes.schemas.auth import LoginRequest, LoginResponse, UserOut, VerifyResponse
from melonotes.schemas.common import ErrorResponse
from melonotes.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many login attempts", "model": ErrorResponse},
    },
    summary="Exchange username and password for a bearer token",
)
async def login(body: LoginRequest, users: Users) -> LoginResponse:
    user = await auth_service.authenticate(users, body.username, body.password)
    token = auth_service.create_access_token(user)
    logger.info("User '%s' logged in", user["username"])
    return LoginResponse(
        message=f"Welcome back to MELONOTES, {user['username']}!",
        token=token,
        user=UserOut(id=user["id"], username=user["username"]),
    )


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Check that the bearer token is still valid",
)
async def verify(user: CurrentUser) -> VerifyResponse:
    return VerifyResponse(message="Token is valid", user=UserOut(**user))
