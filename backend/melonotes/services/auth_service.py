"""
MELONOTES Backend — Authentication Service
============================================

What:  Password hashing, credential checks and bearer-token issue/verify.
How:   bcrypt for password hashes; python-jose for HS256 JWTs carrying
       `user_id`, `username` and `exp` (24 hours by default).
Who:   The login route, the get_current_user dependency and the seeder.

Failure messages:
    Login failures never say which half of the credentials was wrong.
    Token failures collapse to "Invalid token." whatever the cause
    (bad signature, expired, malformed, missing claims).
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from melonotes.config import Settings, settings as default_settings
from melonotes.exceptions import AuthError
from melonotes.repositories.base import utcnow
from melonotes.repositories.user import UserRepository
from melonotes.storage.base import Record

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_TOKEN = "Invalid token."


class AuthService:
    """Stateless helper bound to the settings it signs and hashes with."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.warning("Stored password is not a valid bcrypt hash")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def create_access_token(
        self, user: Record, expires_delta: Optional[timedelta] = None
    ) -> str:
        expire = utcnow() + (expires_delta or timedelta(hours=self._settings.jwt_expire_hours))
        claims = {
            "user_id": user["id"],
            "username": user["username"],
            "exp": expire,
        }
        return jwt.encode(
            claims, self._settings.jwt_secret, algorithm=self._settings.jwt_algorithm
        )

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify the signature and expiry and return the claims.

        Raises:
            AuthError: If the token is invalid, expired or lacks user claims
        """
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
            )
        except JWTError as e:
            raise AuthError(INVALID_TOKEN, context={"reason": str(e)}) from e

        if "user_id" not in claims or "username" not in claims:
            raise AuthError(INVALID_TOKEN, context={"reason": "missing user claims"})
        return claims

    # ── Login ─────────────────────────────────────────────────────────────

    async def authenticate(self, users: UserRepository, username: str, password: str) -> Record:
        """
        Look up `username` and check `password` against its stored hash.

        Raises:
            AuthError: For an unknown user or a wrong password (same message)
        """
        user = await users.get_by_username(username)
        if user is None or not self.verify_password(password, user["password"]):
            logger.info("Failed login for username '%s'", username)
            raise AuthError(INVALID_CREDENTIALS)
        return user


auth_service = AuthService()
