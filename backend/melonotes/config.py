"""
MELONOTES Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.

Only values live here. Connections (engine, Couchbase cluster) are built in
the application lifespan from these values and stored on `app.state`.
"""

import logging
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "melonotes-dev-secret-change-me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments must
    override JWT_SECRET and, for the document backend, the Couchbase
    credentials.
    """

    # ── Storage Backend ───────────────────────────────────────────────────
    # relational: SQLAlchemy (SQLite by default); document: Couchbase
    storage_backend: Literal["relational", "document"] = Field(default="relational")

    # ── Relational Database ───────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///path or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./melonotes.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing is ignored for SQLite
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create tables on startup; turn off when the schema is managed by Alembic
    db_create_all: bool = Field(default=True)

    # ── Couchbase ─────────────────────────────────────────────────────────
    couchbase_connection_string: str = Field(default="couchbase://localhost")
    couchbase_username: str = Field(default="")
    couchbase_password: str = Field(default="")
    couchbase_bucket: str = Field(default="melonotes")
    # Capella and other remote clusters need longer timeouts
    couchbase_wan_profile: bool = Field(default=False)
    couchbase_create_indexes: bool = Field(default=True)

    # ── Authentication ────────────────────────────────────────────────────
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_hours: int = Field(default=24, ge=1, le=720)
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # ── Seed Data ─────────────────────────────────────────────────────────
    seed_on_startup: bool = Field(default=True)
    seed_username: str = Field(default="frieren")
    seed_password: str = Field(default="MeldaErkan!5352")

    # ── File Uploads ──────────────────────────────────────────────────────
    upload_dir: str = Field(default="./uploads")
    # 5MB default, 1KB to 50MB accepted
    max_upload_size: int = Field(default=5_242_880, ge=1024, le=52_428_800)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list of origins
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Startup Retry ─────────────────────────────────────────────────────
    # Tenacity settings for connecting to storage during startup
    storage_connect_attempts: int = Field(default=5, ge=1, le=20)
    storage_connect_min_wait: float = Field(default=1.0, ge=0, le=30)
    storage_connect_max_wait: float = Field(default=10.0, ge=0, le=120)

    # ── Login Throttle ────────────────────────────────────────────────────
    # Per-IP sliding window applied to POST /api/auth/login only
    login_rate_limit_requests: int = Field(default=20, ge=1, le=10000)
    login_rate_limit_window: int = Field(default=300, ge=1, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> List[str]:
        """
        What:  Collects configuration problems that are tolerable in development
               but not in production.
        When:  Called during app startup (lifespan); each problem is logged.
        """
        problems = []
        if self.jwt_secret == DEFAULT_JWT_SECRET:
            problems.append("JWT_SECRET is using the development default")
        if self.storage_backend == "document" and not (
            self.couchbase_username and self.couchbase_password
        ):
            problems.append(
                "COUCHBASE_USERNAME / COUCHBASE_PASSWORD are not set for the document backend"
            )
        return problems


settings = Settings()
