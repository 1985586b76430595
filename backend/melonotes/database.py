"""
MELONOTES Backend — Relational Engine & Session Factory
=========================================================

What:  Async SQLAlchemy engine and session factory builders, plus the
       declarative Base shared by every ORM model.
How:   build_engine() creates an async engine from settings; SQLite gets
       foreign key enforcement switched on per connection, other dialects
       get pool sizing. build_session_factory() wraps the engine.
Who:   RelationalStorage (storage/relational.py) and Alembic (alembic/env.py).
When:  Engine is built in the application lifespan, never at import time.

Connection Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings and apply
    to server databases only. SQLite uses SQLAlchemy's default pool for
    aiosqlite and ignores these values.
"""

from typing import Any, Dict, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from melonotes.config import Settings, settings as default_settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object so create_all and Alembic see every table.
    """
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE clauses unless this pragma is on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> AsyncEngine:
    """
    Create the async engine for `database_url` (defaults to settings.database_url).

    Returns:
        AsyncEngine ready to hand to build_session_factory().
    """
    cfg = settings or default_settings
    url = make_url(database_url or cfg.database_url)
    is_sqlite = url.get_backend_name() == "sqlite"

    kwargs: Dict[str, Any] = {"echo": cfg.log_level == "DEBUG"}
    if not is_sqlite:
        kwargs.update(
            pool_size=cfg.db_pool_size,
            max_overflow=cfg.db_max_overflow,
            pool_pre_ping=cfg.db_pool_pre_ping,
            pool_recycle=3600,
        )

    engine = create_async_engine(url, **kwargs)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps attribute values readable after commit,
    which RelationalStorage relies on when converting rows to dicts.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
