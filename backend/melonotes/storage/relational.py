"""
MELONOTES Backend — Relational Storage Adapter
================================================

What:  StorageAdapter over async SQLAlchemy (SQLite by default, any async URL).
How:   Each entity kind maps to an ORM model. Every adapter call opens its
       own session inside `session.begin()`, so calls issued concurrently
       with asyncio.gather never share a session. A note record's `tags`
       list is stored as ordered rows in the note_tags join table.
Who:   Built by storage/factory.py when STORAGE_BACKEND=relational.

Error mapping:
    IntegrityError (unique)        → ConflictError (409)
    IntegrityError (fk / check)    → ValidationError (400)
    any other SQLAlchemyError      → StorageError (500, generic message)

Search collation:
    `.contains()` compiles to LIKE, which SQLite evaluates case-insensitively
    for ASCII text. case_sensitive_search is therefore False.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Type

from sqlalchemy import ColumnElement, delete, func, inspect, or_, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from melonotes.config import Settings, settings as default_settings
from melonotes.database import Base, build_engine, build_session_factory
from melonotes.exceptions import ConflictError, StorageError, ValidationError
from melonotes.models import (
    Category,
    CodeSnippet,
    Image,
    Note,
    NoteTag,
    Script,
    Solution,
    Step,
    Tag,
    User,
)
from melonotes.storage.base import (
    ARRAY_FIELDS,
    CATEGORY,
    CODE_SNIPPET,
    IMAGE,
    NOTE,
    SCRIPT,
    SOLUTION,
    STEP,
    TAG,
    USER,
    Query,
    Record,
    StorageAdapter,
)

logger = logging.getLogger(__name__)

MODELS: Dict[str, Type[Base]] = {
    USER: User,
    CATEGORY: Category,
    TAG: Tag,
    NOTE: Note,
    SOLUTION: Solution,
    STEP: Step,
    CODE_SNIPPET: CodeSnippet,
    SCRIPT: Script,
    IMAGE: Image,
}


class RelationalStorage(StorageAdapter):
    """SQLAlchemy-backed StorageAdapter."""

    backend = "relational"
    case_sensitive_search = False

    def __init__(
        self,
        database_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self._settings = settings or default_settings
        self._engine = engine or build_engine(database_url, self._settings)
        self._session_factory = build_session_factory(self._engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def init(self) -> None:
        if not self._settings.db_create_all:
            await self.ping()
            return
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error("Schema creation failed: %s", e)
            raise StorageError(context={"operation": "create_all", "error": str(e)}) from e
        logger.info("Relational schema ready (%s)", self._engine.url.render_as_string())

    async def close(self) -> None:
        await self._engine.dispose()

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StorageError(context={"operation": "ping", "error": str(e)}) from e

    # ── Session Helper ────────────────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self, operation: str, kind: str) -> AsyncIterator[AsyncSession]:
        """One session, one transaction; driver errors become domain errors."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            detail = str(e.orig).lower()
            if "unique" in detail or "duplicate" in detail:
                raise ConflictError(
                    message=f"A {kind.replace('_', ' ')} with these values already exists",
                    context={"operation": operation, "kind": kind},
                ) from e
            raise ValidationError(
                message="The record references missing data or has invalid values",
                context={"operation": operation, "kind": kind, "error": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            logger.error("%s on %s failed: %s", operation, kind, e)
            raise StorageError(
                context={"operation": operation, "kind": kind, "error": str(e)}
            ) from e

    # ── Record Conversion ─────────────────────────────────────────────────

    @staticmethod
    def _model(kind: str) -> Type[Base]:
        try:
            return MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind '{kind}'") from None

    @staticmethod
    def _column_names(model: Type[Base]) -> List[str]:
        return [attr.key for attr in inspect(model).column_attrs]

    def _to_record(self, obj: Base) -> Record:
        record: Record = {}
        for name in self._column_names(type(obj)):
            value = getattr(obj, name)
            # SQLite hands back naive datetimes even for timezone=True columns
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            record[name] = value
        return record

    def _column(self, model: Type[Base], name: str):
        if name not in self._column_names(model):
            raise ValueError(f"{model.__name__} has no field '{name}'")
        return getattr(model, name)

    # ── Tags Join Table ───────────────────────────────────────────────────

    @staticmethod
    async def _load_tags(session: AsyncSession, note_ids: Sequence[int]) -> Dict[int, List[int]]:
        tags: Dict[int, List[int]] = {nid: [] for nid in note_ids}
        if not note_ids:
            return tags
        rows = await session.execute(
            select(NoteTag.note_id, NoteTag.tag_id)
            .where(NoteTag.note_id.in_(note_ids))
            .order_by(NoteTag.id)
        )
        for note_id, tag_id in rows:
            tags[note_id].append(tag_id)
        return tags

    @staticmethod
    async def _replace_tags(session: AsyncSession, note_id: int, tag_ids: Sequence[int]) -> List[int]:
        await session.execute(delete(NoteTag).where(NoteTag.note_id == note_id))
        unique_ids = list(dict.fromkeys(tag_ids))
        session.add_all(NoteTag(note_id=note_id, tag_id=tid) for tid in unique_ids)
        await session.flush()
        return unique_ids

    # ── Filtering ─────────────────────────────────────────────────────────

    def _conditions(self, kind: str, model: Type[Base], query: Query) -> List[ColumnElement]:
        conditions: List[ColumnElement] = []

        for name, value in query.equals.items():
            column = self._column(model, name)
            conditions.append(column.is_(None) if value is None else column == value)

        if query.search and query.search_fields:
            conditions.append(
                or_(
                    *(
                        self._column(model, name).contains(query.search, autoescape=True)
                        for name in query.search_fields
                    )
                )
            )

        array_fields = ARRAY_FIELDS.get(kind, frozenset())
        for name, values in query.any_of.items():
            values = list(values)
            if name in array_fields:
                # note.tags lives in note_tags; overlap is "some link row matches"
                linked = select(NoteTag.note_id).where(NoteTag.tag_id.in_(values))
                conditions.append(model.id.in_(linked))
            else:
                conditions.append(self._column(model, name).in_(values))

        return conditions

    # ── StorageAdapter ────────────────────────────────────────────────────

    async def get(self, kind: str, record_id: int) -> Optional[Record]:
        model = self._model(kind)
        async with self._transaction("get", kind) as session:
            obj = await session.get(model, record_id)
            if obj is None:
                return None
            record = self._to_record(obj)
            if kind == NOTE:
                record["tags"] = (await self._load_tags(session, [obj.id]))[obj.id]
            return record

    async def put(self, kind: str, record: Record) -> Record:
        model = self._model(kind)
        data: Dict[str, Any] = dict(record)
        record_id = data.pop("id", None)
        tag_ids = data.pop("tags", None) if kind == NOTE else None
        columns = set(self._column_names(model))
        values = {k: v for k, v in data.items() if k in columns}

        async with self._transaction("put", kind) as session:
            obj = await session.get(model, record_id) if record_id is not None else None
            if obj is None:
                if record_id is not None:
                    values["id"] = record_id
                obj = model(**values)
                session.add(obj)
            else:
                for name, value in values.items():
                    setattr(obj, name, value)
            await session.flush()
            await session.refresh(obj)

            result = self._to_record(obj)
            if kind == NOTE:
                if tag_ids is not None:
                    result["tags"] = await self._replace_tags(session, obj.id, tag_ids)
                else:
                    result["tags"] = (await self._load_tags(session, [obj.id]))[obj.id]
            return result

    async def remove(self, kind: str, record_id: int) -> bool:
        model = self._model(kind)
        async with self._transaction("remove", kind) as session:
            result = await session.execute(delete(model).where(model.id == record_id))
            return result.rowcount > 0

    async def query(self, kind: str, query: Optional[Query] = None) -> List[Record]:
        model = self._model(kind)
        query = query or Query()
        stmt = select(model).where(*self._conditions(kind, model, query))
        for name, descending in query.order_by:
            column = self._column(model, name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        async with self._transaction("query", kind) as session:
            objs = (await session.execute(stmt)).scalars().all()
            records = [self._to_record(obj) for obj in objs]
            if kind == NOTE:
                tags = await self._load_tags(session, [r["id"] for r in records])
                for record in records:
                    record["tags"] = tags[record["id"]]
            return records

    async def count(self, kind: str, query: Optional[Query] = None) -> int:
        model = self._model(kind)
        query = query or Query()
        stmt = (
            select(func.count())
            .select_from(model)
            .where(*self._conditions(kind, model, query))
        )
        async with self._transaction("count", kind) as session:
            return int((await session.execute(stmt)).scalar_one())
