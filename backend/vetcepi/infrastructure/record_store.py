"""SQL Record Store — RecordStore implementation over the async SQLAlchemy session manager.

Invariants:
    - One session per operation; commits are per call (no cross-call transactions)
    - Rows leave as dicts: UUIDs as str, datetimes as ISO-8601 strings
    - IntegrityError on a unique column becomes Conflict(table, field, value);
      any other integrity failure raises DatabaseError
    - A malformed UUID key matches nothing (empty list / None / False), it is not an error

Design Decisions:
    - Conflicting field identified by probing unique columns after rollback,
      not by parsing driver error text (asyncpg and sqlite word it differently)
    - Unknown table or column raises DatabaseError before any SQL is issued
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, Uuid
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vetcepi.core.domain_types import StoreTable
from vetcepi.core.errors import DatabaseError, ErrorContext
from vetcepi.core.repository_protocols import Conflict, Stored, WriteResult
from vetcepi.infrastructure.database import DatabaseSessionManager
from vetcepi.models import Medicine, Pet

logger = logging.getLogger(__name__)

_MODELS = {
    StoreTable.MEDICINES: Medicine,
    StoreTable.PETS: Pet,
}

_NO_MATCH = object()


def row_to_dict(obj) -> dict:
    """Convert an ORM instance to the boundary dict shape."""
    out = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.key)
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        out[column.key] = value
    return out


class SqlRecordStore:
    """Keyed CRUD over the medicines and pets tables."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get_by_field(
        self, table: StoreTable, field: str, value: Any,
    ) -> list[dict]:
        model = self._model(table)
        column = self._column(model, table, field)
        value = self._coerce(column, value)
        if value is _NO_MATCH:
            return []
        async with self._db.session() as db:
            result = await db.execute(select(model).where(column == value))
            return [row_to_dict(r) for r in result.scalars().all()]

    async def select_all(
        self, table: StoreTable, order_by: str | None = None,
    ) -> list[dict]:
        model = self._model(table)
        query = select(model)
        if order_by:
            query = query.order_by(self._column(model, table, order_by))
        async with self._db.session() as db:
            result = await db.execute(query)
            return [row_to_dict(r) for r in result.scalars().all()]

    async def insert(self, table: StoreTable, record: dict) -> WriteResult:
        model = self._model(table)
        for field in record:
            self._column(model, table, field)
        async with self._db.session() as db:
            obj = model(**record)
            db.add(obj)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                return await self._conflict_or_raise(db, table, record, "insert", e)
            return Stored(row_to_dict(obj))

    async def update(
        self, table: StoreTable, key: str, changes: dict,
    ) -> WriteResult | None:
        model = self._model(table)
        for field in changes:
            self._column(model, table, field)
        pk = self._coerce(model.__table__.c.id, key)
        if pk is _NO_MATCH:
            return None
        async with self._db.session() as db:
            obj = await db.get(model, pk)
            if obj is None:
                return None
            for field, value in changes.items():
                setattr(obj, field, value)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                return await self._conflict_or_raise(
                    db, table, changes, "update", e, exclude_pk=pk,
                )
            return Stored(row_to_dict(obj))

    async def delete(self, table: StoreTable, key: str) -> bool:
        model = self._model(table)
        pk = self._coerce(model.__table__.c.id, key)
        if pk is _NO_MATCH:
            return False
        async with self._db.session() as db:
            obj = await db.get(model, pk)
            if obj is None:
                return False
            await db.delete(obj)
            await db.commit()
            return True

    # ─── internals ────────────────────────────────────────────────

    @staticmethod
    def _model(table: StoreTable):
        try:
            return _MODELS[StoreTable(table)]
        except (KeyError, ValueError) as e:
            raise DatabaseError(f"unknown table '{table}'", "resolve") from e

    @staticmethod
    def _column(model, table: StoreTable, field: str):
        column = model.__table__.c.get(field)
        if column is None:
            raise DatabaseError(
                f"unknown column '{field}'", "resolve",
                ErrorContext(table=StoreTable(table).value),
            )
        return column

    @staticmethod
    def _coerce(column, value: Any) -> Any:
        if isinstance(column.type, Uuid) and isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError:
                return _NO_MATCH
        return value

    async def _conflict_or_raise(
        self,
        db: AsyncSession,
        table: StoreTable,
        record: dict,
        operation: str,
        error: IntegrityError,
        exclude_pk: uuid.UUID | None = None,
    ) -> Conflict:
        table = StoreTable(table)
        model = self._model(table)
        for column in model.__table__.columns:
            if not column.unique or column.key not in record:
                continue
            query = select(model.id).where(column == record[column.key])
            if exclude_pk is not None:
                query = query.where(model.id != exclude_pk)
            taken = (await db.execute(query)).first()
            if taken is not None:
                logger.info(
                    f"Unique conflict on {table.value}.{column.key}",
                    extra={"table": table.value},
                )
                return Conflict(table.value, column.key, record[column.key])
        logger.error(f"DB integrity error on {operation}: {error.orig}")
        raise DatabaseError(
            "Integrity constraint violated", operation,
            ErrorContext(table=table.value),
        ) from error
