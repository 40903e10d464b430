# cleanbook/stores/postgres.py
"""
Relational store adapter over async SQLAlchemy.

Native records are dicts keyed by column name. Timestamps are written here
as timezone-aware UTC datetimes; uniqueness is left to the table constraints.
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cleanbook.core.errors import OperationFailure, UniquenessViolation, ValidationFailure
from cleanbook.core.logging import get_logger
from cleanbook.db.base import TABLES
from cleanbook.db.models.health import HealthRow
from cleanbook.db.session import create_session_factory
from cleanbook.stores.base import Cascade, DataStore, NativeQuery, NativeRecord, StoreKind

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_record(row) -> NativeRecord:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


class PostgresStore(DataStore):
    kind = StoreKind.POSTGRES

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.engine = engine
        self._sessions = session_factory or create_session_factory(engine)

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise OperationFailure(f"unknown table {table!r}", store=self.kind.value) from None

    @asynccontextmanager
    async def _session(self, op: str, unique: Sequence[str] = ()):
        try:
            async with self._sessions() as session:
                yield session
        except IntegrityError as exc:
            raise self._integrity_failure(exc, unique) from exc
        except DataError as exc:
            # Values the column type rejects, such as an over-long string
            raise ValidationFailure(f"rejected by schema: {exc.orig}", store=self.kind.value) from exc
        except (SQLAlchemyError, OSError) as exc:
            raise OperationFailure(f"postgres {op} failed: {exc}", store=self.kind.value) from exc

    def _integrity_failure(self, exc: IntegrityError, unique: Sequence[str]) -> ValidationFailure:
        message = str(exc.orig)
        lowered = message.lower()
        if "unique" in lowered or "duplicate key" in lowered:
            field = next((f for f in unique if f in message), None)
            return UniquenessViolation(
                f"{field or 'record'} already exists", store=self.kind.value, field=field
            )
        return ValidationFailure(f"rejected by schema: {message}", store=self.kind.value)

    async def ping(self) -> bool:
        async with self._session("ping") as session:
            result = await session.execute(sa.select(HealthRow.id).limit(1))
            result.all()
        return True

    async def insert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> NativeRecord:
        model = self._model(table)
        now = _utcnow()
        values = dict(record)
        if not values.get("id"):
            values["id"] = str(uuid.uuid4())
        values["created_at"] = now
        values["updated_at"] = now

        async with self._session("insert", unique) as session:
            row = model(**values)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _row_to_record(row)

    async def get(self, table: str, record_id: str) -> Optional[NativeRecord]:
        model = self._model(table)
        async with self._session("get") as session:
            row = await session.get(model, record_id)
            return _row_to_record(row) if row is not None else None

    async def find_one(self, table: str, field_name: str, value: Any) -> Optional[NativeRecord]:
        model = self._model(table)
        async with self._session("find_one") as session:
            res = await session.execute(
                sa.select(model).where(getattr(model, field_name) == value).limit(1)
            )
            row = res.scalars().first()
            return _row_to_record(row) if row is not None else None

    async def update(self, table: str, record_id: str, changes: NativeRecord,
                     *, unique: Sequence[str] = ()) -> Optional[NativeRecord]:
        model = self._model(table)
        async with self._session("update", unique) as session:
            row = await session.get(model, record_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = _utcnow()
            await session.commit()
            await session.refresh(row)
            return _row_to_record(row)

    async def upsert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> None:
        model = self._model(table)
        values = dict(record)
        if values.get("created_at") is None:
            values["created_at"] = _utcnow()
        async with self._session("upsert", unique or tuple(values)) as session:
            await session.merge(model(**values))
            await session.commit()

    async def delete(self, table: str, record_id: str, *, cascade: Sequence[Cascade] = ()) -> bool:
        model = self._model(table)
        async with self._session("delete") as session:
            async with session.begin():
                # Dependents go first and in the same transaction, even when the
                # parent row is already gone from this store.
                for dep in cascade:
                    child = self._model(dep.table)
                    await session.execute(sa.delete(child).where(getattr(child, dep.field) == record_id))
                res = await session.execute(sa.delete(model).where(model.id == record_id))
                return res.rowcount > 0

    async def query(self, query: NativeQuery) -> tuple[list[NativeRecord], int]:
        model = self._model(query.table)
        conditions = [getattr(model, key) == value for key, value in query.filters.items()]
        if query.search and query.search_fields:
            pattern = f"%{_escape_like(query.search.strip())}%"
            conditions.append(sa.or_(*[
                getattr(model, name).ilike(pattern, escape="\\") for name in query.search_fields
            ]))

        stmt = (
            sa.select(model)
            .where(*conditions)
            .order_by(getattr(model, query.order_by).desc(), getattr(model, query.id_field).desc())
            .limit(query.limit)
            .offset(query.offset)
        )
        count_stmt = sa.select(sa.func.count()).select_from(model).where(*conditions)

        async with self._session("query") as session:
            total = await session.scalar(count_stmt)
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_record(r) for r in rows], int(total or 0)

    async def close(self) -> None:
        await self.engine.dispose()
