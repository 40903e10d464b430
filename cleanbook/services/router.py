# cleanbook/services/router.py
"""
Operation router: runs every data operation against the active store and
falls back to the other store exactly once.

Not-found is a normal result (None, False or an empty page), never an error.
ValidationFailure is the caller's problem and is surfaced without a retry.
Successful writes are handed to the mirror writer and never awaited.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from cleanbook.core.errors import NotFound, StoreUnavailable, ValidationFailure
from cleanbook.core.logging import get_logger
from cleanbook.schemas.entities import Entity, ListQuery, Page
from cleanbook.services.mapper import RecordMapper
from cleanbook.services.mirror import MirrorOp, MirrorWriter
from cleanbook.services.selector import ActiveStoreSelector
from cleanbook.stores.base import DataStore, NativeQuery, StoreKind

logger = get_logger(__name__)

R = TypeVar("R")
E = TypeVar("E", bound=Entity)

# Never written by callers; the serving store owns these
READ_ONLY_FIELDS = ("id", "created_at", "updated_at")

# Exceptions that describe the caller's request, not the store's health
_NO_RETRY = (ValidationFailure, NotFound)


def _as_dict(data: Union[BaseModel, Mapping[str, Any]], *, partial: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=partial)
    return dict(data)


class OperationRouter:
    def __init__(self, stores: Mapping[StoreKind, DataStore], selector: ActiveStoreSelector,
                 mapper: RecordMapper, mirror_writer: MirrorWriter):
        self.stores = stores
        self.selector = selector
        self.mapper = mapper
        self.mirror_writer = mirror_writer

    async def _run(self, operation: str, entity_type: Type[Entity],
                   action: Callable[[DataStore], Awaitable[R]]) -> tuple[StoreKind, R]:
        """Execute on the active store, then once on the other store if that fails."""
        active = await self.selector.select_active_store()
        attempts: list[str] = []
        last_error: Optional[BaseException] = None

        for kind in (active, active.other):
            attempts.append(kind.value)
            try:
                result = await action(self.stores[kind])
            except _NO_RETRY:
                raise
            except Exception as exc:
                last_error = exc
                logger.error("store_operation_failed", operation=operation, entity=entity_type.__name__,
                             store=kind.value, error=str(exc), error_type=type(exc).__name__)
                continue

            if kind is not active:
                logger.warning("served_by_fallback", operation=operation, entity=entity_type.__name__,
                               store=kind.value, failed_store=active.value)
            return kind, result

        raise StoreUnavailable(
            f"{operation} {entity_type.__name__} failed on every store",
            operation=operation,
            attempts=tuple(attempts),
        ) from last_error

    def _mirror(self, op: MirrorOp, entity_type: Type[Entity], payload, served_by: StoreKind) -> None:
        self.mirror_writer.mirror(op, entity_type, payload, served_by.other)

    # ---------- Generic operations ----------

    async def create(self, entity_type: Type[E], data: Union[BaseModel, Mapping[str, Any]]) -> E:
        values = {k: v for k, v in _as_dict(data).items() if k not in READ_ONLY_FIELDS}
        table = self.mapper.table(entity_type)

        async def action(store: DataStore):
            record = await store.insert(
                table,
                self.mapper.native_fields(store.kind, entity_type, values),
                unique=self.mapper.unique_fields(store.kind, entity_type),
            )
            return self.mapper.to_canonical(store.kind, entity_type, record)

        served_by, entity = await self._run("create", entity_type, action)
        self._mirror(MirrorOp.UPSERT, entity_type, entity, served_by)
        return entity

    async def get_by_id(self, entity_type: Type[E], record_id: str) -> Optional[E]:
        table = self.mapper.table(entity_type)

        async def action(store: DataStore):
            record = await store.get(table, record_id)
            return self.mapper.to_canonical(store.kind, entity_type, record) if record is not None else None

        _, entity = await self._run("get_by_id", entity_type, action)
        return entity

    async def get_by_field(self, entity_type: Type[E], field_name: str, value: Any) -> Optional[E]:
        table = self.mapper.table(entity_type)

        async def action(store: DataStore):
            ((native_name, native_value),) = self.mapper.native_fields(
                store.kind, entity_type, {field_name: value}
            ).items()
            record = await store.find_one(table, native_name, native_value)
            return self.mapper.to_canonical(store.kind, entity_type, record) if record is not None else None

        _, entity = await self._run("get_by_field", entity_type, action)
        return entity

    async def update(self, entity_type: Type[E], record_id: str,
                     changes: Union[BaseModel, Mapping[str, Any]]) -> Optional[E]:
        values = {k: v for k, v in _as_dict(changes, partial=True).items() if k not in READ_ONLY_FIELDS}
        table = self.mapper.table(entity_type)

        async def action(store: DataStore):
            record = await store.update(
                table,
                record_id,
                self.mapper.native_fields(store.kind, entity_type, values),
                unique=self.mapper.unique_fields(store.kind, entity_type),
            )
            return self.mapper.to_canonical(store.kind, entity_type, record) if record is not None else None

        served_by, entity = await self._run("update", entity_type, action)
        if entity is not None:
            self._mirror(MirrorOp.UPSERT, entity_type, entity, served_by)
        return entity

    async def delete(self, entity_type: Type[Entity], record_id: str) -> bool:
        """Delete a record and, in the same store, everything that depends on it."""
        table = self.mapper.table(entity_type)

        async def action(store: DataStore):
            return await store.delete(table, record_id, cascade=self.mapper.cascade(store.kind, entity_type))

        served_by, deleted = await self._run("delete", entity_type, action)
        if deleted:
            self._mirror(MirrorOp.DELETE, entity_type, record_id, served_by)
        return deleted

    async def list(self, entity_type: Type[E], query: Optional[ListQuery] = None) -> Page[E]:
        query = query or ListQuery()
        table = self.mapper.table(entity_type)
        filters = {k: v for k, v in query.filters.items() if v is not None}

        async def action(store: DataStore):
            records, total = await store.query(NativeQuery(
                table=table,
                order_by=self.mapper.order_field(store.kind, entity_type),
                id_field=self.mapper.native_field(store.kind, entity_type, "id"),
                filters=self.mapper.native_fields(store.kind, entity_type, filters),
                search=query.search or None,
                search_fields=self.mapper.search_fields(store.kind, entity_type),
                limit=query.limit,
                offset=query.offset,
            ))
            items = [self.mapper.to_canonical(store.kind, entity_type, r) for r in records]
            return Page[entity_type](items=items, total=total, limit=query.limit, offset=query.offset)

        _, page = await self._run("list", entity_type, action)
        return page
