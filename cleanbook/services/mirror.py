# cleanbook/services/mirror.py
"""
Fire-and-forget replication of successful writes to the other store.

Each mirror write runs as a detached asyncio task with its own error
boundary. Nothing awaits it on the request path and its failures are only
logged, so the mirror is allowed to drift from the serving store.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Mapping, Optional, Type, Union

from cleanbook.core.errors import MirrorFailure
from cleanbook.core.logging import get_logger
from cleanbook.schemas.entities import Entity
from cleanbook.services.mapper import RecordMapper
from cleanbook.stores.base import DataStore, StoreKind

logger = get_logger(__name__)


class MirrorOp(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


class MirrorWriter:
    def __init__(self, stores: Mapping[StoreKind, DataStore], mapper: RecordMapper, enabled: bool = True):
        self.stores = stores
        self.mapper = mapper
        self.enabled = enabled
        self.mirrored = 0
        self.failed = 0
        # Strong references so the event loop does not drop running tasks
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def mirror(self, op: MirrorOp, entity_type: Type[Entity], payload: Union[Entity, str],
               target: StoreKind) -> Optional[asyncio.Task]:
        """Schedule one mirror write and return immediately."""
        if not self.enabled:
            return None
        task = asyncio.get_running_loop().create_task(
            self._apply(op, entity_type, payload, target),
            name=f"mirror-{op.value}-{entity_type.__name__.lower()}-{target.value}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _apply(self, op: MirrorOp, entity_type: Type[Entity], payload: Union[Entity, str],
                     target: StoreKind) -> bool:
        record_id = payload if isinstance(payload, str) else payload.id
        table = self.mapper.table(entity_type)
        try:
            store = self.stores[target]
            if op is MirrorOp.UPSERT:
                await store.upsert(table, self.mapper.from_canonical(target, payload),
                                   unique=self.mapper.unique_fields(target, entity_type))
            else:
                await store.delete(table, record_id, cascade=self.mapper.cascade(target, entity_type))
        except Exception as exc:
            self.failed += 1
            failure = MirrorFailure(str(exc), store=target.value)
            logger.warning("mirror_failed", op=op.value, table=table, record_id=record_id,
                           store=failure.store, error=failure.message, error_type=type(exc).__name__)
            return False

        self.mirrored += 1
        logger.debug("mirror_applied", op=op.value, table=table, record_id=record_id, store=target.value)
        return True

    async def drain(self) -> None:
        """Wait for in-flight mirror writes; used at shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
