# cleanbook/stores/base.py
"""
Native-record store interface shared by the Firestore and Postgres adapters.

Adapters speak in native records (plain dicts keyed by the store's own field
names). Translating to canonical entities is the record mapper's job.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

NativeRecord = dict[str, Any]


class StoreKind(str, Enum):
    FIRESTORE = "firestore"
    POSTGRES = "postgres"

    @property
    def other(self) -> "StoreKind":
        return StoreKind.POSTGRES if self is StoreKind.FIRESTORE else StoreKind.FIRESTORE


@dataclass(frozen=True)
class Cascade:
    """A dependent table whose rows reference the deleted record through `field`."""
    table: str
    field: str


@dataclass
class NativeQuery:
    table: str
    order_by: str
    id_field: str = "id"
    filters: dict[str, Any] = field(default_factory=dict)
    search: Optional[str] = None
    search_fields: Sequence[str] = ()
    limit: int = 10
    offset: int = 0


class DataStore(ABC):
    kind: StoreKind

    @abstractmethod
    async def ping(self) -> bool:
        """Cheapest possible read against the reserved health record."""

    @abstractmethod
    async def insert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> NativeRecord:
        """Create a record; the store assigns id and timestamps."""

    @abstractmethod
    async def get(self, table: str, record_id: str) -> Optional[NativeRecord]:
        ...

    @abstractmethod
    async def find_one(self, table: str, field_name: str, value: Any) -> Optional[NativeRecord]:
        ...

    @abstractmethod
    async def update(self, table: str, record_id: str, changes: NativeRecord,
                     *, unique: Sequence[str] = ()) -> Optional[NativeRecord]:
        """Apply changes and bump the update timestamp; None when missing."""

    @abstractmethod
    async def upsert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> None:
        """Write a full record as-is, keeping its id and timestamps."""

    @abstractmethod
    async def delete(self, table: str, record_id: str, *, cascade: Sequence[Cascade] = ()) -> bool:
        """Delete a record and its dependents; False when it did not exist."""

    @abstractmethod
    async def query(self, query: NativeQuery) -> tuple[list[NativeRecord], int]:
        """Return one page of records, newest first, and the total match count."""

    async def close(self) -> None:
        return None
