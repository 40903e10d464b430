# cleanbook/stores/firestore.py
"""
Document store adapter over the Firestore async client.

Document ids double as record ids and are never stored inside the document.
createdAt/updatedAt are server timestamps; each write is read back so callers
always see the resolved values.

Unique values are held by claim documents in the `_unique` collection, keyed by
table, field and a digest of the value. A claim is created in the same batch as
the write it guards, so two racing writers cannot both commit the same value.
"""
from __future__ import annotations

import hashlib
import inspect
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from cleanbook.core.errors import DataLayerError, OperationFailure, UniquenessViolation
from cleanbook.core.logging import get_logger
from cleanbook.stores.base import Cascade, DataStore, NativeQuery, NativeRecord, StoreKind

logger = get_logger(__name__)

# Firestore rejects batches with more than 500 writes
BATCH_LIMIT = 500
CREATED_FIELD = "createdAt"
UPDATED_FIELD = "updatedAt"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _claim_id(table: str, field_name: str, value: Any) -> str:
    digest = hashlib.sha256(str(value).encode("utf-8")).hexdigest()
    return f"{table}.{field_name}.{digest}"


def _snapshot_to_record(snapshot) -> NativeRecord:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def _sort_key(record: NativeRecord):
    created = record.get(CREATED_FIELD)
    if isinstance(created, datetime) and created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created or _EPOCH, record["id"])


def _matches(record: NativeRecord, term: str, fields: Sequence[str]) -> bool:
    term = term.lower()
    return any(term in str(record.get(name) or "").lower() for name in fields)


class FirestoreStore(DataStore):
    kind = StoreKind.FIRESTORE

    def __init__(self, client, *, health_collection: str = "_health",
                 health_document: str = "test", scan_limit: int = 1000,
                 unique_collection: str = "_unique"):
        self.client = client
        self.health_collection = health_collection
        self.health_document = health_document
        self.scan_limit = scan_limit
        self.unique_collection = unique_collection

    @asynccontextmanager
    async def _guard(self, op: str):
        try:
            yield
        except DataLayerError:
            raise
        except Exception as exc:
            raise OperationFailure(f"firestore {op} failed: {exc}", store=self.kind.value) from exc

    async def _ensure_unique(self, table: str, record: NativeRecord, unique: Sequence[str],
                             own_id: Optional[str] = None) -> None:
        for name in unique:
            if record.get(name) is None:
                continue
            query = self.client.collection(table).where(filter=FieldFilter(name, "==", record[name])).limit(2)
            async for snapshot in query.stream():
                if snapshot.id != own_id:
                    raise UniquenessViolation(f"{name} already exists", store=self.kind.value, field=name)

    def _claim_ref(self, table: str, field_name: str, value: Any):
        return self.client.collection(self.unique_collection).document(_claim_id(table, field_name, value))

    async def _stage_claims(self, batch, table: str, values: NativeRecord, record_id: str) -> list[str]:
        """Add claim writes for each unique value to the batch; returns the claimed field names."""
        claimed = []
        for name, value in values.items():
            if value is None:
                continue
            ref = self._claim_ref(table, name, value)
            claim = {"table": table, "field": name, "recordId": record_id}
            snapshot = await ref.get()
            if not snapshot.exists:
                # create() fails the whole batch if another writer claimed it first
                batch.create(ref, claim)
                claimed.append(name)
                continue
            owner = (snapshot.to_dict() or {}).get("recordId")
            if owner == record_id:
                continue
            holder = await self.client.collection(table).document(owner).get() if owner else None
            if holder is not None and holder.exists and (holder.to_dict() or {}).get(name) == value:
                raise UniquenessViolation(f"{name} already exists", store=self.kind.value, field=name)
            # Stale claim left by a record that no longer holds the value
            batch.set(ref, claim)
            claimed.append(name)
        return claimed

    async def _stage_releases(self, batch, table: str, values: NativeRecord, record_id: str) -> None:
        for name, value in values.items():
            if value is None:
                continue
            ref = self._claim_ref(table, name, value)
            snapshot = await ref.get()
            if snapshot.exists and (snapshot.to_dict() or {}).get("recordId") == record_id:
                batch.delete(ref)

    async def _commit(self, batch, claimed: Sequence[str]) -> None:
        try:
            await batch.commit()
        except gexc.AlreadyExists as exc:
            name = claimed[0] if len(claimed) == 1 else None
            raise UniquenessViolation(f"{name or 'unique value'} already exists",
                                      store=self.kind.value, field=name) from exc

    async def ping(self) -> bool:
        async with self._guard("ping"):
            await self.client.collection(self.health_collection).document(self.health_document).get()
        return True

    async def insert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> NativeRecord:
        data = {k: v for k, v in record.items() if k != "id"}
        data[CREATED_FIELD] = firestore.SERVER_TIMESTAMP
        data[UPDATED_FIELD] = firestore.SERVER_TIMESTAMP

        async with self._guard("insert"):
            await self._ensure_unique(table, data, unique)
            ref = self.client.collection(table).document()
            batch = self.client.batch()
            claimed = await self._stage_claims(batch, table, {name: data.get(name) for name in unique}, ref.id)
            batch.set(ref, data)
            await self._commit(batch, claimed)
            return _snapshot_to_record(await ref.get())

    async def get(self, table: str, record_id: str) -> Optional[NativeRecord]:
        async with self._guard("get"):
            snapshot = await self.client.collection(table).document(record_id).get()
            return _snapshot_to_record(snapshot) if snapshot.exists else None

    async def find_one(self, table: str, field_name: str, value: Any) -> Optional[NativeRecord]:
        async with self._guard("find_one"):
            query = self.client.collection(table).where(filter=FieldFilter(field_name, "==", value)).limit(1)
            async for snapshot in query.stream():
                return _snapshot_to_record(snapshot)
            return None

    async def update(self, table: str, record_id: str, changes: NativeRecord,
                     *, unique: Sequence[str] = ()) -> Optional[NativeRecord]:
        async with self._guard("update"):
            ref = self.client.collection(table).document(record_id)
            snapshot = await ref.get()
            if not snapshot.exists:
                return None
            current = snapshot.to_dict() or {}
            moved = {name: changes[name] for name in unique
                     if name in changes and changes[name] != current.get(name)}
            await self._ensure_unique(table, moved, unique, own_id=record_id)

            batch = self.client.batch()
            claimed = await self._stage_claims(batch, table, moved, record_id)
            await self._stage_releases(batch, table, {name: current.get(name) for name in moved}, record_id)
            batch.update(ref, {**changes, UPDATED_FIELD: firestore.SERVER_TIMESTAMP})
            await self._commit(batch, claimed)
            return _snapshot_to_record(await ref.get())

    async def upsert(self, table: str, record: NativeRecord, *, unique: Sequence[str] = ()) -> None:
        data = {k: v for k, v in record.items() if k != "id"}
        if data.get(CREATED_FIELD) is None:
            data[CREATED_FIELD] = firestore.SERVER_TIMESTAMP
        if data.get(UPDATED_FIELD) is None:
            data[UPDATED_FIELD] = firestore.SERVER_TIMESTAMP
        async with self._guard("upsert"):
            ref = self.client.collection(table).document(record["id"])
            current = {}
            if unique:
                current = (await ref.get()).to_dict() or {}
            moved = {name: data.get(name) for name in unique if data.get(name) != current.get(name)}

            batch = self.client.batch()
            claimed = await self._stage_claims(batch, table, moved, record["id"])
            await self._stage_releases(batch, table, {name: current.get(name) for name in moved}, record["id"])
            batch.set(ref, data)
            await self._commit(batch, claimed)

    async def delete(self, table: str, record_id: str, *, cascade: Sequence[Cascade] = ()) -> bool:
        async with self._guard("delete"):
            ref = self.client.collection(table).document(record_id)
            snapshot = await ref.get()

            refs = []
            for dep in cascade:
                query = self.client.collection(dep.table).where(filter=FieldFilter(dep.field, "==", record_id))
                async for child in query.stream():
                    refs.append(child.reference)
            if snapshot.exists:
                refs.append(ref)
            if not refs:
                return False

            claims = self.client.collection(self.unique_collection)
            for doc_ref in list(refs):
                async for claim in claims.where(filter=FieldFilter("recordId", "==", doc_ref.id)).stream():
                    refs.append(claim.reference)

            # One atomic batch up to the write limit; larger cascades are split
            chunks = [refs[i:i + BATCH_LIMIT] for i in range(0, len(refs), BATCH_LIMIT)]
            if len(chunks) > 1:
                logger.warning("cascade_split_batches", table=table, record_id=record_id,
                               writes=len(refs), batches=len(chunks))
            for chunk in chunks:
                batch = self.client.batch()
                for doc_ref in chunk:
                    batch.delete(doc_ref)
                await batch.commit()
            return snapshot.exists

    async def query(self, query: NativeQuery) -> tuple[list[NativeRecord], int]:
        ref = self.client.collection(query.table)
        for key, value in query.filters.items():
            ref = ref.where(filter=FieldFilter(key, "==", value))
        ref = ref.order_by(query.order_by, direction=firestore.Query.DESCENDING)
        bound = max(self.scan_limit, query.offset + query.limit)

        async with self._guard("query"):
            records = [_snapshot_to_record(s) async for s in ref.limit(bound).stream()]

        if query.search and query.search_fields:
            records = [r for r in records if _matches(r, query.search.strip(), query.search_fields)]
        records.sort(key=_sort_key, reverse=True)
        total = len(records)
        return records[query.offset:query.offset + query.limit], total

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result


def create_firestore_client(project_id: str, credentials_path: Optional[str] = None):
    """Initialize the Firebase Admin app once and return its async Firestore client."""
    import firebase_admin
    from firebase_admin import credentials, firestore_async

    try:
        app = firebase_admin.get_app()
    except ValueError:
        if credentials_path:
            cred = credentials.Certificate(credentials_path)
            app = firebase_admin.initialize_app(cred, {"projectId": project_id})
            logger.info("firebase_initialized", project_id=project_id, credentials="service_account")
        else:
            # Application Default Credentials, or the emulator when FIRESTORE_EMULATOR_HOST is set
            app = firebase_admin.initialize_app(options={"projectId": project_id})
            logger.info("firebase_initialized", project_id=project_id, credentials="default")
    return firestore_async.client(app)
