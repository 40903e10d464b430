# cleanbook/services/context.py
"""
Process-wide store context.

Built once at startup and passed to whatever needs data access. It owns the
two native client handles and wires prober, selector, mapper, mirror writer
and router around them.
"""
from __future__ import annotations

from typing import Mapping, Optional

from cleanbook.core.config import Settings
from cleanbook.core.logging import get_logger
from cleanbook.db.session import create_engine
from cleanbook.services.health import HealthProber
from cleanbook.services.mapper import RecordMapper
from cleanbook.services.mirror import MirrorWriter
from cleanbook.services.router import OperationRouter
from cleanbook.services.selector import ActiveStoreSelector
from cleanbook.stores.base import DataStore, StoreKind
from cleanbook.stores.firestore import FirestoreStore, create_firestore_client
from cleanbook.stores.postgres import PostgresStore

logger = get_logger(__name__)


class StoreContext:
    def __init__(self, settings: Settings, stores: Mapping[StoreKind, DataStore],
                 mapper: Optional[RecordMapper] = None):
        missing = set(StoreKind) - set(stores)
        if missing:
            raise ValueError(f"store context needs both stores, missing: {sorted(k.value for k in missing)}")

        self.settings = settings
        self.stores = dict(stores)
        self.mapper = mapper or RecordMapper()
        self.prober = HealthProber(self.stores, timeout=settings.HEALTH_PROBE_TIMEOUT)
        self.selector = ActiveStoreSelector(
            self.prober,
            primary=StoreKind(settings.PRIMARY_STORE),
            policy=settings.STORE_SELECTION_POLICY,
        )
        self.mirror = MirrorWriter(self.stores, self.mapper, enabled=settings.MIRROR_ENABLED)
        self.router = OperationRouter(self.stores, self.selector, self.mapper, self.mirror)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreContext":
        client = create_firestore_client(settings.FIREBASE_PROJECT_ID, settings.FIREBASE_CREDENTIALS_PATH)
        engine = create_engine(settings)
        stores = {
            StoreKind.FIRESTORE: FirestoreStore(
                client,
                health_collection=settings.HEALTH_COLLECTION,
                health_document=settings.HEALTH_DOCUMENT,
                scan_limit=settings.DOCUMENT_SCAN_LIMIT,
                unique_collection=settings.UNIQUE_COLLECTION,
            ),
            StoreKind.POSTGRES: PostgresStore(engine),
        }
        logger.info("store_context_ready", primary=settings.PRIMARY_STORE,
                    policy=settings.STORE_SELECTION_POLICY, mirror=settings.MIRROR_ENABLED)
        return cls(settings, stores)

    async def aclose(self) -> None:
        await self.mirror.drain()
        for kind, store in self.stores.items():
            try:
                await store.close()
            except Exception as exc:
                logger.warning("store_close_failed", store=kind.value, error=str(exc))
