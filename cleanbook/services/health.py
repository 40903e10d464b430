# cleanbook/services/health.py
"""
Health prober: one cheap read per store, reduced to a boolean.
"""
from __future__ import annotations

import asyncio
from typing import Mapping

from cleanbook.core.errors import ProbeFailure
from cleanbook.core.logging import get_logger
from cleanbook.stores.base import DataStore, StoreKind

logger = get_logger(__name__)


class HealthProber:
    def __init__(self, stores: Mapping[StoreKind, DataStore], timeout: float = 2.0):
        self.stores = stores
        self.timeout = timeout

    async def check_health(self, kind: StoreKind) -> bool:
        """
        Return True when the store answered its health read in time.

        Never raises: errors, timeouts and non-boolean answers all count as
        unhealthy. There is no retry here; the caller decides what to do.
        """
        try:
            healthy = await asyncio.wait_for(self.stores[kind].ping(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("health_probe_timeout", store=kind.value, timeout=self.timeout)
            return False
        except Exception as exc:
            failure = ProbeFailure(str(exc), store=kind.value)
            logger.warning("health_probe_failed", store=kind.value,
                           error=failure.message, error_type=type(exc).__name__)
            return False

        if healthy is not True:
            logger.warning("health_probe_malformed", store=kind.value, response=repr(healthy))
            return False
        return True

    async def check_all(self) -> dict[StoreKind, bool]:
        kinds = list(self.stores)
        results = await asyncio.gather(*(self.check_health(k) for k in kinds))
        return dict(zip(kinds, results))
