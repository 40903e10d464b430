# cleanbook/services/selector.py
"""
Active-store selection, decided fresh for every operation.
"""
from __future__ import annotations

from cleanbook.core.errors import StoreUnavailable
from cleanbook.core.logging import get_logger
from cleanbook.services.health import HealthProber
from cleanbook.stores.base import StoreKind

logger = get_logger(__name__)

PROBE_PRIMARY = "probe_primary"
PROBE_BOTH = "probe_both"


class ActiveStoreSelector:
    """
    Probe the primary and serve from it while it is healthy.

    Under PROBE_PRIMARY the secondary is assumed healthy once the primary
    fails, so a double outage only shows up when the call itself fails.
    PROBE_BOTH spends a second probe to fail fast in that case.
    """

    def __init__(self, prober: HealthProber, primary: StoreKind, policy: str = PROBE_PRIMARY):
        if policy not in (PROBE_PRIMARY, PROBE_BOTH):
            raise ValueError(f"unknown store selection policy: {policy}")
        self.prober = prober
        self.primary = primary
        self.policy = policy

    @property
    def secondary(self) -> StoreKind:
        return self.primary.other

    async def select_active_store(self) -> StoreKind:
        if await self.prober.check_health(self.primary):
            return self.primary

        if self.policy == PROBE_BOTH and not await self.prober.check_health(self.secondary):
            logger.error("no_healthy_store", primary=self.primary.value, secondary=self.secondary.value)
            raise StoreUnavailable(
                "no healthy store available",
                operation="select_active_store",
                attempts=(self.primary.value, self.secondary.value),
            )

        logger.warning("primary_store_unhealthy", primary=self.primary.value, fallback=self.secondary.value)
        return self.secondary
