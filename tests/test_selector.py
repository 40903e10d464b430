#!/usr/bin/env python3
"""
Tests for active-store selection under both policies.
"""

from unittest.mock import AsyncMock

import pytest

from cleanbook.core.errors import StoreUnavailable
from cleanbook.services.selector import PROBE_BOTH, PROBE_PRIMARY, ActiveStoreSelector
from cleanbook.stores.base import StoreKind

pytestmark = pytest.mark.unit


def make_prober(**health):
    """Prober stub answering from a {store value: bool} map."""
    prober = AsyncMock()
    prober.check_health.side_effect = lambda kind: health[kind.value]
    return prober


async def test_healthy_primary_is_selected():
    prober = make_prober(firestore=True, postgres=True)
    selector = ActiveStoreSelector(prober, StoreKind.FIRESTORE)

    assert await selector.select_active_store() is StoreKind.FIRESTORE
    prober.check_health.assert_awaited_once_with(StoreKind.FIRESTORE)


async def test_unhealthy_primary_falls_back_without_probing_secondary():
    prober = make_prober(firestore=False, postgres=False)
    selector = ActiveStoreSelector(prober, StoreKind.FIRESTORE, PROBE_PRIMARY)

    assert await selector.select_active_store() is StoreKind.POSTGRES
    prober.check_health.assert_awaited_once_with(StoreKind.FIRESTORE)


async def test_postgres_can_be_primary():
    prober = make_prober(firestore=True, postgres=False)
    selector = ActiveStoreSelector(prober, StoreKind.POSTGRES)

    assert selector.secondary is StoreKind.FIRESTORE
    assert await selector.select_active_store() is StoreKind.FIRESTORE


async def test_probe_both_uses_healthy_secondary():
    prober = make_prober(firestore=False, postgres=True)
    selector = ActiveStoreSelector(prober, StoreKind.FIRESTORE, PROBE_BOTH)

    assert await selector.select_active_store() is StoreKind.POSTGRES
    assert prober.check_health.await_count == 2


async def test_probe_both_fails_fast_when_nothing_is_healthy():
    prober = make_prober(firestore=False, postgres=False)
    selector = ActiveStoreSelector(prober, StoreKind.FIRESTORE, PROBE_BOTH)

    with pytest.raises(StoreUnavailable) as exc_info:
        await selector.select_active_store()
    assert exc_info.value.attempts == ("firestore", "postgres")


async def test_selection_is_not_cached():
    health = {"firestore": False, "postgres": True}
    prober = make_prober(**health)
    prober.check_health.side_effect = lambda kind: health[kind.value]
    selector = ActiveStoreSelector(prober, StoreKind.FIRESTORE)

    assert await selector.select_active_store() is StoreKind.POSTGRES
    health["firestore"] = True
    assert await selector.select_active_store() is StoreKind.FIRESTORE


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        ActiveStoreSelector(make_prober(), StoreKind.FIRESTORE, "round_robin")
