#!/usr/bin/env python3
"""
Mirror writer tests: detached replication with its own error boundary.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from cleanbook.schemas.entities import User, UserCreate, UserUpdate
from cleanbook.services.mirror import MirrorOp
from cleanbook.stores.base import NativeQuery, StoreKind
from tests.mocks.stores import take_down

pytestmark = pytest.mark.integration


def new_user(email="ana@example.com"):
    return UserCreate(email=email, first_name="Ana", last_name="Lima")


async def test_create_mirrors_exactly_once_to_the_other_store(context, firestore_store, postgres_store):
    with patch.object(postgres_store, "upsert", new=AsyncMock()) as pg_upsert, \
            patch.object(firestore_store, "upsert", new=AsyncMock()) as fs_upsert:
        created = await context.router.create(User, new_user())
        await context.mirror.drain()

    pg_upsert.assert_awaited_once()
    fs_upsert.assert_not_awaited()
    table, record = pg_upsert.await_args.args
    assert table == "users"
    assert record["id"] == created.id
    assert record["first_name"] == "Ana"
    assert context.mirror.mirrored == 1


async def test_mirror_is_not_awaited_by_the_write(context, postgres_store):
    release = asyncio.Event()

    async def slow_upsert(table, record, **kwargs):
        await release.wait()

    with patch.object(postgres_store, "upsert", new=slow_upsert):
        created = await context.router.create(User, new_user())
        assert created.id
        assert context.mirror.pending == 1

        release.set()
        await context.mirror.drain()

    assert context.mirror.pending == 0
    assert context.mirror.mirrored == 1


async def test_failing_mirror_never_fails_the_write(context, postgres_store):
    with take_down(postgres_store, ["upsert"]):
        created = await context.router.create(User, new_user())
        await context.mirror.drain()

    assert created.email == "ana@example.com"
    assert context.mirror.failed == 1
    assert context.mirror.mirrored == 0
    assert await postgres_store.get("users", created.id) is None


async def test_mirror_follows_the_store_that_served_the_write(context, fake_firestore):
    fake_firestore.down = True
    created = await context.router.create(User, new_user())
    await context.mirror.drain()
    fake_firestore.down = False

    # Served by the relational store; the mirror targeted Firestore while it was down
    assert context.mirror.failed == 1
    assert fake_firestore.count("users") == 0
    assert created.id


async def test_update_mirrors_the_full_record(context, postgres_store):
    created = await context.router.create(User, new_user())
    await context.mirror.drain()

    await context.router.update(User, created.id, UserUpdate(last_name="Souza"))
    await context.mirror.drain()

    mirrored = await postgres_store.get("users", created.id)
    assert mirrored["last_name"] == "Souza"
    assert mirrored["first_name"] == "Ana"


async def test_delete_mirrors_with_cascade(context, fake_firestore, postgres_store):
    created = await context.router.create(User, new_user())
    await context.mirror.drain()
    await postgres_store.insert("appointments", {
        "user_id": created.id,
        "service_type": "deep clean",
        "appointment_date": datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc),
        "address": "12 Elm St",
    })

    assert await context.router.delete(User, created.id) is True
    await context.mirror.drain()

    assert fake_firestore.count("users") == 0
    assert await postgres_store.get("users", created.id) is None
    records, total = await postgres_store.query(_appointments_for(created.id))
    assert total == 0


async def test_nothing_is_mirrored_for_missing_records(context):
    assert await context.router.update(User, "missing", UserUpdate(first_name="X")) is None
    assert await context.router.delete(User, "missing") is False
    assert context.mirror.pending == 0
    assert context.mirror.mirrored == 0


async def test_disabled_mirror_schedules_nothing(make_context, postgres_store):
    context = make_context(MIRROR_ENABLED=False)

    created = await context.router.create(User, new_user())

    assert context.mirror.pending == 0
    assert context.mirror.mirror(MirrorOp.UPSERT, User, created, StoreKind.POSTGRES) is None
    assert await postgres_store.get("users", created.id) is None


def _appointments_for(user_id):
    return NativeQuery(table="appointments", order_by="created_at", filters={"user_id": user_id})
