#!/usr/bin/env python3
"""
Operation router tests: canonical results, failover and error surfacing.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import DataError
from sqlalchemy.ext.asyncio import AsyncSession

from cleanbook.core.errors import OperationFailure, StoreUnavailable, UniquenessViolation, ValidationFailure
from cleanbook.schemas.entities import ListQuery, User, UserCreate, UserUpdate
from cleanbook.services.mapper import parse_timestamp
from cleanbook.stores.base import StoreKind
from tests.mocks.stores import take_down

pytestmark = pytest.mark.integration


def new_user(email="ana@example.com", **overrides):
    data = dict(email=email, first_name="Ana", last_name="Lima", phone="+15875550101")
    data.update(overrides)
    return UserCreate(**data)


@pytest.mark.parametrize("primary", ["firestore", "postgres"])
async def test_create_then_get_is_deep_equal(make_context, primary):
    router = make_context(PRIMARY_STORE=primary).router

    created = await router.create(User, new_user())
    fetched = await router.get_by_id(User, created.id)

    assert fetched == created
    assert created.created_at is not None
    assert created.created_at == created.updated_at
    assert created.role == "client"


async def test_mirrored_copy_matches_served_copy(context, stores):
    created = await context.router.create(User, new_user())
    await context.mirror.drain()

    record = await stores[StoreKind.POSTGRES].get("users", created.id)
    assert context.mapper.to_canonical(StoreKind.POSTGRES, User, record) == created


async def test_lookup_by_unique_field(router):
    created = await router.create(User, new_user())

    assert await router.get_by_field(User, "email", "ana@example.com") == created
    assert await router.get_by_field(User, "email", "nobody@example.com") is None


async def test_missing_records_are_empty_results(router):
    assert await router.get_by_id(User, "missing") is None
    assert await router.update(User, "missing", UserUpdate(first_name="X")) is None
    assert await router.delete(User, "missing") is False


async def test_partial_update_keeps_other_fields(router):
    created = await router.create(User, new_user())

    updated = await router.update(User, created.id, UserUpdate(last_name="Souza"))

    assert updated.last_name == "Souza"
    assert updated.first_name == "Ana"
    assert updated.phone == "+15875550101"
    assert updated.created_at == created.created_at
    assert parse_timestamp(updated.updated_at) > parse_timestamp(created.updated_at)


async def test_failing_active_store_is_retried_once_on_the_other(router, firestore_store, postgres_store):
    with patch.object(firestore_store, "insert", new=AsyncMock(side_effect=OperationFailure("boom"))) as failing, \
            patch.object(postgres_store, "insert", new=AsyncMock(wraps=postgres_store.insert)) as fallback:
        created = await router.create(User, new_user())

    failing.assert_awaited_once()
    fallback.assert_awaited_once()
    assert await postgres_store.get("users", created.id) is not None


async def test_both_stores_failing_raises_one_store_unavailable(router, firestore_store, postgres_store):
    with take_down(firestore_store, ["insert"]) as fs, take_down(postgres_store, ["insert"]) as pg:
        with pytest.raises(StoreUnavailable) as exc_info:
            await router.create(User, new_user())

    assert fs["insert"].await_count == 1
    assert pg["insert"].await_count == 1
    assert exc_info.value.attempts == ("firestore", "postgres")
    assert exc_info.value.operation == "create"
    assert isinstance(exc_info.value.__cause__, OperationFailure)


async def test_unhealthy_primary_routes_to_secondary(router, fake_firestore, postgres_store):
    fake_firestore.down = True

    created = await router.create(User, new_user())

    assert await postgres_store.get("users", created.id) is not None
    assert fake_firestore.count("users") == 0


@pytest.mark.parametrize("primary", ["firestore", "postgres"])
async def test_duplicate_email_is_not_retried(make_context, stores, primary):
    context = make_context(PRIMARY_STORE=primary)
    await context.router.create(User, new_user())
    await context.mirror.drain()

    other = stores[StoreKind(primary).other]
    with patch.object(other, "insert", new=AsyncMock()) as other_insert:
        with pytest.raises(UniquenessViolation) as exc_info:
            await context.router.create(User, new_user(first_name="Other"))

    assert isinstance(exc_info.value, ValidationFailure)
    assert exc_info.value.field == "email"
    other_insert.assert_not_awaited()


async def test_update_to_taken_email_is_rejected(router):
    await router.create(User, new_user("a@example.com"))
    second = await router.create(User, new_user("b@example.com"))

    with pytest.raises(UniquenessViolation):
        await router.update(User, second.id, UserUpdate(email="a@example.com"))


async def test_list_filters_and_drops_empty_filters(router):
    await router.create(User, new_user("a@example.com", role="admin"))
    await router.create(User, new_user("b@example.com"))

    admins = await router.list(User, ListQuery(filters={"role": "admin"}))
    everyone = await router.list(User, ListQuery(filters={"role": None}))

    assert [u.email for u in admins.items] == ["a@example.com"]
    assert admins.total == 1
    assert everyone.total == 2


async def test_write_then_read_across_a_flap_may_be_stale(context, fake_firestore):
    """No reconciliation runs after failover, so the primary can lag."""
    created = await context.router.create(User, new_user())
    await context.mirror.drain()

    fake_firestore.down = True
    updated = await context.router.update(User, created.id, UserUpdate(first_name="Renamed"))
    await context.mirror.drain()
    fake_firestore.down = False

    assert updated.first_name == "Renamed"
    assert context.mirror.failed == 1
    stale = await context.router.get_by_id(User, created.id)
    assert stale.first_name == "Ana"


@pytest.mark.parametrize("primary", ["firestore", "postgres"])
async def test_null_for_required_field_is_rejected_before_any_write(make_context, stores, primary):
    context = make_context(PRIMARY_STORE=primary)
    created = await context.router.create(User, new_user())
    await context.mirror.drain()

    with patch.object(stores[StoreKind.FIRESTORE], "update", new=AsyncMock()) as fs_update, \
            patch.object(stores[StoreKind.POSTGRES], "update", new=AsyncMock()) as pg_update:
        with pytest.raises(ValidationFailure) as exc_info:
            await context.router.update(User, created.id, {"email": None})

    assert exc_info.value.field == "email"
    fs_update.assert_not_awaited()
    pg_update.assert_not_awaited()
    assert context.mirror.pending == 0
    assert (await context.router.get_by_id(User, created.id)).email == "ana@example.com"


async def test_nullable_field_can_be_cleared(router):
    created = await router.create(User, new_user())

    updated = await router.update(User, created.id, {"phone": None})

    assert updated.phone is None
    assert updated.email == created.email


async def test_value_rejected_by_column_type_is_not_retried(make_context, firestore_store):
    router = make_context(PRIMARY_STORE=StoreKind.POSTGRES.value).router
    too_long = DataError("INSERT INTO users ...", {}, Exception("value too long for type character varying(120)"))

    with patch.object(AsyncSession, "commit", new=AsyncMock(side_effect=too_long)), \
            patch.object(firestore_store, "insert", new=AsyncMock()) as fs_insert:
        with pytest.raises(ValidationFailure) as exc_info:
            await router.create(User, new_user())

    assert not isinstance(exc_info.value, UniquenessViolation)
    assert exc_info.value.store == "postgres"
    assert "too long" in exc_info.value.message
    fs_insert.assert_not_awaited()
