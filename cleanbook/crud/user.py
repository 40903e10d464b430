# cleanbook/crud/user.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from cleanbook.core.errors import DataLayerError
from cleanbook.schemas.entities import ListQuery, Page, User, UserCreate, UserUpdate
from cleanbook.services.mapper import parse_timestamp
from cleanbook.services.router import OperationRouter

# Statistics read at most this many users in one page
STATS_SCAN_LIMIT = 1000


class UserStats(BaseModel):
    total: int
    by_role: dict[str, int]
    verified: int
    recent_registrations: int


class BulkFailure(BaseModel):
    id: str
    error: str


class BulkUpdateResult(BaseModel):
    successful: list[str] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)


async def create_user(router: OperationRouter, data: UserCreate) -> User:
    return await router.create(User, data)


async def get_user_by_id(router: OperationRouter, user_id: str) -> Optional[User]:
    return await router.get_by_id(User, user_id)


async def get_user_by_email(router: OperationRouter, email: str) -> Optional[User]:
    return await router.get_by_field(User, "email", email)


async def update_user(router: OperationRouter, user_id: str, changes: UserUpdate) -> Optional[User]:
    return await router.update(User, user_id, changes)


async def delete_user(router: OperationRouter, user_id: str) -> bool:
    """Delete the user with all their appointments and payments in the serving store."""
    return await router.delete(User, user_id)


async def list_users(
    router: OperationRouter,
    *,
    limit: int = 10,
    offset: int = 0,
    role: Optional[str] = None,
    search: Optional[str] = None,
) -> Page[User]:
    query = ListQuery(limit=limit, offset=offset, filters={"role": role}, search=search)
    return await router.list(User, query)


async def get_user_stats(router: OperationRouter, *, now: Optional[datetime] = None) -> UserStats:
    page = await list_users(router, limit=STATS_SCAN_LIMIT)
    week_ago = (now or datetime.now(timezone.utc)) - timedelta(days=7)

    by_role = {"client": 0, "admin": 0, "provider": 0}
    for user in page.items:
        by_role[user.role] = by_role.get(user.role, 0) + 1

    return UserStats(
        total=page.total,
        by_role=by_role,
        verified=sum(1 for u in page.items if u.is_verified),
        recent_registrations=sum(
            1 for u in page.items if u.created_at and parse_timestamp(u.created_at) >= week_ago
        ),
    )


async def bulk_update_users(router: OperationRouter, user_ids: Iterable[str], changes: UserUpdate) -> BulkUpdateResult:
    """Apply the same change to many users concurrently, collecting per-user outcomes."""
    result = BulkUpdateResult()

    async def _one(user_id: str) -> None:
        try:
            updated = await update_user(router, user_id, changes)
        except DataLayerError as exc:
            result.failed.append(BulkFailure(id=user_id, error=exc.message))
            return
        if updated is None:
            result.failed.append(BulkFailure(id=user_id, error="User not found"))
        else:
            result.successful.append(user_id)

    await asyncio.gather(*(_one(uid) for uid in dict.fromkeys(user_ids)))
    return result
