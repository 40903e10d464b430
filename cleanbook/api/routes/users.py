# cleanbook/api/routes/users.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cleanbook.api.deps import get_router, page_payload, require
from cleanbook.crud import appointment as appointment_crud
from cleanbook.crud import payment as payment_crud
from cleanbook.crud import user as user_crud
from cleanbook.schemas.entities import UserCreate, UserRole, UserUpdate
from cleanbook.services.router import OperationRouter

router = APIRouter(prefix="/users", tags=["users"])


class BulkUpdateRequest(BaseModel):
    user_ids: list[str]
    updates: UserUpdate


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    search: Optional[str] = Query(None, max_length=100),
    db: OperationRouter = Depends(get_router),
):
    result = await user_crud.list_users(db, limit=limit, offset=(page - 1) * limit, role=role, search=search)
    return {"status": "success", "data": page_payload(result)}


@router.post("", status_code=201)
async def create_user(payload: UserCreate, db: OperationRouter = Depends(get_router)):
    user = await user_crud.create_user(db, payload)
    return {"status": "success", "data": {"user": user.model_dump()}}


@router.get("/stats")
async def user_stats(db: OperationRouter = Depends(get_router)):
    stats = await user_crud.get_user_stats(db)
    return {"status": "success", "data": {"statistics": stats.model_dump()}}


@router.put("/bulk-update")
async def bulk_update(payload: BulkUpdateRequest, db: OperationRouter = Depends(get_router)):
    results = await user_crud.bulk_update_users(db, payload.user_ids, payload.updates)
    return {
        "status": "success",
        "message": f"Bulk update completed. {len(results.successful)} successful, {len(results.failed)} failed.",
        "data": {"results": results.model_dump()},
    }


@router.get("/{user_id}")
async def get_user(user_id: str, db: OperationRouter = Depends(get_router)):
    user = require(await user_crud.get_user_by_id(db, user_id), "User", user_id)
    appointments = await appointment_crud.get_user_appointments(db, user_id)
    payments = await payment_crud.get_user_payments(db, user_id)
    return {
        "status": "success",
        "data": {
            "user": user.model_dump(),
            "appointments": [a.model_dump() for a in appointments],
            "payments": [p.model_dump() for p in payments],
        },
    }


@router.put("/{user_id}")
async def update_user(user_id: str, payload: UserUpdate, db: OperationRouter = Depends(get_router)):
    user = require(await user_crud.update_user(db, user_id, payload), "User", user_id)
    return {"status": "success", "data": {"user": user.model_dump()}}


@router.delete("/{user_id}")
async def delete_user(user_id: str, db: OperationRouter = Depends(get_router)):
    require(await user_crud.delete_user(db, user_id), "User", user_id)
    return {"status": "success", "message": "User deleted successfully"}
