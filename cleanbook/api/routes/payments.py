# cleanbook/api/routes/payments.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cleanbook.api.deps import get_router, page_payload, require
from cleanbook.crud import payment as payment_crud
from cleanbook.schemas.entities import PaymentCreate, PaymentStatus
from cleanbook.services.router import OperationRouter

router = APIRouter(prefix="/payments", tags=["payments"])


class StatusChange(BaseModel):
    status: PaymentStatus


@router.get("")
async def list_payments(
    user_id: Optional[str] = None,
    appointment_id: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: OperationRouter = Depends(get_router),
):
    result = await payment_crud.list_payments(
        db, user_id=user_id, appointment_id=appointment_id, status=status,
        limit=limit, offset=(page - 1) * limit,
    )
    return {"status": "success", "data": page_payload(result)}


@router.post("", status_code=201)
async def create_payment(payload: PaymentCreate, db: OperationRouter = Depends(get_router)):
    payment = await payment_crud.create_payment(db, payload)
    return {"status": "success", "data": {"payment": payment.model_dump()}}


@router.get("/intent/{intent_id}")
async def get_by_intent(intent_id: str, db: OperationRouter = Depends(get_router)):
    payment = require(await payment_crud.get_payment_by_intent_id(db, intent_id), "Payment", intent_id)
    return {"status": "success", "data": {"payment": payment.model_dump()}}


@router.patch("/intent/{intent_id}/status")
async def change_status(intent_id: str, payload: StatusChange, db: OperationRouter = Depends(get_router)):
    payment = require(
        await payment_crud.update_payment_status(db, intent_id, payload.status), "Payment", intent_id
    )
    return {"status": "success", "data": {"payment": payment.model_dump()}}
