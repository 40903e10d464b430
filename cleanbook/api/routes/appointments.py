# cleanbook/api/routes/appointments.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cleanbook.api.deps import get_router, page_payload, require
from cleanbook.crud import appointment as appointment_crud
from cleanbook.schemas.entities import AppointmentCreate, AppointmentStatus
from cleanbook.services.router import OperationRouter

router = APIRouter(prefix="/appointments", tags=["appointments"])


class StatusChange(BaseModel):
    status: AppointmentStatus


@router.get("")
async def list_appointments(
    user_id: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: OperationRouter = Depends(get_router),
):
    result = await appointment_crud.list_appointments(
        db, user_id=user_id, status=status, search=search, limit=limit, offset=(page - 1) * limit
    )
    return {"status": "success", "data": page_payload(result)}


@router.post("", status_code=201)
async def create_appointment(payload: AppointmentCreate, db: OperationRouter = Depends(get_router)):
    appointment = await appointment_crud.create_appointment(db, payload)
    return {"status": "success", "data": {"appointment": appointment.model_dump()}}


@router.get("/{appointment_id}")
async def get_appointment(appointment_id: str, db: OperationRouter = Depends(get_router)):
    appointment = require(
        await appointment_crud.get_appointment_by_id(db, appointment_id), "Appointment", appointment_id
    )
    return {"status": "success", "data": {"appointment": appointment.model_dump()}}


@router.patch("/{appointment_id}/status")
async def change_status(appointment_id: str, payload: StatusChange, db: OperationRouter = Depends(get_router)):
    appointment = require(
        await appointment_crud.update_appointment_status(db, appointment_id, payload.status),
        "Appointment",
        appointment_id,
    )
    return {"status": "success", "data": {"appointment": appointment.model_dump()}}


@router.delete("/{appointment_id}")
async def delete_appointment(appointment_id: str, db: OperationRouter = Depends(get_router)):
    require(await appointment_crud.delete_appointment(db, appointment_id), "Appointment", appointment_id)
    return {"status": "success", "message": "Appointment deleted successfully"}
