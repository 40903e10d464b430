# cleanbook/crud/appointment.py

from __future__ import annotations

from typing import Optional

from cleanbook.schemas.entities import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    ListQuery,
    Page,
)
from cleanbook.services.router import OperationRouter

# Per-user listings are small; read them in one page
USER_LISTING_LIMIT = 1000


async def create_appointment(router: OperationRouter, data: AppointmentCreate) -> Appointment:
    return await router.create(Appointment, data)


async def get_appointment_by_id(router: OperationRouter, appointment_id: str) -> Optional[Appointment]:
    return await router.get_by_id(Appointment, appointment_id)


async def update_appointment(
    router: OperationRouter, appointment_id: str, changes: AppointmentUpdate
) -> Optional[Appointment]:
    return await router.update(Appointment, appointment_id, changes)


async def update_appointment_status(
    router: OperationRouter, appointment_id: str, status: AppointmentStatus
) -> Optional[Appointment]:
    # Transitions are whatever the caller asks for; no state machine here
    return await router.update(Appointment, appointment_id, AppointmentUpdate(status=status))


async def delete_appointment(router: OperationRouter, appointment_id: str) -> bool:
    """Delete the appointment and its payments in the serving store."""
    return await router.delete(Appointment, appointment_id)


async def list_appointments(
    router: OperationRouter,
    *,
    user_id: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    search: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> Page[Appointment]:
    query = ListQuery(
        limit=limit,
        offset=offset,
        filters={"user_id": user_id, "status": status},
        search=search,
    )
    return await router.list(Appointment, query)


async def get_user_appointments(router: OperationRouter, user_id: str) -> list[Appointment]:
    page = await list_appointments(router, user_id=user_id, limit=USER_LISTING_LIMIT)
    return page.items
