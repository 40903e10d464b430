# cleanbook/crud/payment.py

from __future__ import annotations

from typing import Optional

from cleanbook.schemas.entities import ListQuery, Page, Payment, PaymentCreate, PaymentStatus, PaymentUpdate
from cleanbook.services.router import OperationRouter

USER_LISTING_LIMIT = 1000


async def create_payment(router: OperationRouter, data: PaymentCreate) -> Payment:
    return await router.create(Payment, data)


async def get_payment_by_id(router: OperationRouter, payment_id: str) -> Optional[Payment]:
    return await router.get_by_id(Payment, payment_id)


async def get_payment_by_intent_id(router: OperationRouter, intent_id: str) -> Optional[Payment]:
    return await router.get_by_field(Payment, "stripe_payment_intent_id", intent_id)


async def update_payment(router: OperationRouter, payment_id: str, changes: PaymentUpdate) -> Optional[Payment]:
    return await router.update(Payment, payment_id, changes)


async def update_payment_status(
    router: OperationRouter, intent_id: str, status: PaymentStatus
) -> Optional[Payment]:
    """
    Set the status of the payment behind a payment intent.

    Lookup and update are two routed operations, so each may be served by a
    different store if the primary flaps in between.
    """
    payment = await get_payment_by_intent_id(router, intent_id)
    if payment is None:
        return None
    return await router.update(Payment, payment.id, PaymentUpdate(status=status))


async def delete_payment(router: OperationRouter, payment_id: str) -> bool:
    return await router.delete(Payment, payment_id)


async def list_payments(
    router: OperationRouter,
    *,
    user_id: Optional[str] = None,
    appointment_id: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    limit: int = 10,
    offset: int = 0,
) -> Page[Payment]:
    query = ListQuery(
        limit=limit,
        offset=offset,
        filters={"user_id": user_id, "appointment_id": appointment_id, "status": status},
    )
    return await router.list(Payment, query)


async def get_user_payments(router: OperationRouter, user_id: str) -> list[Payment]:
    page = await list_payments(router, user_id=user_id, limit=USER_LISTING_LIMIT)
    return page.items
