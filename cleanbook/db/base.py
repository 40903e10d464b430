# cleanbook/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine

from cleanbook.db.models.user import UserRow
from cleanbook.db.models.appointment import AppointmentRow
from cleanbook.db.models.payment import PaymentRow
from cleanbook.db.models.health import HealthRow
from cleanbook.db.session import Base

# Table name -> ORM model, used by the relational store adapter
TABLES = {
    UserRow.__tablename__: UserRow,
    AppointmentRow.__tablename__: AppointmentRow,
    PaymentRow.__tablename__: PaymentRow,
}


async def init_db(engine: AsyncEngine):
    """Create all tables and seed the health-check row"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        existing = await conn.execute(sa.select(HealthRow.id).limit(1))
        if existing.first() is None:
            await conn.execute(sa.insert(HealthRow).values(id="test", status="ok"))
