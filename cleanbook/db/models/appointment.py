# cleanbook/db/models/appointment.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from cleanbook.db.session import Base


class AppointmentRow(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.Index("ix_appointments_user_id", "user_id"),
        sa.Index("ix_appointments_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    # No foreign key: mirrored rows may arrive before the user they point at
    user_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    service_type: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    appointment_date: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="pending")
    address: Mapped[str] = mapped_column(sa.Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(sa.Text)
    price: Mapped[float | None] = mapped_column(sa.Float)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
