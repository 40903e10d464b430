# cleanbook/db/models/payment.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from cleanbook.db.session import Base


class PaymentRow(Base):
    __tablename__ = "payments"
    __table_args__ = (
        sa.CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        sa.Index("ix_payments_user_id", "user_id"),
        sa.Index("ix_payments_appointment_id", "appointment_id"),
        sa.Index("ix_payments_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    appointment_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(3), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="pending")
    stripe_payment_intent_id: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
