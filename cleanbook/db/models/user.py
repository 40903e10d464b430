# cleanbook/db/models/user.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from cleanbook.db.session import Base


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.Index("ix_users_created_at", "created_at"),
    )

    # Ids are shared with the document store, so they are strings, not sequences
    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    email: Mapped[str] = mapped_column(sa.String(254), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    phone: Mapped[str | None] = mapped_column(sa.String(32))
    avatar: Mapped[str | None] = mapped_column(sa.Text)
    role: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="client")
    is_verified: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.false())

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
