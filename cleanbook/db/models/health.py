# cleanbook/db/models/health.py

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from cleanbook.db.session import Base


class HealthRow(Base):
    """Reserved table read by the health probe."""
    __tablename__ = "_health"

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="ok")
