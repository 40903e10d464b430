# cleanbook/schemas/entities.py
"""
Canonical, store-agnostic entities.

Timestamps are ISO-8601 UTC strings; the record mapper converts them to and
from each store's native representation.
"""
from __future__ import annotations

from typing import Any, ClassVar, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

UserRole = Literal["client", "admin", "provider"]
AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]


class Entity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PartialUpdate(BaseModel):
    """Base for partial updates: fields may be omitted, but only nullable ones may be set to null."""

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulled = sorted(name for name in self.model_fields_set
                        if getattr(self, name) is None and name not in self.nullable_fields)
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self


# ---------- Users ----------

class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=32)
    avatar: Optional[str] = None
    role: UserRole = "client"
    is_verified: bool = False


class UserUpdate(PartialUpdate):
    nullable_fields: ClassVar[frozenset[str]] = frozenset({"phone", "avatar"})

    email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=32)
    avatar: Optional[str] = None
    role: Optional[UserRole] = None
    is_verified: Optional[bool] = None


class User(Entity):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole = "client"
    is_verified: bool = False


# ---------- Appointments ----------

class AppointmentCreate(BaseModel):
    user_id: str = Field(..., max_length=64)
    service_type: str = Field(..., min_length=1, max_length=120)
    appointment_date: str
    status: AppointmentStatus = "pending"
    address: str
    notes: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)


class AppointmentUpdate(PartialUpdate):
    nullable_fields: ClassVar[frozenset[str]] = frozenset({"notes", "price"})

    service_type: Optional[str] = Field(default=None, min_length=1, max_length=120)
    appointment_date: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)


class Appointment(Entity):
    user_id: str
    service_type: str
    appointment_date: str
    status: AppointmentStatus = "pending"
    address: str
    notes: Optional[str] = None
    price: Optional[float] = None


# ---------- Payments ----------

class PaymentCreate(BaseModel):
    user_id: str = Field(..., max_length=64)
    appointment_id: str = Field(..., max_length=64)
    amount: float = Field(..., ge=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    status: PaymentStatus = "pending"
    stripe_payment_intent_id: str = Field(..., min_length=1, max_length=255)


class PaymentUpdate(PartialUpdate):
    amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    status: Optional[PaymentStatus] = None


class Payment(Entity):
    user_id: str
    appointment_id: str
    amount: float
    currency: str
    status: PaymentStatus = "pending"
    stripe_payment_intent_id: str


# ---------- Listing ----------

T = TypeVar("T", bound=Entity)


class ListQuery(BaseModel):
    limit: int = Field(default=10, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
    # Equality filters keyed by canonical field name
    filters: dict[str, Any] = Field(default_factory=dict)
    search: Optional[str] = None


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.offset + self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.offset > 0
