# cleanbook/services/mapper.py
"""
Record mapper: the one place that knows both stores' field conventions.

Firestore documents use camelCase keys and server-assigned timestamps;
Postgres rows use snake_case columns and timestamps written by this layer.
Canonical entities carry ISO-8601 UTC strings for every timestamp field.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Type

from cleanbook.core.errors import ValidationFailure
from cleanbook.schemas.entities import Appointment, Entity, Payment, User
from cleanbook.stores.base import Cascade, NativeRecord, StoreKind


@dataclass(frozen=True)
class FieldMap:
    canonical: str
    document: str
    relational: str
    timestamp: bool = False

    def native(self, kind: StoreKind) -> str:
        return self.document if kind is StoreKind.FIRESTORE else self.relational


@dataclass(frozen=True)
class EntityMapping:
    model: Type[Entity]
    table: str
    fields: tuple[FieldMap, ...]
    unique: tuple[str, ...] = ()
    searchable: tuple[str, ...] = ()
    # (dependent entity model, canonical field on the dependent pointing here)
    children: tuple[tuple[Type[Entity], str], ...] = ()

    def field(self, canonical: str) -> FieldMap:
        for f in self.fields:
            if f.canonical == canonical:
                return f
        raise KeyError(f"{self.model.__name__} has no field {canonical!r}")


def _nullable(model: Type[Entity], name: str) -> bool:
    info = model.model_fields[name]
    return not info.is_required() and info.default is None


def _f(canonical: str, document: str, relational: Optional[str] = None, timestamp: bool = False) -> FieldMap:
    return FieldMap(canonical, document, relational or canonical, timestamp)


_COMMON_HEAD = (_f("id", "id"),)
_COMMON_TAIL = (
    _f("created_at", "createdAt", timestamp=True),
    _f("updated_at", "updatedAt", timestamp=True),
)

USER_MAPPING = EntityMapping(
    model=User,
    table="users",
    fields=_COMMON_HEAD + (
        _f("email", "email"),
        _f("first_name", "firstName"),
        _f("last_name", "lastName"),
        _f("phone", "phone"),
        _f("avatar", "avatar"),
        _f("role", "role"),
        _f("is_verified", "isVerified"),
    ) + _COMMON_TAIL,
    unique=("email",),
    searchable=("first_name", "last_name", "email"),
    children=((Appointment, "user_id"), (Payment, "user_id")),
)

APPOINTMENT_MAPPING = EntityMapping(
    model=Appointment,
    table="appointments",
    fields=_COMMON_HEAD + (
        _f("user_id", "userId"),
        _f("service_type", "serviceType"),
        _f("appointment_date", "appointmentDate", timestamp=True),
        _f("status", "status"),
        _f("address", "address"),
        _f("notes", "notes"),
        _f("price", "price"),
    ) + _COMMON_TAIL,
    searchable=("service_type", "address", "notes"),
    children=((Payment, "appointment_id"),),
)

PAYMENT_MAPPING = EntityMapping(
    model=Payment,
    table="payments",
    fields=_COMMON_HEAD + (
        _f("user_id", "userId"),
        _f("appointment_id", "appointmentId"),
        _f("amount", "amount"),
        _f("currency", "currency"),
        _f("status", "status"),
        _f("stripe_payment_intent_id", "stripePaymentIntentId"),
    ) + _COMMON_TAIL,
    unique=("stripe_payment_intent_id",),
    searchable=("stripe_payment_intent_id",),
)

MAPPINGS: dict[Type[Entity], EntityMapping] = {
    m.model: m for m in (USER_MAPPING, APPOINTMENT_MAPPING, PAYMENT_MAPPING)
}


# ---------- Timestamp normalization ----------

def to_iso(value: Any) -> Optional[str]:
    """Normalize a native or canonical timestamp to an ISO-8601 UTC string."""
    if value is None:
        return None
    if isinstance(value, str):
        value = parse_timestamp(value)
    if not isinstance(value, datetime):
        raise TypeError(f"unsupported timestamp value: {type(value).__name__}")
    if value.tzinfo is None:
        # Naive values come back from SQLite and always mean UTC
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return datetime(
        value.year, value.month, value.day, value.hour, value.minute, value.second,
        value.microsecond, tzinfo=timezone.utc,
    ).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Turn an ISO string or datetime into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"unsupported timestamp value: {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RecordMapper:
    """Bidirectional translation between native records and canonical entities."""

    def __init__(self, mappings: Optional[dict[Type[Entity], EntityMapping]] = None):
        self.mappings = mappings or MAPPINGS

    def mapping(self, entity_type: Type[Entity]) -> EntityMapping:
        try:
            return self.mappings[entity_type]
        except KeyError:
            raise KeyError(f"no mapping registered for {entity_type.__name__}") from None

    def table(self, entity_type: Type[Entity]) -> str:
        return self.mapping(entity_type).table

    def native_field(self, kind: StoreKind, entity_type: Type[Entity], canonical: str) -> str:
        return self.mapping(entity_type).field(canonical).native(kind)

    def unique_fields(self, kind: StoreKind, entity_type: Type[Entity]) -> tuple[str, ...]:
        m = self.mapping(entity_type)
        return tuple(m.field(name).native(kind) for name in m.unique)

    def search_fields(self, kind: StoreKind, entity_type: Type[Entity]) -> tuple[str, ...]:
        m = self.mapping(entity_type)
        return tuple(m.field(name).native(kind) for name in m.searchable)

    def order_field(self, kind: StoreKind, entity_type: Type[Entity]) -> str:
        return self.native_field(kind, entity_type, "created_at")

    def cascade(self, kind: StoreKind, entity_type: Type[Entity]) -> tuple[Cascade, ...]:
        return tuple(
            Cascade(self.table(child), self.native_field(kind, child, fk))
            for child, fk in self.mapping(entity_type).children
        )

    # ---------- Records ----------

    def to_canonical(self, kind: StoreKind, entity_type: Type[Entity], record: NativeRecord) -> Entity:
        data = {}
        for f in self.mapping(entity_type).fields:
            key = f.native(kind)
            if key not in record:
                continue
            value = record[key]
            data[f.canonical] = to_iso(value) if f.timestamp else value
        return entity_type.model_validate(data)

    def from_canonical(self, kind: StoreKind, entity: Entity) -> NativeRecord:
        return self.native_fields(kind, type(entity), entity.model_dump())

    def native_fields(self, kind: StoreKind, entity_type: Type[Entity], data: dict[str, Any]) -> NativeRecord:
        """Translate a (possibly partial) canonical dict into native keys and values."""
        mapping = self.mapping(entity_type)
        record: NativeRecord = {}
        for name, value in data.items():
            try:
                f = mapping.field(name)
            except KeyError:
                raise ValidationFailure(
                    f"{entity_type.__name__} has no field {name!r}", field=name
                ) from None
            if value is None and not _nullable(mapping.model, name):
                raise ValidationFailure(f"{name} cannot be null", field=name)
            if f.timestamp and value is not None:
                try:
                    value = parse_timestamp(value)
                except (TypeError, ValueError) as exc:
                    raise ValidationFailure(
                        f"{name} is not a valid ISO-8601 timestamp: {value!r}", field=name
                    ) from exc
            record[f.native(kind)] = value
        return record
