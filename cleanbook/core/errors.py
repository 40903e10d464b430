# cleanbook/core/errors.py
"""
Error taxonomy for the data layer.

Only StoreUnavailable, NotFound and ValidationFailure are meant to reach the
route layer. ProbeFailure and MirrorFailure are logged where they happen;
OperationFailure is absorbed by the router's fallback retry.
"""
from __future__ import annotations

from typing import Optional


class DataLayerError(Exception):
    """Base class for every error raised by the data layer."""

    def __init__(self, message: str, *, store: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.store = store

    def to_dict(self) -> dict:
        data = {"error": type(self).__name__, "message": self.message}
        if self.store:
            data["store"] = self.store
        return data


class ProbeFailure(DataLayerError):
    """A health probe errored or timed out."""


class OperationFailure(DataLayerError):
    """A single call against one store failed."""


class StoreUnavailable(DataLayerError):
    """Neither store could serve the operation."""

    def __init__(self, message: str, *, operation: Optional[str] = None, attempts: tuple = ()):
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.operation:
            data["operation"] = self.operation
        if self.attempts:
            data["attempted_stores"] = list(self.attempts)
        return data


class NotFound(DataLayerError):
    """A record the caller required does not exist."""

    def __init__(self, entity: str, key: str):
        super().__init__(f"{entity} {key} not found")
        self.entity = entity
        self.key = key


class ValidationFailure(DataLayerError):
    """The store's schema rejected caller-supplied data."""

    def __init__(self, message: str, *, store: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message, store=store)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class UniquenessViolation(ValidationFailure):
    """A unique field (email, payment intent id) already holds this value."""


class MirrorFailure(DataLayerError):
    """A background mirror write failed."""
