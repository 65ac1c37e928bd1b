"""Domain value objects used across aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


def _coerce_uuid(value: Any, *, field_name: str) -> UUID:
    """Convert strings to UUID instances while validating type."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        return UUID(value)
    raise TypeError(f"{field_name} must be a UUID-compatible value")


@dataclass(frozen=True)
class TenantId:
    """Strongly-typed tenant identifier used for multi-tenant isolation."""

    value: UUID

    def __init__(self, value: Any):
        object.__setattr__(self, "value", _coerce_uuid(value, field_name="tenant_id"))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Identifier for an authenticated dashboard user."""

    value: UUID

    def __init__(self, value: Any):
        object.__setattr__(self, "value", _coerce_uuid(value, field_name="user_id"))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UploadId:
    """Stable identity of one upload attempt, used to correlate async results."""

    value: UUID

    def __init__(self, value: Any):
        object.__setattr__(self, "value", _coerce_uuid(value, field_name="upload_id"))

    def __str__(self) -> str:
        return str(self.value)


__all__ = ["TenantId", "UserId", "UploadId"]
