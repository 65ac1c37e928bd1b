"""Domain layer package exposing pure business abstractions."""

from . import entities
from . import interfaces
from .value_objects import TenantId, UploadId, UserId

__all__ = [
    "entities",
    "interfaces",
    "TenantId",
    "UploadId",
    "UserId",
]
