"""In-memory persistence for profiles, counters and roles."""

from .in_memory_stores import (
    CachedUsageCounterStore,
    InMemoryProfileStore,
    InMemoryRoleRepository,
    InMemoryUsageCounterStore,
)

__all__ = [
    "CachedUsageCounterStore",
    "InMemoryProfileStore",
    "InMemoryRoleRepository",
    "InMemoryUsageCounterStore",
]
