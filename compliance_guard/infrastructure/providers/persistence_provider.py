"""Provider utilities for profile, usage counter and role stores."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from compliance_guard.core.config import get_settings
from compliance_guard.domain.entities.role import Role
from compliance_guard.domain.interfaces import (
    IProfileStore,
    IRoleRepository,
    IUsageCounterStore,
)
from compliance_guard.infrastructure.persistence.in_memory_stores import (
    CachedUsageCounterStore,
    InMemoryProfileStore,
    InMemoryRoleRepository,
    InMemoryUsageCounterStore,
)

logger = structlog.get_logger(__name__)

_profile_store: Optional[IProfileStore] = None
_counter_store: Optional[IUsageCounterStore] = None
_role_repository: Optional[IRoleRepository] = None
_persistence_lock = asyncio.Lock()


async def get_profile_store() -> IProfileStore:
    """Return singleton profile store."""
    global _profile_store

    if _profile_store is not None:
        return _profile_store

    async with _persistence_lock:
        if _profile_store is not None:
            return _profile_store

        settings = get_settings()
        _profile_store = InMemoryProfileStore(trial_length_days=settings.TRIAL_LENGTH_DAYS)
        logger.info("Profile store initialized", trial_length_days=settings.TRIAL_LENGTH_DAYS)
        return _profile_store


async def get_usage_counter_store() -> IUsageCounterStore:
    """Return singleton usage counter store behind a write-invalidated cache."""
    global _counter_store

    if _counter_store is not None:
        return _counter_store

    async with _persistence_lock:
        if _counter_store is not None:
            return _counter_store

        _counter_store = CachedUsageCounterStore(InMemoryUsageCounterStore())
        logger.info("Usage counter store initialized", cached=True)
        return _counter_store


async def get_role_repository() -> IRoleRepository:
    """Return singleton role repository."""
    global _role_repository

    if _role_repository is not None:
        return _role_repository

    async with _persistence_lock:
        if _role_repository is None:
            settings = get_settings()
            _role_repository = InMemoryRoleRepository(default_role=Role(settings.DEFAULT_USER_ROLE))
        return _role_repository


async def reset_persistence() -> None:
    """Reset all store singletons (primarily for testing)."""
    global _profile_store, _counter_store, _role_repository
    async with _persistence_lock:
        _profile_store = None
        _counter_store = None
        _role_repository = None


__all__ = [
    "get_profile_store",
    "get_usage_counter_store",
    "get_role_repository",
    "reset_persistence",
]
