"""
In-memory implementations of the profile, counter and role ports.

Used for local development and tests. Production deployments bind the ports
to the hosted backend's tables instead.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog

from compliance_guard.domain.entities.role import Role, UserRole
from compliance_guard.domain.entities.subscription import (
    SubscriptionProfile,
    SubscriptionTier,
    UsageCounters,
    UsageDimension,
    UsageLimits,
)
from compliance_guard.domain.interfaces import (
    IProfileStore,
    IRoleRepository,
    IUsageCounterStore,
)
from compliance_guard.domain.value_objects import TenantId, UserId

logger = structlog.get_logger(__name__)


class InMemoryProfileStore(IProfileStore):
    """
    Dictionary-backed subscription profiles.

    When ``trial_length_days`` is set, tenants seen for the first time are
    provisioned a trial profile, the way signup does on the hosted backend.
    """

    def __init__(self, trial_length_days: Optional[int] = None):
        self.trial_length_days = trial_length_days
        self._profiles: Dict[str, SubscriptionProfile] = {}
        self._lock = asyncio.Lock()

    async def get_profile(self, tenant_id: str) -> Optional[SubscriptionProfile]:
        tenant_id = str(tenant_id)
        async with self._lock:
            profile = self._profiles.get(tenant_id)
            if profile is None and self.trial_length_days is not None:
                profile = self._new_trial(tenant_id, datetime.now(timezone.utc))
                self._profiles[tenant_id] = profile
                logger.info(
                    "Trial profile provisioned",
                    tenant_id=tenant_id,
                    trial_end_date=profile.trial_end_date.isoformat(),
                )
            return profile

    async def save_profile(self, profile: SubscriptionProfile) -> None:
        async with self._lock:
            self._profiles[str(profile.tenant_id)] = profile

    async def provision_trial(self, tenant_id: str, now: Optional[datetime] = None) -> SubscriptionProfile:
        """Create (or replace) a trial profile starting at ``now``."""
        profile = self._new_trial(str(tenant_id), now or datetime.now(timezone.utc))
        await self.save_profile(profile)
        return profile

    async def change_tier(self, tenant_id: str, tier: SubscriptionTier) -> SubscriptionProfile:
        """
        Move a tenant to another tier with that tier's default limits.

        Raises:
            KeyError: If the tenant has no profile
        """
        tier = SubscriptionTier(tier)
        async with self._lock:
            current = self._profiles[str(tenant_id)]
            updated = SubscriptionProfile(
                tenant_id=current.tenant_id,
                tier=tier,
                usage_limits=UsageLimits.for_tier(tier),
                trial_start_date=current.trial_start_date,
                trial_end_date=current.trial_end_date,
                subscription_updated_at=datetime.now(timezone.utc),
            )
            self._profiles[str(tenant_id)] = updated
        logger.info("Subscription tier changed", tenant_id=str(tenant_id), tier=tier.value)
        return updated

    def _new_trial(self, tenant_id: str, now: datetime) -> SubscriptionProfile:
        length = self.trial_length_days if self.trial_length_days is not None else 14
        return SubscriptionProfile(
            tenant_id=TenantId(tenant_id),
            tier=SubscriptionTier.TRIAL,
            usage_limits=UsageLimits.for_tier(SubscriptionTier.TRIAL),
            trial_start_date=now,
            trial_end_date=now + timedelta(days=length),
            subscription_updated_at=now,
        )

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "InMemoryProfileStore",
            "profiles": len(self._profiles),
        }


class InMemoryUsageCounterStore(IUsageCounterStore):
    """
    Dictionary-backed usage counters.

    Writes are serialized by a single lock so concurrent increments for the
    same tenant never lose an update. Unknown tenants read as fresh counters.
    """

    def __init__(self):
        self._counters: Dict[str, UsageCounters] = {}
        self._lock = asyncio.Lock()

    async def get_counters(self, tenant_id: str) -> Optional[UsageCounters]:
        async with self._lock:
            return self._counters.get(str(tenant_id), UsageCounters())

    async def set_counters(self, tenant_id: str, counters: UsageCounters) -> None:
        async with self._lock:
            self._counters[str(tenant_id)] = counters

    async def increment(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        async with self._lock:
            current = self._counters.get(str(tenant_id), UsageCounters())
            updated = current.incremented(UsageDimension(dimension), amount)
            self._counters[str(tenant_id)] = updated
        logger.debug(
            "Usage counter incremented",
            tenant_id=str(tenant_id),
            dimension=UsageDimension(dimension).value,
            value=updated.count_for(dimension),
        )
        return updated

    async def decrement(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        async with self._lock:
            current = self._counters.get(str(tenant_id), UsageCounters())
            updated = current.decremented(UsageDimension(dimension), amount)
            self._counters[str(tenant_id)] = updated
        logger.debug(
            "Usage counter decremented",
            tenant_id=str(tenant_id),
            dimension=UsageDimension(dimension).value,
            value=updated.count_for(dimension),
        )
        return updated

    async def reset_monthly(self, tenant_id: str) -> UsageCounters:
        async with self._lock:
            current = self._counters.get(str(tenant_id), UsageCounters())
            updated = current.with_monthly_reset()
            self._counters[str(tenant_id)] = updated
        logger.info("Monthly usage reset", tenant_id=str(tenant_id))
        return updated

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "InMemoryUsageCounterStore",
            "tenants": len(self._counters),
        }


class CachedUsageCounterStore(IUsageCounterStore):
    """
    Read cache in front of another counter store.

    Entries have no TTL. Every write through this store drops the tenant's
    entry and bumps its generation. A read that started before a write only
    fills the cache if no write finished in the meantime.
    """

    def __init__(self, backend: IUsageCounterStore):
        self._backend = backend
        self._cache: Dict[str, UsageCounters] = {}
        self._generations: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._stats = {"hits": 0, "misses": 0, "invalidations": 0}

    async def get_counters(self, tenant_id: str) -> Optional[UsageCounters]:
        key = str(tenant_id)
        async with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._stats["hits"] += 1
                return cached
            self._stats["misses"] += 1
            generation = self._generations.get(key, 0)

        counters = await self._backend.get_counters(key)
        if counters is not None:
            async with self._lock:
                if self._generations.get(key, 0) == generation:
                    self._cache[key] = counters
        return counters

    async def invalidate(self, tenant_id: str) -> None:
        key = str(tenant_id)
        async with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            if self._cache.pop(key, None) is not None:
                self._stats["invalidations"] += 1
                logger.debug("Usage cache invalidated", tenant_id=key)

    async def increment(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        try:
            return await self._backend.increment(tenant_id, dimension, amount)
        finally:
            await self.invalidate(tenant_id)

    async def decrement(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        try:
            return await self._backend.decrement(tenant_id, dimension, amount)
        finally:
            await self.invalidate(tenant_id)

    async def reset_monthly(self, tenant_id: str) -> UsageCounters:
        try:
            return await self._backend.reset_monthly(tenant_id)
        finally:
            await self.invalidate(tenant_id)

    async def check_health(self) -> Dict[str, Any]:
        backend_health = await self._backend.check_health()
        return {
            "status": backend_health.get("status", "unknown"),
            "service": "CachedUsageCounterStore",
            "cache_size": len(self._cache),
            "stats": self._stats.copy(),
            "backend": backend_health,
        }


class InMemoryRoleRepository(IRoleRepository):
    """
    Dictionary-backed role assignments keyed by user id.

    With a ``default_role``, users without an assignment hold that role, the
    way new accounts are given the basic role on signup.
    """

    def __init__(self, default_role: Optional[Role] = None):
        self._roles: Dict[str, UserRole] = {}
        self._default_role = Role(default_role) if default_role is not None else None
        self._lock = asyncio.Lock()

    async def get_user_role(self, user_id: str) -> Optional[UserRole]:
        async with self._lock:
            assignment = self._roles.get(str(user_id))
        if assignment is None and self._default_role is not None:
            return UserRole(user_id=UserId(user_id), role=self._default_role)
        return assignment

    async def assign_role(self, role: UserRole) -> None:
        async with self._lock:
            self._roles[str(role.user_id)] = role
        logger.info("Role assigned", user_id=str(role.user_id), role=role.role.value)

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "InMemoryRoleRepository",
            "assignments": len(self._roles),
        }


__all__ = [
    "InMemoryProfileStore",
    "InMemoryUsageCounterStore",
    "CachedUsageCounterStore",
    "InMemoryRoleRepository",
]
