"""
Admission control against live usage counters.

The guard itself is pure, so two requests reading the same counters could
both be admitted for the last free slot. The controller closes that gap:
admission and reservation happen under a per-tenant lock, and reserved but
not yet committed units count as used for later admissions.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Optional, Set, Tuple
from uuid import UUID, uuid4

import structlog

from compliance_guard.domain.entities.subscription import (
    SubscriptionProfile,
    UsageCounters,
    UsageDimension,
    UsageLimits,
)
from compliance_guard.domain.exceptions import AdmissionDeniedError
from compliance_guard.domain.interfaces import IProfileStore, IUsageCounterStore
from compliance_guard.domain.services.usage_limit_guard import UsageLimitGuard

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    """One admitted unit of a dimension, awaiting commit or release."""

    tenant_id: str
    dimension: UsageDimension
    reservation_id: UUID = field(default_factory=uuid4)


class AdmissionController:
    """
    Serializes admission decisions per tenant and tracks reservations.

    Each reservation is settled at most once. Committing or releasing a
    reservation that is already settled does nothing.
    """

    def __init__(
        self,
        profile_store: IProfileStore,
        counter_store: IUsageCounterStore,
        guard: UsageLimitGuard,
    ):
        self._profiles = profile_store
        self._counters = counter_store
        self._guard = guard
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._reservations: DefaultDict[Tuple[str, UsageDimension], Set[UUID]] = defaultdict(set)

    async def load_state(self, tenant_id: str) -> Tuple[Optional[SubscriptionProfile], Optional[UsageCounters]]:
        """Read the tenant's profile and counters fresh from the stores."""
        profile = await self._profiles.get_profile(tenant_id)
        counters = await self._counters.get_counters(tenant_id)
        return profile, counters

    def pending(self, tenant_id: str, dimension: UsageDimension) -> int:
        return len(self._reservations.get((str(tenant_id), UsageDimension(dimension)), ()))

    async def reserve(self, tenant_id: str, dimension: UsageDimension) -> Reservation:
        """
        Admit one unit of ``dimension`` and hold it until commit or release.

        Raises:
            AdmissionDeniedError: If the tenant has no room left
        """
        tenant_id = str(tenant_id)
        dimension = UsageDimension(dimension)
        key = (tenant_id, dimension)

        async with self._locks[tenant_id]:
            profile, counters = await self.load_state(tenant_id)
            effective = counters
            held = len(self._reservations.get(key, ()))
            if isinstance(counters, UsageCounters) and held:
                effective = counters.incremented(dimension, held)

            if not self._guard.can_perform(profile, effective, dimension):
                limit, current = self._describe(profile, effective, dimension)
                logger.info(
                    "Admission denied",
                    tenant_id=tenant_id,
                    dimension=dimension.value,
                    limit=limit,
                    current=current,
                )
                raise AdmissionDeniedError(
                    dimension.value,
                    limit=limit,
                    current=current,
                    tenant_id=tenant_id,
                )

            reservation = Reservation(tenant_id=tenant_id, dimension=dimension)
            self._reservations[key].add(reservation.reservation_id)

        return reservation

    async def commit(self, reservation: Reservation, amount: int = 1) -> Optional[UsageCounters]:
        """
        Record the metered action as done and drop the reservation.

        Returns None when the reservation was already settled. If the counter
        write fails the reservation is dropped all the same.
        """
        async with self._locks[reservation.tenant_id]:
            if not self._settle_locked(reservation):
                logger.warning(
                    "Reservation already settled",
                    tenant_id=reservation.tenant_id,
                    dimension=reservation.dimension.value,
                )
                return None
            return await self._counters.increment(
                reservation.tenant_id, reservation.dimension, amount
            )

    async def release(self, reservation: Reservation) -> None:
        """Drop a reservation without touching the counters."""
        async with self._locks[reservation.tenant_id]:
            self._settle_locked(reservation)

    def _settle_locked(self, reservation: Reservation) -> bool:
        key = (reservation.tenant_id, reservation.dimension)
        held = self._reservations.get(key)
        if not held or reservation.reservation_id not in held:
            return False
        held.discard(reservation.reservation_id)
        if not held:
            del self._reservations[key]
        return True

    @staticmethod
    def _describe(
        profile: Optional[SubscriptionProfile],
        counters: Optional[UsageCounters],
        dimension: UsageDimension,
    ) -> Tuple[Optional[int], Optional[int]]:
        limits = getattr(profile, "usage_limits", None)
        if not isinstance(limits, UsageLimits) or not isinstance(counters, UsageCounters):
            return None, None
        return limits.limit_for(dimension), counters.count_for(dimension)


__all__ = ["AdmissionController", "Reservation"]
