"""Application service for usage summaries and metered actions."""

from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from compliance_guard.application.dependencies import UsageDependencies
from compliance_guard.domain.entities.subscription import (
    UsageCounters,
    UsageDimension,
    UsageSummary,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class UsageApplicationService:
    """Reads usage state for the dashboard and gates analyses and team growth."""

    def __init__(self, dependencies: UsageDependencies) -> None:
        self._deps = dependencies

    @property
    def deps(self) -> UsageDependencies:
        return self._deps

    async def get_usage_summary(self, tenant_id: str, now: Optional[datetime] = None) -> UsageSummary:
        """Dashboard view of usage and trial state. Never raises."""
        try:
            profile, counters = await self._deps.admission.load_state(str(tenant_id))
        except Exception as e:
            # Display path: a store outage renders as an empty, calm summary.
            logger.warning("Usage state unavailable for summary", tenant_id=str(tenant_id), error=str(e))
            profile, counters = None, None
        return self._deps.guard.summarize(profile, counters, now)

    async def is_allowed(self, tenant_id: str, dimension: UsageDimension) -> bool:
        """Admission preview without reserving anything. Fails closed."""
        dimension = UsageDimension(dimension)
        try:
            profile, counters = await self._deps.admission.load_state(str(tenant_id))
        except Exception as e:
            logger.warning(
                "Usage state unavailable for admission check",
                tenant_id=str(tenant_id),
                dimension=dimension.value,
                error=str(e),
            )
            return False

        pending = self._deps.admission.pending(str(tenant_id), dimension)
        if isinstance(counters, UsageCounters) and pending:
            counters = counters.incremented(dimension, pending)
        return self._deps.guard.can_perform(profile, counters, dimension)

    async def ensure_can_perform(self, tenant_id: str, dimension: UsageDimension) -> None:
        """
        Raises:
            AdmissionDeniedError: If the tenant has no room left in ``dimension``
        """
        reservation = await self._deps.admission.reserve(str(tenant_id), dimension)
        await self._deps.admission.release(reservation)

    async def record_analysis(self, tenant_id: str, run: Callable[[], Awaitable[T]]) -> T:
        """
        Run an analysis if the tenant has analyses left, then count it.

        The counter only moves when ``run`` completes; a failing analysis
        consumes nothing and its exception propagates.

        Raises:
            AdmissionDeniedError: If the monthly analysis allowance is used up
        """
        reservation = await self._deps.admission.reserve(str(tenant_id), UsageDimension.ANALYSES)
        try:
            result = await run()
        except BaseException:
            await self._deps.admission.release(reservation)
            logger.info("Analysis failed, usage not recorded", tenant_id=str(tenant_id))
            raise

        counters = await self._deps.admission.commit(reservation)
        logger.info(
            "Analysis recorded",
            tenant_id=str(tenant_id),
            analyses_this_month=counters.analyses_this_month,
        )
        return result

    async def add_team_member(self, tenant_id: str) -> UsageCounters:
        """
        Raises:
            AdmissionDeniedError: If the team is already at its size limit
        """
        reservation = await self._deps.admission.reserve(str(tenant_id), UsageDimension.TEAM_MEMBERS)
        return await self._deps.admission.commit(reservation)

    async def remove_team_member(self, tenant_id: str) -> UsageCounters:
        return await self._deps.counter_store.decrement(str(tenant_id), UsageDimension.TEAM_MEMBERS)

    async def reset_monthly_usage(self, tenant_id: str) -> UsageCounters:
        """Clear the monthly analysis counter at billing-period rollover."""
        return await self._deps.counter_store.reset_monthly(str(tenant_id))


__all__ = ["UsageApplicationService"]
