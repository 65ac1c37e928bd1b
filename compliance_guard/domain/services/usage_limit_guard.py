"""
Usage-limit guard for metered tenant actions.

Decides whether a tenant may upload a document, run an analysis or add a team
member given its subscription profile and current usage counters, and derives
the percentage and trial-urgency signals shown on the dashboard.

All methods are pure functions over the supplied state. Counters are
incremented by the caller after the metered action succeeds, never here.

Failure policy for missing or malformed state:
- admission checks (``can_*``) fail closed and return False;
- display computations (percentages, urgency, summaries) fail soft and return
  0% / safe so a broken profile row never crashes the dashboard.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from compliance_guard.domain.entities.subscription import (
    UNLIMITED,
    DimensionUsage,
    SubscriptionProfile,
    UrgencyState,
    UsageCounters,
    UsageDimension,
    UsageLimits,
    UsageSummary,
)

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class UsageLimitGuard:
    """
    Admission control and usage signals for subscription limits.

    Args:
        approaching_threshold: Percentage at or above which a dimension is
            considered close to its ceiling (default 80)
    """

    DEFAULT_APPROACHING_THRESHOLD = 80
    WARNING_MAX_DAYS = 7
    URGENT_MAX_DAYS = 3

    def __init__(self, approaching_threshold: int = DEFAULT_APPROACHING_THRESHOLD):
        if not 0 < approaching_threshold <= 100:
            raise ValueError("approaching_threshold must be between 1 and 100")
        self.approaching_threshold = approaching_threshold

    # Admission checks (fail closed)

    def can_upload_document(self, profile: Optional[SubscriptionProfile], usage: Optional[UsageCounters]) -> bool:
        return self.can_perform(profile, usage, UsageDimension.DOCUMENTS)

    def can_run_analysis(self, profile: Optional[SubscriptionProfile], usage: Optional[UsageCounters]) -> bool:
        return self.can_perform(profile, usage, UsageDimension.ANALYSES)

    def can_add_team_member(self, profile: Optional[SubscriptionProfile], usage: Optional[UsageCounters]) -> bool:
        return self.can_perform(profile, usage, UsageDimension.TEAM_MEMBERS)

    def can_perform(
        self,
        profile: Optional[SubscriptionProfile],
        usage: Optional[UsageCounters],
        dimension: UsageDimension,
    ) -> bool:
        """Check whether one more unit of ``dimension`` may be consumed."""
        limits = self._limits_of(profile)
        if limits is None or not isinstance(usage, UsageCounters):
            # Gating decisions deny when the state cannot be trusted.
            logger.warning(
                "Admission denied: usage state missing or malformed",
                dimension=UsageDimension(dimension).value,
                profile_present=profile is not None,
                usage_present=usage is not None,
            )
            return False

        limit = limits.limit_for(dimension)
        if limit == UNLIMITED:
            return True
        return usage.count_for(dimension) < limit

    def has_reached_any_limit(self, profile: Optional[SubscriptionProfile], usage: Optional[UsageCounters]) -> bool:
        """True when any finite dimension refuses admission."""
        return not all(
            self.can_perform(profile, usage, dimension) for dimension in UsageDimension
        )

    # Display signals (fail soft)

    def get_usage_percentage(
        self,
        profile: Optional[SubscriptionProfile],
        usage: Optional[UsageCounters],
        dimension: UsageDimension,
    ) -> int:
        """
        Percentage of a dimension's ceiling already consumed, in [0, 100].

        Unlimited dimensions report 0. A ceiling of 0 reports 100 since any
        use is over it.
        """
        limits = self._limits_of(profile)
        if limits is None or not isinstance(usage, UsageCounters):
            # Display values stay calm when the state cannot be trusted.
            return 0

        try:
            limit = limits.limit_for(dimension)
            if limit == UNLIMITED:
                return 0
            if limit == 0:
                return 100
            current = usage.count_for(dimension)
        except (ValueError, TypeError) as e:
            logger.warning("Usage percentage unavailable", dimension=str(dimension), error=str(e))
            return 0

        return max(0, min(100, _round_half_up(current / limit * 100)))

    def is_approaching_limits(
        self,
        profile: Optional[SubscriptionProfile],
        usage: Optional[UsageCounters],
        threshold: Optional[int] = None,
    ) -> bool:
        """True when any finite dimension is at or above ``threshold`` percent."""
        threshold = self.approaching_threshold if threshold is None else threshold
        limits = self._limits_of(profile)
        if limits is None:
            return False
        return any(
            not limits.is_unlimited(dimension)
            and self.get_usage_percentage(profile, usage, dimension) >= threshold
            for dimension in UsageDimension
        )

    def days_remaining_in_trial(
        self,
        profile: Optional[SubscriptionProfile],
        now: Optional[datetime] = None,
    ) -> int:
        """Whole days left in the trial, rounded up and never negative."""
        end = getattr(profile, "trial_end_date", None)
        if not isinstance(end, datetime):
            return 0

        now = _as_utc(now or datetime.now(timezone.utc))
        remaining = (_as_utc(end) - now).total_seconds()
        return max(0, math.ceil(remaining / SECONDS_PER_DAY))

    @classmethod
    def urgency_state(cls, days_remaining: int) -> UrgencyState:
        """Map days left in the trial to an urgency level."""
        if days_remaining > cls.WARNING_MAX_DAYS:
            return UrgencyState.SAFE
        if days_remaining > cls.URGENT_MAX_DAYS:
            return UrgencyState.WARNING
        return UrgencyState.URGENT

    def is_trial_expired(
        self,
        profile: Optional[SubscriptionProfile],
        now: Optional[datetime] = None,
    ) -> bool:
        """True when the tenant is on trial and the trial end has passed."""
        if profile is None or not profile.is_trial():
            return False
        end = profile.trial_end_date
        if not isinstance(end, datetime):
            return False
        now = _as_utc(now or datetime.now(timezone.utc))
        return now > _as_utc(end)

    def is_trial_expiring(
        self,
        profile: Optional[SubscriptionProfile],
        now: Optional[datetime] = None,
    ) -> bool:
        """True when an active trial has three days or fewer left."""
        if profile is None or not profile.is_trial() or self.is_trial_expired(profile, now):
            return False
        return self.days_remaining_in_trial(profile, now) <= self.URGENT_MAX_DAYS

    def summarize(
        self,
        profile: Optional[SubscriptionProfile],
        usage: Optional[UsageCounters],
        now: Optional[datetime] = None,
    ) -> UsageSummary:
        """Build the dashboard view of limits and trial state. Never raises."""
        limits = self._limits_of(profile)
        if limits is None or not isinstance(usage, UsageCounters):
            return UsageSummary(tier=getattr(profile, "tier", None))

        dimensions = {
            dimension: DimensionUsage(
                dimension=dimension,
                current=usage.count_for(dimension),
                limit=limits.limit_for(dimension),
                percentage=self.get_usage_percentage(profile, usage, dimension),
                allowed=self.can_perform(profile, usage, dimension),
            )
            for dimension in UsageDimension
        }

        if profile.is_trial():
            days_remaining = self.days_remaining_in_trial(profile, now)
            urgency = self.urgency_state(days_remaining)
        else:
            days_remaining = 0
            urgency = UrgencyState.SAFE

        return UsageSummary(
            tier=profile.tier,
            dimensions=dimensions,
            days_remaining=days_remaining,
            urgency=urgency,
            is_trial_expired=self.is_trial_expired(profile, now),
            is_trial_expiring=self.is_trial_expiring(profile, now),
            approaching_limits=self.is_approaching_limits(profile, usage),
            reached_any_limit=not all(d.allowed for d in dimensions.values()),
        )

    @staticmethod
    def _limits_of(profile: Any) -> Optional[UsageLimits]:
        limits = getattr(profile, "usage_limits", None)
        if isinstance(limits, UsageLimits):
            return limits
        return None


__all__ = ["UsageLimitGuard"]
