"""Pure domain representation of subscription profiles and usage counters."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from compliance_guard.domain.value_objects import TenantId

# Sentinel stored in usage limits for "no ceiling". Never a count.
UNLIMITED = -1


class SubscriptionTier(str, Enum):
    """Subscription tier levels."""

    TRIAL = "trial"
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class UsageDimension(str, Enum):
    """Metered resources a tenant consumes."""

    DOCUMENTS = "documents"
    ANALYSES = "analyses"
    TEAM_MEMBERS = "team_members"


class UrgencyState(str, Enum):
    """How urgently a trial tenant should be nudged to upgrade."""

    SAFE = "safe"
    WARNING = "warning"
    URGENT = "urgent"


@dataclass(frozen=True)
class UsageLimits:
    """Per-tier ceilings for each usage dimension (-1 means unlimited)."""

    max_documents: int
    max_analyses_per_month: int
    max_team_members: int

    def __post_init__(self) -> None:
        for name in ("max_documents", "max_analyses_per_month", "max_team_members"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
            if value < UNLIMITED:
                raise ValueError(f"{name} must be >= 0 or {UNLIMITED} for unlimited")

    def limit_for(self, dimension: UsageDimension) -> int:
        """Return the ceiling configured for a dimension."""
        if dimension == UsageDimension.DOCUMENTS:
            return self.max_documents
        if dimension == UsageDimension.ANALYSES:
            return self.max_analyses_per_month
        if dimension == UsageDimension.TEAM_MEMBERS:
            return self.max_team_members
        raise ValueError(f"Unknown usage dimension: {dimension}")

    def is_unlimited(self, dimension: UsageDimension) -> bool:
        """Check whether a dimension has no ceiling."""
        return self.limit_for(dimension) == UNLIMITED

    @classmethod
    def for_tier(cls, tier: SubscriptionTier) -> "UsageLimits":
        """Default limits provisioned for a subscription tier."""
        return TIER_LIMITS[SubscriptionTier(tier)]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UsageLimits":
        """Build limits from the stored JSON document.

        Raises:
            ValueError: If a key is missing or a value is not an integer
        """
        try:
            return cls(
                max_documents=data["max_documents"],
                max_analyses_per_month=data["max_analyses_per_month"],
                max_team_members=data["max_team_members"],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed usage limits: {e}") from e

    def to_dict(self) -> Dict[str, int]:
        return {
            "max_documents": self.max_documents,
            "max_analyses_per_month": self.max_analyses_per_month,
            "max_team_members": self.max_team_members,
        }


TIER_LIMITS: Dict[SubscriptionTier, UsageLimits] = {
    SubscriptionTier.TRIAL: UsageLimits(
        max_documents=10,
        max_analyses_per_month=5,
        max_team_members=1,
    ),
    SubscriptionTier.BASIC: UsageLimits(
        max_documents=100,
        max_analyses_per_month=50,
        max_team_members=3,
    ),
    SubscriptionTier.PROFESSIONAL: UsageLimits(
        max_documents=1000,
        max_analyses_per_month=500,
        max_team_members=10,
    ),
    SubscriptionTier.ENTERPRISE: UsageLimits(
        max_documents=UNLIMITED,
        max_analyses_per_month=UNLIMITED,
        max_team_members=UNLIMITED,
    ),
}


@dataclass(frozen=True)
class UsageCounters:
    """Current consumption for a tenant in the active billing period."""

    documents: int = 0
    analyses_this_month: int = 0
    team_members: int = 1  # the account owner

    def __post_init__(self) -> None:
        for name in ("documents", "analyses_this_month", "team_members"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
            if value < 0:
                raise ValueError(f"{name} cannot be negative")

    def count_for(self, dimension: UsageDimension) -> int:
        """Return the current count for a dimension."""
        if dimension == UsageDimension.DOCUMENTS:
            return self.documents
        if dimension == UsageDimension.ANALYSES:
            return self.analyses_this_month
        if dimension == UsageDimension.TEAM_MEMBERS:
            return self.team_members
        raise ValueError(f"Unknown usage dimension: {dimension}")

    def incremented(self, dimension: UsageDimension, amount: int = 1) -> "UsageCounters":
        """Return a copy with one dimension increased."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        return self._with_count(dimension, self.count_for(dimension) + amount)

    def decremented(self, dimension: UsageDimension, amount: int = 1) -> "UsageCounters":
        """Return a copy with one dimension decreased, floored at zero."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        return self._with_count(dimension, max(0, self.count_for(dimension) - amount))

    def with_monthly_reset(self) -> "UsageCounters":
        """Return a copy with the monthly analysis counter cleared."""
        return replace(self, analyses_this_month=0)

    def _with_count(self, dimension: UsageDimension, value: int) -> "UsageCounters":
        if dimension == UsageDimension.DOCUMENTS:
            return replace(self, documents=value)
        if dimension == UsageDimension.ANALYSES:
            return replace(self, analyses_this_month=value)
        return replace(self, team_members=value)


@dataclass(frozen=True)
class SubscriptionProfile:
    """Tenant subscription state as provisioned by the profile store.

    ``usage_limits`` is ``None`` when the stored limits could not be parsed;
    the guard treats that as "deny admission, show nothing alarming".
    """

    tenant_id: TenantId
    tier: SubscriptionTier
    usage_limits: Optional[UsageLimits]
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    subscription_updated_at: Optional[datetime] = None

    def is_trial(self) -> bool:
        """Check if the tenant is on the trial tier."""
        return self.tier == SubscriptionTier.TRIAL


@dataclass(frozen=True)
class DimensionUsage:
    """Usage of a single dimension as displayed on the usage card."""

    dimension: UsageDimension
    current: int
    limit: int
    percentage: int
    allowed: bool

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED

    @property
    def at_limit(self) -> bool:
        return self.percentage >= 100


@dataclass(frozen=True)
class UsageSummary:
    """Everything the dashboard needs to render limits and trial state."""

    tier: Optional[SubscriptionTier]
    dimensions: Dict[UsageDimension, DimensionUsage] = field(default_factory=dict)
    days_remaining: int = 0
    urgency: UrgencyState = UrgencyState.SAFE
    is_trial_expired: bool = False
    is_trial_expiring: bool = False
    approaching_limits: bool = False
    reached_any_limit: bool = False


__all__ = [
    "UNLIMITED",
    "TIER_LIMITS",
    "SubscriptionTier",
    "UsageDimension",
    "UrgencyState",
    "UsageLimits",
    "UsageCounters",
    "SubscriptionProfile",
    "DimensionUsage",
    "UsageSummary",
]
