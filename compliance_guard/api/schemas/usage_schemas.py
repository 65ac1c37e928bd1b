"""
Usage API response schemas.

DTOs for the usage card and admission checks, kept separate from the domain
entities they are built from.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from compliance_guard.domain.entities.subscription import UsageSummary


class DimensionUsageResponse(BaseModel):
    """Usage of one metered dimension."""

    current: int = Field(..., ge=0, description="Units consumed in the current period")
    limit: int = Field(..., description="Ceiling for the dimension (-1 means unlimited)")
    percentage: int = Field(..., ge=0, le=100, description="Share of the ceiling consumed")
    allowed: bool = Field(..., description="Whether one more unit would be admitted")
    unlimited: bool = Field(default=False)


class UsageSummaryResponse(BaseModel):
    """Response model for the usage summary endpoint."""

    tier: Optional[str] = Field(None, description="Subscription tier, null when unknown")
    dimensions: Dict[str, DimensionUsageResponse] = Field(default_factory=dict)
    days_remaining: int = Field(default=0, ge=0, description="Whole days left in the trial")
    urgency: str = Field(default="safe", description="safe, warning or urgent")
    is_trial_expired: bool = False
    is_trial_expiring: bool = False
    approaching_limits: bool = False
    reached_any_limit: bool = False

    @classmethod
    def from_summary(cls, summary: UsageSummary) -> "UsageSummaryResponse":
        return cls(
            tier=summary.tier.value if summary.tier is not None else None,
            dimensions={
                dimension.value: DimensionUsageResponse(
                    current=usage.current,
                    limit=usage.limit,
                    percentage=usage.percentage,
                    allowed=usage.allowed,
                    unlimited=usage.unlimited,
                )
                for dimension, usage in summary.dimensions.items()
            },
            days_remaining=summary.days_remaining,
            urgency=summary.urgency.value,
            is_trial_expired=summary.is_trial_expired,
            is_trial_expiring=summary.is_trial_expiring,
            approaching_limits=summary.approaching_limits,
            reached_any_limit=summary.reached_any_limit,
        )


class AdmissionResponse(BaseModel):
    """Whether the tenant may perform one more unit of a dimension."""

    dimension: str
    allowed: bool


__all__ = ["DimensionUsageResponse", "UsageSummaryResponse", "AdmissionResponse"]
