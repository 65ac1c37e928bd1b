"""
Usage API Endpoints

Usage card data and admission previews for the dashboard:
- Per-dimension usage, ceilings and percentages
- Trial days remaining and upgrade urgency
- Admission checks before starting a metered action
"""

import structlog
from fastapi import APIRouter, HTTPException

from compliance_guard.api.dependencies import (
    CurrentTenantDep,
    UsageServiceDep,
)
from compliance_guard.api.schemas.usage_schemas import AdmissionResponse, UsageSummaryResponse
from compliance_guard.domain.entities.subscription import UsageDimension

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("/summary", response_model=UsageSummaryResponse)
async def get_usage_summary(
    current_tenant: CurrentTenantDep,
    usage_service: UsageServiceDep,
) -> UsageSummaryResponse:
    """
    Get the caller's usage summary.

    Never fails because of broken usage data: an unreadable profile renders
    as zero usage with no urgency.
    """
    summary = await usage_service.get_usage_summary(current_tenant.tenant_id)
    return UsageSummaryResponse.from_summary(summary)


@router.get("/admission/{dimension}", response_model=AdmissionResponse)
async def check_admission(
    dimension: str,
    current_tenant: CurrentTenantDep,
    usage_service: UsageServiceDep,
) -> AdmissionResponse:
    """Check whether one more document, analysis or team member would be admitted."""
    try:
        parsed = UsageDimension(dimension)
    except ValueError:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown usage dimension '{dimension}'",
        )

    allowed = await usage_service.is_allowed(current_tenant.tenant_id, parsed)
    return AdmissionResponse(dimension=parsed.value, allowed=allowed)
