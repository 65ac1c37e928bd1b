"""
API Package

Central package for all API endpoints.
Routers are imported lazily to avoid circular imports with application services.
"""

from fastapi import APIRouter


def create_api_router() -> APIRouter:
    """Create the main API router with all v1 routes."""
    from compliance_guard.api.v1.upload import router as upload_router
    from compliance_guard.api.v1.usage import router as usage_router

    api_router = APIRouter()

    api_router.include_router(
        usage_router,
        prefix="/api/v1",
        tags=["usage"]
    )

    api_router.include_router(
        upload_router,
        prefix="/api/v1",
        tags=["upload"]
    )

    return api_router


__all__ = ["create_api_router"]
