"""
API-specific dependencies for application services with dependency injection.

Caller identity arrives in headers set by the authenticating gateway in front
of this service; no token handling happens here.
"""

from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

import structlog
from fastapi import Depends, Header, HTTPException

from compliance_guard.application.upload_service import UploadApplicationService
from compliance_guard.application.usage_service import UsageApplicationService
from compliance_guard.domain.entities.role import Permission
from compliance_guard.domain.exceptions import (
    AdmissionDeniedError,
    AuthorizationError,
    ConfigurationError,
    ContentUnsafeError,
    DomainException,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
    ValidationFailedError,
)
from compliance_guard.domain.services.upload_security_validator import UploadSecurityValidator
from compliance_guard.infrastructure.providers.service_provider import (
    get_permission_checker,
    get_upload_security_validator,
    get_upload_service as provide_upload_service,
    get_usage_service as provide_usage_service,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CurrentTenant:
    """Identity of the caller as asserted by the gateway."""

    tenant_id: str
    user_id: Optional[str] = None


def _parse_uuid(value: str, header: str) -> str:
    try:
        return str(UUID(value))
    except (ValueError, AttributeError, TypeError):
        raise HTTPException(status_code=400, detail=f"{header} must be a valid UUID")


async def get_current_tenant(
    x_tenant_id: Annotated[Optional[str], Header()] = None,
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> CurrentTenant:
    """Resolve the calling tenant from the X-Tenant-ID and X-User-ID headers."""
    if not x_tenant_id:
        raise HTTPException(status_code=401, detail="X-Tenant-ID header is required")

    tenant_id = _parse_uuid(x_tenant_id, "X-Tenant-ID")
    user_id = _parse_uuid(x_user_id, "X-User-ID") if x_user_id else None

    structlog.contextvars.bind_contextvars(tenant_id=tenant_id, user_id=user_id)
    return CurrentTenant(tenant_id=tenant_id, user_id=user_id)


# Application Service Dependencies
async def get_upload_service() -> UploadApplicationService:
    """Return the UploadApplicationService with injected dependencies."""
    try:
        return await provide_upload_service()
    except Exception as e:
        logger.error("Failed to create upload service", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Upload service unavailable"
        ) from e


async def get_usage_service() -> UsageApplicationService:
    """Return the UsageApplicationService with injected dependencies."""
    try:
        return await provide_usage_service()
    except Exception as e:
        logger.error("Failed to create usage service", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Usage service unavailable"
        ) from e


def get_upload_validator() -> UploadSecurityValidator:
    return get_upload_security_validator()


# Type aliases for dependency injection
CurrentTenantDep = Annotated[CurrentTenant, Depends(get_current_tenant)]
UploadServiceDep = Annotated[UploadApplicationService, Depends(get_upload_service)]
UsageServiceDep = Annotated[UsageApplicationService, Depends(get_usage_service)]
UploadValidatorDep = Annotated[UploadSecurityValidator, Depends(get_upload_validator)]


# Authorization dependencies
def require_permission(permission: Permission):
    """Dependency factory for permission-based authorization"""

    async def permission_checker(current_tenant: CurrentTenantDep) -> CurrentTenant:
        """Check that the calling user holds ``permission``"""
        if current_tenant.user_id is None:
            raise HTTPException(status_code=401, detail="X-User-ID header is required")

        checker = await get_permission_checker()
        try:
            await checker.require_permission(current_tenant.user_id, permission)
        except InsufficientPermissionsError:
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions. Required: {Permission(permission).value}",
            )
        return current_tenant

    return permission_checker


DocumentWriterDep = Annotated[CurrentTenant, Depends(require_permission(Permission.WRITE_DOCUMENTS))]


# Domain Exception Handlers
def map_domain_exception_to_http(exception: Exception) -> HTTPException:
    """Map domain exceptions to appropriate HTTP responses."""

    # AdmissionDeniedError - 402 Payment Required (upgrade needed)
    if isinstance(exception, AdmissionDeniedError):
        return HTTPException(
            status_code=402,
            detail={
                "error": "limit_reached",
                "message": str(exception),
                "dimension": exception.dimension,
                "limit": exception.limit,
                "current": exception.current,
            },
        )

    # ContentUnsafeError - 422 Unprocessable Entity
    elif isinstance(exception, ContentUnsafeError):
        return HTTPException(
            status_code=422,
            detail={
                "error": "content_unsafe",
                "message": str(exception),
                "reason": exception.reason,
            },
        )

    # ValidationFailedError - 400 Bad Request with every failing reason
    elif isinstance(exception, ValidationFailedError):
        return HTTPException(
            status_code=400,
            detail={
                "error": "validation_failed",
                "message": str(exception),
                "errors": exception.errors,
            },
        )

    # ValidationError hierarchy - 400 Bad Request
    elif isinstance(exception, ValidationError):
        return HTTPException(status_code=400, detail=str(exception))

    # NotFoundError hierarchy - 404 Not Found
    elif isinstance(exception, NotFoundError):
        return HTTPException(status_code=404, detail=str(exception))

    # AuthorizationError hierarchy - 403 Forbidden
    elif isinstance(exception, AuthorizationError):
        return HTTPException(status_code=403, detail=str(exception))

    # ConfigurationError - 500 Internal Server Error (configuration issues)
    elif isinstance(exception, ConfigurationError):
        logger.error("Configuration error", error=str(exception))
        return HTTPException(status_code=500, detail="Service configuration error")

    # Generic DomainException - 500 Internal Server Error
    elif isinstance(exception, DomainException):
        logger.error("Unhandled domain exception", exception_type=type(exception).__name__, error=str(exception))
        return HTTPException(status_code=500, detail="Domain operation failed")

    else:
        # Non-domain exception - log and return generic error
        logger.error("Non-domain exception in mapping", exception_type=type(exception).__name__, error=str(exception))
        return HTTPException(status_code=500, detail="Internal server error")


__all__ = [
    "CurrentTenant",
    "get_current_tenant",
    "get_upload_service",
    "get_usage_service",
    "get_upload_validator",
    "CurrentTenantDep",
    "DocumentWriterDep",
    "require_permission",
    "UploadServiceDep",
    "UsageServiceDep",
    "UploadValidatorDep",
    "map_domain_exception_to_http",
]
