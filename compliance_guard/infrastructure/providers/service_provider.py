"""
Service providers wiring domain and application services.

Provides singleton accessors following the provider pattern for dependency
injection throughout the application.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from compliance_guard.application.admission import AdmissionController
from compliance_guard.application.dependencies import UploadDependencies, UsageDependencies
from compliance_guard.application.upload_service import UploadApplicationService
from compliance_guard.application.usage_service import UsageApplicationService
from compliance_guard.core.config import get_settings
from compliance_guard.domain.services.permission_checker import PermissionChecker
from compliance_guard.domain.services.upload_security_validator import UploadSecurityValidator
from compliance_guard.domain.services.usage_limit_guard import UsageLimitGuard
from compliance_guard.infrastructure.providers.persistence_provider import (
    get_profile_store,
    get_role_repository,
    get_usage_counter_store,
)
from compliance_guard.infrastructure.providers.security_provider import get_security_event_log
from compliance_guard.infrastructure.providers.storage_provider import get_document_storage

logger = structlog.get_logger(__name__)

# Global singleton instances
_usage_limit_guard: Optional[UsageLimitGuard] = None
_upload_validator: Optional[UploadSecurityValidator] = None
_admission_controller: Optional[AdmissionController] = None
_permission_checker: Optional[PermissionChecker] = None
_usage_service: Optional[UsageApplicationService] = None
_upload_service: Optional[UploadApplicationService] = None
_service_lock = asyncio.Lock()


def get_usage_limit_guard() -> UsageLimitGuard:
    """Return the usage-limit guard configured with the approaching threshold."""
    global _usage_limit_guard

    if _usage_limit_guard is None:
        settings = get_settings()
        _usage_limit_guard = UsageLimitGuard(
            approaching_threshold=settings.APPROACHING_LIMIT_THRESHOLD
        )
    return _usage_limit_guard


def get_upload_security_validator() -> UploadSecurityValidator:
    """Return the upload validator configured from settings."""
    global _upload_validator

    if _upload_validator is None:
        settings = get_settings()
        logger.info("Initializing UploadSecurityValidator service")
        _upload_validator = UploadSecurityValidator(
            max_file_size_bytes=settings.MAX_FILE_SIZE,
            scan_fail_open_max_bytes=settings.SCAN_FAIL_OPEN_MAX_BYTES,
            max_files_per_batch=settings.MAX_FILES_PER_BATCH,
        )
    return _upload_validator


async def get_admission_controller() -> AdmissionController:
    """Return the admission controller shared by upload and usage services."""
    global _admission_controller

    if _admission_controller is not None:
        return _admission_controller

    profile_store = await get_profile_store()
    counter_store = await get_usage_counter_store()

    async with _service_lock:
        if _admission_controller is None:
            _admission_controller = AdmissionController(
                profile_store=profile_store,
                counter_store=counter_store,
                guard=get_usage_limit_guard(),
            )
        return _admission_controller


async def get_permission_checker() -> PermissionChecker:
    global _permission_checker

    if _permission_checker is None:
        _permission_checker = PermissionChecker(await get_role_repository())
    return _permission_checker


async def get_usage_service() -> UsageApplicationService:
    """Return singleton usage application service."""
    global _usage_service

    if _usage_service is not None:
        return _usage_service

    admission = await get_admission_controller()
    dependencies = UsageDependencies(
        profile_store=await get_profile_store(),
        counter_store=await get_usage_counter_store(),
        guard=get_usage_limit_guard(),
        admission=admission,
    )

    async with _service_lock:
        if _usage_service is None:
            _usage_service = UsageApplicationService(dependencies)
        return _usage_service


async def get_upload_service() -> UploadApplicationService:
    """Return singleton upload application service."""
    global _upload_service

    if _upload_service is not None:
        return _upload_service

    dependencies = UploadDependencies(
        admission=await get_admission_controller(),
        validator=get_upload_security_validator(),
        document_storage=await get_document_storage(),
        security_log=get_security_event_log(),
    )

    async with _service_lock:
        if _upload_service is None:
            _upload_service = UploadApplicationService(dependencies)
            logger.info("Upload service initialized")
        return _upload_service


async def reset_services() -> None:
    """
    Reset service singletons (primarily for testing).

    Forces re-initialization on next access.
    """
    global _usage_limit_guard, _upload_validator, _admission_controller
    global _permission_checker, _usage_service, _upload_service

    logger.debug("Resetting services")
    async with _service_lock:
        _usage_limit_guard = None
        _upload_validator = None
        _admission_controller = None
        _permission_checker = None
        _usage_service = None
        _upload_service = None


__all__ = [
    "get_usage_limit_guard",
    "get_upload_security_validator",
    "get_admission_controller",
    "get_permission_checker",
    "get_usage_service",
    "get_upload_service",
    "reset_services",
]
