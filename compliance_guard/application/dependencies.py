"""Dependency bundles for the application services."""

from __future__ import annotations

from dataclasses import dataclass

from compliance_guard.application.admission import AdmissionController
from compliance_guard.domain.interfaces import (
    IDocumentStorage,
    IProfileStore,
    ISecurityEventLog,
    IUsageCounterStore,
)
from compliance_guard.domain.services.upload_security_validator import UploadSecurityValidator
from compliance_guard.domain.services.usage_limit_guard import UsageLimitGuard


@dataclass
class UsageDependencies:
    """Dependencies required by UsageApplicationService."""

    profile_store: IProfileStore
    counter_store: IUsageCounterStore
    guard: UsageLimitGuard
    admission: AdmissionController


@dataclass
class UploadDependencies:
    """Dependencies required by UploadApplicationService."""

    admission: AdmissionController
    validator: UploadSecurityValidator
    document_storage: IDocumentStorage
    security_log: ISecurityEventLog


__all__ = ["UsageDependencies", "UploadDependencies"]
