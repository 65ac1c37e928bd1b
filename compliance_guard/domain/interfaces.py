"""Domain-layer service interfaces.

These abstractions define the stable contracts that the application layer relies on,
while infrastructure adapters provide concrete implementations. The profile and
usage stores are owned by the hosted backend; this service only reads profiles
and asks the counter store to increment after a metered action succeeds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from compliance_guard.domain.entities.role import UserRole
from compliance_guard.domain.entities.security_event import (
    SecurityEvent,
    SecurityEventType,
    SecuritySeverity,
)
from compliance_guard.domain.entities.subscription import (
    SubscriptionProfile,
    UsageCounters,
    UsageDimension,
)


class IHealthCheck:
    """Health check interface mixin."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """Return health check details."""
        pass


@dataclass(frozen=True)
class StoredDocument:
    """Location of a document accepted by the storage collaborator."""

    storage_path: str
    public_url: str


class IDocumentStorage(IHealthCheck, ABC):
    """Document storage collaborator, invoked only for valid and safe files."""

    @abstractmethod
    async def store_document(
        self,
        content: bytes,
        safe_filename: str,
        tenant_id: str,
    ) -> StoredDocument:
        """Persist document bytes and return where they live."""
        pass

    @abstractmethod
    async def delete_document(self, storage_path: str) -> bool:
        """Remove a stored document. Returns False when nothing was stored."""
        pass


class IProfileStore(IHealthCheck, ABC):
    """Source of truth for tier, trial window and usage limits."""

    @abstractmethod
    async def get_profile(self, tenant_id: str) -> Optional[SubscriptionProfile]:
        """Return the tenant's subscription profile, or None if unknown."""
        pass


class IUsageCounterStore(IHealthCheck, ABC):
    """Per-tenant consumption counters for the active billing period."""

    @abstractmethod
    async def get_counters(self, tenant_id: str) -> Optional[UsageCounters]:
        """Return current counters, or None if the tenant has none recorded."""
        pass

    @abstractmethod
    async def increment(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        """Increase a counter after a metered action has succeeded."""
        pass

    @abstractmethod
    async def decrement(
        self,
        tenant_id: str,
        dimension: UsageDimension,
        amount: int = 1,
    ) -> UsageCounters:
        """Decrease a counter (team members can leave)."""
        pass

    @abstractmethod
    async def reset_monthly(self, tenant_id: str) -> UsageCounters:
        """Clear the monthly counters on period rollover."""
        pass


class IRoleRepository(IHealthCheck, ABC):
    """Lookup of role assignments for users."""

    @abstractmethod
    async def get_user_role(self, user_id: str) -> Optional[UserRole]:
        """Return the user's role assignment, or None if unassigned."""
        pass

    @abstractmethod
    async def assign_role(self, role: UserRole) -> None:
        """Create or replace a user's role assignment."""
        pass


class ISecurityEventLog(IHealthCheck, ABC):
    """Sink for security events, kept separate from ordinary logs."""

    @abstractmethod
    def log_event(
        self,
        event_type: SecurityEventType,
        severity: SecuritySeverity,
        *,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> SecurityEvent:
        """Record a security event."""
        pass

    @abstractmethod
    def get_events(
        self,
        event_type: Optional[SecurityEventType] = None,
        severity: Optional[SecuritySeverity] = None,
    ) -> List[SecurityEvent]:
        """Return recorded events, optionally filtered."""
        pass

    @abstractmethod
    def clear_events(self) -> None:
        pass


__all__ = [
    "IHealthCheck",
    "StoredDocument",
    "IDocumentStorage",
    "IProfileStore",
    "IUsageCounterStore",
    "IRoleRepository",
    "ISecurityEventLog",
]
