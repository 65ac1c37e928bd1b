"""Security events raised by the policy core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class SecurityEventType(str, Enum):
    """Kinds of security-relevant events the core records."""

    CONTENT_UNSAFE = "content_unsafe"
    VALIDATION_FAILED = "validation_failed"
    ADMISSION_DENIED = "admission_denied"
    PERMISSION_DENIED = "permission_denied"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


class SecuritySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SecurityEvent:
    """A single recorded security event."""

    event_type: SecurityEventType
    severity: SecuritySeverity
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def requires_alert(self) -> bool:
        return self.severity in (SecuritySeverity.HIGH, SecuritySeverity.CRITICAL)


__all__ = ["SecurityEventType", "SecuritySeverity", "SecurityEvent"]
