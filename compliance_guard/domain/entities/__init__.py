"""Domain entities exposed for application layer use."""

from .role import (
    ROLE_DEFINITIONS,
    Permission,
    Role,
    RoleDefinition,
    UserRole,
    get_all_role_definitions,
    get_role_definition,
)
from .security_event import SecurityEvent, SecurityEventType, SecuritySeverity
from .subscription import (
    TIER_LIMITS,
    UNLIMITED,
    DimensionUsage,
    SubscriptionProfile,
    SubscriptionTier,
    UrgencyState,
    UsageCounters,
    UsageDimension,
    UsageLimits,
    UsageSummary,
)
from .upload import (
    ByteReader,
    ScanOutcome,
    UploadCandidate,
    UploadPolicy,
    UploadState,
    ValidationVerdict,
)

__all__ = [
    # Roles
    "ROLE_DEFINITIONS",
    "Permission",
    "Role",
    "RoleDefinition",
    "UserRole",
    "get_all_role_definitions",
    "get_role_definition",
    # Security events
    "SecurityEvent",
    "SecurityEventType",
    "SecuritySeverity",
    # Subscription
    "TIER_LIMITS",
    "UNLIMITED",
    "DimensionUsage",
    "SubscriptionProfile",
    "SubscriptionTier",
    "UrgencyState",
    "UsageCounters",
    "UsageDimension",
    "UsageLimits",
    "UsageSummary",
    # Upload
    "ByteReader",
    "ScanOutcome",
    "UploadCandidate",
    "UploadPolicy",
    "UploadState",
    "ValidationVerdict",
]
