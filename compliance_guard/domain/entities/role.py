"""Role and permission definitions for dashboard users."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from compliance_guard.domain.value_objects import UserId


class Role(str, Enum):
    """Application roles, most privileged first."""

    ADMIN = "admin"
    MODERATOR = "moderator"
    ANALYST = "analyst"
    USER = "user"


class Permission(str, Enum):
    """Fine-grained permissions granted through roles."""

    READ_DOCUMENTS = "read:documents"
    WRITE_DOCUMENTS = "write:documents"
    DELETE_DOCUMENTS = "delete:documents"
    READ_USERS = "read:users"
    WRITE_USERS = "write:users"
    DELETE_USERS = "delete:users"
    READ_ANALYTICS = "read:analytics"
    WRITE_ANALYTICS = "write:analytics"
    ADMIN_SYSTEM = "admin:system"
    ADMIN_SECURITY = "admin:security"
    COMPLIANCE_VIEW = "compliance:view"
    COMPLIANCE_MANAGE = "compliance:manage"


@dataclass(frozen=True)
class RoleDefinition:
    """Permissions and description attached to a role."""

    role: Role
    permissions: FrozenSet[Permission]
    description: str


@dataclass(frozen=True)
class UserRole:
    """Role assignment for a user."""

    user_id: UserId
    role: Role
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[UserId] = None


ROLE_DEFINITIONS: Dict[Role, RoleDefinition] = {
    Role.ADMIN: RoleDefinition(
        role=Role.ADMIN,
        permissions=frozenset(Permission),
        description="Full system access with all permissions",
    ),
    Role.MODERATOR: RoleDefinition(
        role=Role.MODERATOR,
        permissions=frozenset({
            Permission.READ_DOCUMENTS, Permission.WRITE_DOCUMENTS,
            Permission.READ_USERS, Permission.WRITE_USERS,
            Permission.READ_ANALYTICS,
            Permission.ADMIN_SECURITY,
            Permission.COMPLIANCE_VIEW,
        }),
        description="Moderate access with user and document management",
    ),
    Role.ANALYST: RoleDefinition(
        role=Role.ANALYST,
        permissions=frozenset({
            Permission.READ_DOCUMENTS, Permission.WRITE_DOCUMENTS,
            Permission.READ_ANALYTICS, Permission.WRITE_ANALYTICS,
            Permission.COMPLIANCE_VIEW,
        }),
        description="Analytics and compliance focused access",
    ),
    Role.USER: RoleDefinition(
        role=Role.USER,
        permissions=frozenset({Permission.READ_DOCUMENTS, Permission.WRITE_DOCUMENTS}),
        description="Basic user access to documents",
    ),
}


def get_role_definition(role: Role) -> RoleDefinition:
    """Look up the definition for a role."""
    return ROLE_DEFINITIONS[Role(role)]


def get_all_role_definitions() -> List[RoleDefinition]:
    return list(ROLE_DEFINITIONS.values())


__all__ = [
    "Role",
    "Permission",
    "RoleDefinition",
    "UserRole",
    "ROLE_DEFINITIONS",
    "get_role_definition",
    "get_all_role_definitions",
]
