"""Role-based permission checks backed by a role repository."""

from __future__ import annotations

from typing import Iterable, Optional

import structlog

from compliance_guard.domain.entities.role import (
    Permission,
    Role,
    get_role_definition,
)
from compliance_guard.domain.exceptions import InsufficientPermissionsError
from compliance_guard.domain.interfaces import IRoleRepository

logger = structlog.get_logger(__name__)

ADMIN_ROLES = frozenset({Role.ADMIN, Role.MODERATOR})


class PermissionChecker:
    """
    Answers permission and role questions for a user.

    Lookup failures deny access: a user whose role cannot be loaded has no
    permissions.
    """

    def __init__(self, role_repository: IRoleRepository):
        self._roles = role_repository

    async def get_role(self, user_id: str) -> Optional[Role]:
        try:
            assignment = await self._roles.get_user_role(str(user_id))
        except Exception as e:
            logger.error("Role lookup failed", user_id=str(user_id), error=str(e))
            return None
        return assignment.role if assignment else None

    async def has_permission(self, user_id: str, permission: Permission) -> bool:
        role = await self.get_role(user_id)
        if role is None:
            return False
        return Permission(permission) in get_role_definition(role).permissions

    async def has_any_permission(self, user_id: str, permissions: Iterable[Permission]) -> bool:
        role = await self.get_role(user_id)
        if role is None:
            return False
        granted = get_role_definition(role).permissions
        return any(Permission(p) in granted for p in permissions)

    async def has_all_permissions(self, user_id: str, permissions: Iterable[Permission]) -> bool:
        role = await self.get_role(user_id)
        if role is None:
            return False
        granted = get_role_definition(role).permissions
        return all(Permission(p) in granted for p in permissions)

    async def has_role(self, user_id: str, role: Role) -> bool:
        return await self.get_role(user_id) == Role(role)

    async def has_any_role(self, user_id: str, roles: Iterable[Role]) -> bool:
        current = await self.get_role(user_id)
        return current is not None and current in {Role(r) for r in roles}

    async def is_admin(self, user_id: str) -> bool:
        """Admins and moderators count as administrative users."""
        return await self.get_role(user_id) in ADMIN_ROLES

    async def require_permission(self, user_id: str, permission: Permission) -> None:
        """
        Raises:
            InsufficientPermissionsError: If the user lacks ``permission``
        """
        if not await self.has_permission(user_id, permission):
            logger.warning("Permission denied", user_id=str(user_id), permission=Permission(permission).value)
            raise InsufficientPermissionsError(
                f"Missing required permission: {Permission(permission).value}"
            )

    async def require_role(self, user_id: str, role: Role) -> None:
        if not await self.has_role(user_id, role):
            logger.warning("Role check failed", user_id=str(user_id), required_role=Role(role).value)
            raise InsufficientPermissionsError(f"Required role: {Role(role).value}")

    async def check_health(self):
        return {
            "service": "PermissionChecker",
            "status": "healthy",
            "role_repository": type(self._roles).__name__,
        }


__all__ = ["ADMIN_ROLES", "PermissionChecker"]
