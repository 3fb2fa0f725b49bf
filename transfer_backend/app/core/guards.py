"""
Security guards for role-based and ownership-based access control.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from transfer_backend.app.models.enums import UserRole
from transfer_backend.app.core.dependencies import get_current_user
from transfer_backend.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin/bookings")
        async def list_bookings(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        InsufficientPermissionsError (403) if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise InsufficientPermissionsError("Invalid role")

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                "Access denied",
                details={"required_roles": [r.value for r in allowed_roles]}
            )

        return current_user

    return role_checker


require_admin = require_role([UserRole.ADMIN])


class OwnershipGuard:
    """
    Ownership check for customer-owned resources.

    Admins can access everything; everyone else only their own records.
    """

    def can_access(self, resource_owner_id: int, current_user: dict) -> bool:
        if current_user.get("role") == UserRole.ADMIN.value:
            return True
        return current_user.get("user_id") == resource_owner_id

    def enforce(self, resource_owner_id: int, current_user: dict, resource_name: str = "resource"):
        """
        Raises:
            HTTPException 404 if ownership check fails (existence is not disclosed)
        """
        if not self.can_access(resource_owner_id, current_user):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{resource_name.capitalize()} not found"
            )
