"""
Authorization capability.

All role and membership checks live here. Controllers build one
AuthorizationContext per request and evaluate it once per action, before
any write is issued. Firestore security rules enforce the same policy
server-side.
"""

from typing import Any, Dict, Optional

from app.core.exceptions import PermissionDeniedError
from app.models.provider import OrganizationRole
from app.models.user import CurrentUser

UPDATE_STATUS = "update_status"
MANAGE_LOCATIONS = "manage_locations"
MANAGE_MEMBERS = "manage_members"
VIEW_ANALYTICS = "view_analytics"

ALL_PERMISSIONS = (UPDATE_STATUS, MANAGE_LOCATIONS, MANAGE_MEMBERS, VIEW_ANALYTICS)

# Default permission bundle stored on each member entry
ROLE_PERMISSIONS: Dict[OrganizationRole, tuple] = {
    OrganizationRole.OWNER: ALL_PERMISSIONS,
    OrganizationRole.ADMIN: ALL_PERMISSIONS,
    OrganizationRole.MANAGER: (UPDATE_STATUS, MANAGE_LOCATIONS, VIEW_ANALYTICS),
    OrganizationRole.VOLUNTEER: (UPDATE_STATUS,),
}


def permission_bundle(role: OrganizationRole) -> Dict[str, bool]:
    granted = ROLE_PERMISSIONS[role]
    return {permission: permission in granted for permission in ALL_PERMISSIONS}


class AuthorizationContext:
    """
    What the current user may do.

    Platform admins and superusers may act on any provider. Otherwise the
    user must be the provider itself (provider id == user id) or appear in
    the provider's members map.
    """

    def __init__(self, user: Optional[CurrentUser]):
        self.user = user

    @property
    def uid(self) -> Optional[str]:
        return self.user.uid if self.user else None

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin_or_superuser)

    def member_entry(self, provider: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not self.user or not provider:
            return None
        return (provider.get("members") or {}).get(self.user.uid)

    def is_owner(self, provider_id: str) -> bool:
        return bool(self.user and self.user.uid == provider_id)

    def can_view_provider(self, provider_id: str, provider: Optional[Dict[str, Any]]) -> bool:
        if not self.user:
            return False
        return self.is_admin or self.is_owner(provider_id) or self.member_entry(provider) is not None

    def has_permission(self, provider_id: str, provider: Optional[Dict[str, Any]], permission: str) -> bool:
        if not self.user:
            return False
        if self.is_admin or self.is_owner(provider_id):
            return True

        member = self.member_entry(provider)
        if member is None:
            return False
        if member.get("role") in (OrganizationRole.OWNER.value, OrganizationRole.ADMIN.value):
            return True
        return bool((member.get("permissions") or {}).get(permission, False))

    def is_admin_view(self, provider_id: str) -> bool:
        """Admin looking at somebody else's dashboard."""
        return self.is_admin and not self.is_owner(provider_id)

    def require_view_provider(self, provider_id: str, provider: Optional[Dict[str, Any]]) -> None:
        if not self.can_view_provider(provider_id, provider):
            raise PermissionDeniedError("Access denied. You do not have permission to view this dashboard.")

    def require_permission(self, provider_id: str, provider: Optional[Dict[str, Any]], permission: str) -> None:
        if not self.has_permission(provider_id, provider, permission):
            raise PermissionDeniedError(f"You do not have permission to {permission.replace('_', ' ')} for this provider.")

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDeniedError("Admin access required.")

    def require_authenticated(self) -> CurrentUser:
        if not self.user:
            raise PermissionDeniedError("Authentication required.")
        return self.user
