"""
Role-Based Access Control (RBAC) System
"""
from enum import Enum
from typing import Set


class UserRole(str, Enum):
    """Staff roles in the system"""
    SUPER_ADMIN = "super_admin"
    DEALERSHIP_OWNER = "dealership_owner"
    DEALERSHIP_ADMIN = "dealership_admin"
    SALESPERSON = "salesperson"


class Permission(str, Enum):
    """System permissions"""
    # Client portal permissions
    VIEW_ALL_CLIENT_ACCOUNTS = "view_all_client_accounts"
    VIEW_DEALERSHIP_CLIENT_ACCOUNTS = "view_dealership_client_accounts"
    PREVIEW_CLIENT_PORTAL = "preview_client_portal"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.SUPER_ADMIN: set(Permission),  # All permissions

    UserRole.DEALERSHIP_OWNER: {
        Permission.VIEW_DEALERSHIP_CLIENT_ACCOUNTS,
        Permission.PREVIEW_CLIENT_PORTAL,
    },

    UserRole.DEALERSHIP_ADMIN: {
        Permission.VIEW_DEALERSHIP_CLIENT_ACCOUNTS,
        Permission.PREVIEW_CLIENT_PORTAL,
    },

    # Salespeople see the client list but cannot enter a client's portal
    UserRole.SALESPERSON: {
        Permission.VIEW_DEALERSHIP_CLIENT_ACCOUNTS,
    },
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission"""
    return permission in ROLE_PERMISSIONS.get(role, set())


def is_super_admin(role: UserRole) -> bool:
    """Check if role is super admin"""
    return role == UserRole.SUPER_ADMIN
