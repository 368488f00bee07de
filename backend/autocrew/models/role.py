"""User roles and their permissions."""

import enum


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ORGANIZATION_ADMIN = "organization_admin"
    VIEWER = "viewer"


# Permissions granted to each role
# e.g., {"manage_clients": True, "view_dashboard": True}
ROLE_PERMISSIONS: dict[UserRole, dict[str, bool]] = {
    UserRole.SUPER_ADMIN: {
        "manage_clients": True,
        "manage_users": True,
        "manage_crews": True,
        "edit_crews": True,
        "manage_conversations": True,
        "manage_knowledge_base": True,
        "view_dashboard": True,
        "view_admin_dashboard": True,
    },
    UserRole.ORGANIZATION_ADMIN: {
        "manage_clients": False,
        "manage_users": False,
        "manage_crews": False,
        "edit_crews": True,
        "manage_conversations": True,
        "manage_knowledge_base": True,
        "view_dashboard": True,
        "view_admin_dashboard": False,
    },
    UserRole.VIEWER: {
        "manage_clients": False,
        "manage_users": False,
        "manage_crews": False,
        "edit_crews": False,
        "manage_conversations": False,
        "manage_knowledge_base": False,
        "view_dashboard": True,
        "view_admin_dashboard": False,
    },
}


def role_has_permission(role: str, permission: str) -> bool:
    try:
        return ROLE_PERMISSIONS[UserRole(role)].get(permission, False)
    except ValueError:
        return False
