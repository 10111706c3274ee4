from .permissions import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    ROLE_PERMISSIONS,
    UserPermissions,
    get_permissions_for_role,
    has_permission,
)

__all__ = [
    "ALL_PERMISSIONS",
    "NO_PERMISSIONS",
    "ROLE_PERMISSIONS",
    "UserPermissions",
    "get_permissions_for_role",
    "has_permission",
]
