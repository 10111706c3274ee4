"""
Fixed role -> permission matrix.

Tenant narrowing (a business owner may only edit *their* tenant) is not
expressed here; that is handled by the tenant scope resolver.
"""

from dataclasses import asdict, dataclass, fields

from loyalty_panel.constants.roles import UserRole, parse_role


@dataclass(frozen=True)
class UserPermissions:
    can_view_all_tenants: bool = False
    can_create_tenants: bool = False
    can_edit_tenants: bool = False
    can_delete_tenants: bool = False

    can_view_all_locations: bool = False
    can_create_locations: bool = False
    can_edit_locations: bool = False
    can_delete_locations: bool = False

    can_view_all_loyalty_programs: bool = False
    can_create_loyalty_programs: bool = False
    can_edit_loyalty_programs: bool = False
    can_delete_loyalty_programs: bool = False

    can_view_all_users: bool = False
    can_create_users: bool = False
    can_edit_users: bool = False
    can_delete_users: bool = False

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)

    def granted(self) -> list[str]:
        """Names of the flags that are set."""
        return [f.name for f in fields(self) if getattr(self, f.name)]


NO_PERMISSIONS = UserPermissions()

ALL_PERMISSIONS = UserPermissions(**{f.name: True for f in fields(UserPermissions)})

ROLE_PERMISSIONS: dict[UserRole, UserPermissions] = {
    UserRole.SUPER_ADMIN: ALL_PERMISSIONS,
    UserRole.BUSINESS_OWNER: UserPermissions(
        can_edit_tenants=True,
        can_create_locations=True,
        can_edit_locations=True,
        can_delete_locations=True,
        can_create_loyalty_programs=True,
        can_edit_loyalty_programs=True,
        can_delete_loyalty_programs=True,
    ),
    UserRole.MANAGER: UserPermissions(
        can_create_locations=True,
        can_edit_locations=True,
    ),
    UserRole.VIEWER: NO_PERMISSIONS,
}


def get_permissions_for_role(role: str | UserRole | None) -> UserPermissions:
    """
    Returns the permission flags for a role.

    Unknown roles (and None) get no permissions rather than an error.
    """
    known = parse_role(role)
    if known is None:
        return NO_PERMISSIONS
    return ROLE_PERMISSIONS[known]


def has_permission(role: str | UserRole | None, permission: str) -> bool:
    return bool(getattr(get_permissions_for_role(role), permission, False))
