"""
Role Constants for the Loyalty Panel

The panel knows exactly four roles. Anything else read from storage is
treated as unknown and gets no permissions.
"""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of role names stored in user_roles.role."""

    SUPER_ADMIN = "super_admin"
    BUSINESS_OWNER = "business_owner"
    MANAGER = "manager"
    VIEWER = "viewer"


# The only role that is not bound to a single tenant
ADMINISTRATIVE_ROLES = frozenset({UserRole.SUPER_ADMIN})

# Role given to whoever completes onboarding for a new business
ONBOARDING_OWNER_ROLE = UserRole.BUSINESS_OWNER

# Role hierarchy (higher number = more permissions)
ROLE_HIERARCHY = {
    UserRole.VIEWER: 1,
    UserRole.MANAGER: 2,
    UserRole.BUSINESS_OWNER: 3,
    UserRole.SUPER_ADMIN: 4,
}


def parse_role(value: str | UserRole | None) -> UserRole | None:
    """Return the UserRole for a stored value, or None when it is unknown."""
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None


def is_administrative(role: str | UserRole | None) -> bool:
    return parse_role(role) in ADMINISTRATIVE_ROLES


def is_higher_role(role1: str, role2: str) -> bool:
    """
    Check if role1 has higher privileges than role2.

    Unknown roles rank below every known role.
    """
    rank1 = ROLE_HIERARCHY.get(parse_role(role1), 0)
    rank2 = ROLE_HIERARCHY.get(parse_role(role2), 0)
    return rank1 > rank2
