"""Constants package for the Loyalty Panel."""

from .auth import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from .roles import (
    ADMINISTRATIVE_ROLES,
    ONBOARDING_OWNER_ROLE,
    ROLE_HIERARCHY,
    UserRole,
    is_administrative,
    is_higher_role,
    parse_role,
)

__all__ = [
    # Role constants
    "UserRole",
    "ADMINISTRATIVE_ROLES",
    "ONBOARDING_OWNER_ROLE",
    "ROLE_HIERARCHY",
    "is_administrative",
    "is_higher_role",
    "parse_role",
    # Auth constants
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
]
