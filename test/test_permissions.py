"""
Tests for the role → permission matrix and the role helpers
"""

import dataclasses

import pytest

from loyalty_panel.constants.roles import UserRole, is_administrative, is_higher_role, parse_role
from loyalty_panel.permissions_config.permissions import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    ROLE_PERMISSIONS,
    UserPermissions,
    get_permissions_for_role,
    has_permission,
)

FLAGS = [f.name for f in dataclasses.fields(UserPermissions)]


class TestRoleParsing:
    def test_known_roles(self):
        assert parse_role("super_admin") is UserRole.SUPER_ADMIN
        assert parse_role(UserRole.VIEWER) is UserRole.VIEWER

    @pytest.mark.parametrize("value", [None, "", "admin", "SUPER_ADMIN", "owner"])
    def test_unknown_roles_are_none(self, value):
        assert parse_role(value) is None

    def test_hierarchy(self):
        assert is_higher_role(UserRole.SUPER_ADMIN, UserRole.BUSINESS_OWNER)
        assert is_higher_role(UserRole.MANAGER, UserRole.VIEWER)
        assert not is_higher_role(UserRole.VIEWER, UserRole.MANAGER)

    def test_only_super_admin_is_administrative(self):
        assert is_administrative(UserRole.SUPER_ADMIN)
        assert not is_administrative(UserRole.BUSINESS_OWNER)


class TestPermissionMatrix:
    def test_sixteen_flags(self):
        assert len(FLAGS) == 16
        assert all(name.startswith("can_") for name in FLAGS)

    def test_super_admin_has_everything(self):
        perms = get_permissions_for_role("super_admin")
        assert perms == ALL_PERMISSIONS
        assert all(getattr(perms, name) for name in FLAGS)

    def test_business_owner(self):
        perms = get_permissions_for_role("business_owner")
        assert set(perms.granted()) == {
            "can_edit_tenants",
            "can_create_locations",
            "can_edit_locations",
            "can_delete_locations",
            "can_create_loyalty_programs",
            "can_edit_loyalty_programs",
            "can_delete_loyalty_programs",
        }

    def test_manager(self):
        assert get_permissions_for_role("manager").granted() == ["can_create_locations", "can_edit_locations"]

    def test_viewer_has_nothing(self):
        assert get_permissions_for_role("viewer") == NO_PERMISSIONS

    @pytest.mark.parametrize("role", [None, "", "admin", "root"])
    def test_unknown_role_gets_no_permissions(self, role):
        assert get_permissions_for_role(role) == NO_PERMISSIONS

    def test_only_super_admin_sees_all_tenants(self):
        viewers = [role for role, perms in ROLE_PERMISSIONS.items() if perms.can_view_all_tenants]
        assert viewers == [UserRole.SUPER_ADMIN]

    def test_has_permission(self):
        assert has_permission("manager", "can_create_locations")
        assert not has_permission("manager", "can_delete_locations")
        assert not has_permission("manager", "no_such_flag")
        assert not has_permission(None, "can_create_locations")

    def test_as_dict_covers_all_flags(self):
        assert set(get_permissions_for_role("viewer").as_dict()) == set(FLAGS)

    def test_permissions_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ALL_PERMISSIONS.can_view_all_tenants = False
