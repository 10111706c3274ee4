"""
Tenant scope resolution matrix
"""

import pytest

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.services.tenant_scope import ScopeKind, TenantScope, resolve_tenant_scope
from utils.seed import make_current_user


class TestResolveTenantScope:
    def test_no_user_is_empty(self):
        assert resolve_tenant_scope(None).is_empty
        assert resolve_tenant_scope(None, "t1").is_empty

    def test_super_admin_without_request_sees_all(self):
        scope = resolve_tenant_scope(make_current_user(UserRole.SUPER_ADMIN))
        assert scope == TenantScope.all()
        assert scope.cache_key == "all"

    def test_super_admin_can_narrow_to_any_tenant(self):
        admin = make_current_user(UserRole.SUPER_ADMIN, tenant_id="own")
        assert resolve_tenant_scope(admin, "other") == TenantScope.tenant("other")

    @pytest.mark.parametrize("role", [UserRole.BUSINESS_OWNER, UserRole.MANAGER, UserRole.VIEWER])
    def test_tenant_user_gets_own_tenant(self, role):
        user = make_current_user(role, tenant_id="t1")
        assert resolve_tenant_scope(user) == TenantScope.tenant("t1")
        assert resolve_tenant_scope(user, "t1") == TenantScope.tenant("t1")

    @pytest.mark.parametrize("role", [UserRole.BUSINESS_OWNER, UserRole.MANAGER, UserRole.VIEWER])
    def test_requesting_foreign_tenant_is_empty_not_error(self, role):
        user = make_current_user(role, tenant_id="t1")
        scope = resolve_tenant_scope(user, "t2")
        assert scope.is_empty
        assert scope.kind is ScopeKind.NONE

    def test_user_without_tenant_is_empty(self):
        owner = make_current_user(UserRole.BUSINESS_OWNER)
        assert resolve_tenant_scope(owner).is_empty
        assert resolve_tenant_scope(owner, "t1").is_empty

    def test_unknown_role_is_treated_as_non_admin(self):
        user = make_current_user("auditor", tenant_id="t1")
        assert resolve_tenant_scope(user) == TenantScope.tenant("t1")
        assert resolve_tenant_scope(make_current_user("auditor")).is_empty


class TestTenantScope:
    def test_cache_keys_differ_per_scope(self):
        keys = {TenantScope.all().cache_key, TenantScope.empty().cache_key, TenantScope.tenant("a").cache_key}
        assert keys == {"all", "none", "tenant:a"}

    def test_allows(self):
        assert TenantScope.all().allows("anything")
        assert TenantScope.tenant("a").allows("a")
        assert not TenantScope.tenant("a").allows("b")
        assert not TenantScope.tenant("a").allows(None)
        assert not TenantScope.empty().allows("a")
