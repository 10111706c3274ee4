"""
Tenant scope resolution.

Every tenant-scoped read goes through ``resolve_tenant_scope``. An
out-of-scope request is not an error: it resolves to an empty scope and the
caller returns empty data.
"""

import enum
from dataclasses import dataclass

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.services.auth_service import CurrentUser


class ScopeKind(str, enum.Enum):
    ALL = "all"
    TENANT = "tenant"
    NONE = "none"


@dataclass(frozen=True)
class TenantScope:
    kind: ScopeKind
    tenant_id: str | None = None

    @classmethod
    def all(cls) -> "TenantScope":
        return cls(ScopeKind.ALL)

    @classmethod
    def tenant(cls, tenant_id: str) -> "TenantScope":
        return cls(ScopeKind.TENANT, tenant_id)

    @classmethod
    def empty(cls) -> "TenantScope":
        return cls(ScopeKind.NONE)

    @property
    def is_empty(self) -> bool:
        return self.kind is ScopeKind.NONE

    @property
    def is_all(self) -> bool:
        return self.kind is ScopeKind.ALL

    @property
    def cache_key(self) -> str:
        if self.kind is ScopeKind.TENANT:
            return f"tenant:{self.tenant_id}"
        return self.kind.value

    def allows(self, tenant_id: str | None) -> bool:
        if self.kind is ScopeKind.ALL:
            return True
        return self.kind is ScopeKind.TENANT and tenant_id is not None and tenant_id == self.tenant_id


def resolve_tenant_scope(user: CurrentUser | None, requested_tenant_id: str | None = None) -> TenantScope:
    """
    Decide which tenants ``user`` may see.

    - super_admin: the requested tenant, or every tenant when none is requested
    - non-admin with a tenant: their own tenant; asking for another gives an empty scope
    - non-admin without a tenant, or no user: empty scope
    """
    if user is None:
        return TenantScope.empty()

    if user.known_role is UserRole.SUPER_ADMIN:
        if requested_tenant_id:
            return TenantScope.tenant(requested_tenant_id)
        return TenantScope.all()

    if not user.tenant_id:
        return TenantScope.empty()
    if requested_tenant_id and requested_tenant_id != user.tenant_id:
        return TenantScope.empty()
    return TenantScope.tenant(user.tenant_id)
