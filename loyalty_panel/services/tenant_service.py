"""
Tenant Service

Async queries and writes for tenants, their profile, locations and loyalty
programs.
All functions accept an injected AsyncSession. List functions take a
resolved TenantScope and return nothing for an empty scope.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.exceptions import LoyaltyProgramNotFoundError, ServiceError, TenantNotFoundError, ValidationError
from loyalty_panel.models.customer_card import CustomerCard, Stamp
from loyalty_panel.models.location import Location
from loyalty_panel.models.loyalty_program import LoyaltyProgram
from loyalty_panel.models.push_campaign import PushCampaign
from loyalty_panel.models.tenant import Tenant, TenantBillingInfo
from loyalty_panel.models.user import UserRoleRecord
from loyalty_panel.services.tenant_scope import ScopeKind, TenantScope
from loyalty_panel.utils.scan_code import generate_scan_code
from loyalty_panel.utils.validation import validate_email, validate_length, validate_phone

logger = logging.getLogger(__name__)

SCAN_CODE_ATTEMPTS = 5

EDITABLE_TENANT_FIELDS = (
    "name",
    "business_type",
    "contact_email",
    "contact_phone",
    "contact_person",
    "logo_url",
    "background_image_url",
    "stamp_icon_url",
)


def _scoped(stmt, column, scope: TenantScope):
    if scope.kind is ScopeKind.TENANT:
        return stmt.where(column == scope.tenant_id)
    return stmt


async def list_tenants(scope: TenantScope, db: AsyncSession) -> list[Tenant]:
    """Tenants visible in `scope`, newest first."""
    if scope.is_empty:
        return []
    result = await db.execute(_scoped(select(Tenant), Tenant.id, scope).order_by(Tenant.created_at.desc()))
    return list(result.scalars().all())


async def get_tenant_by_id(tenant_id: str, db: AsyncSession) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_billing_info(tenant_id: str, db: AsyncSession) -> TenantBillingInfo | None:
    result = await db.execute(select(TenantBillingInfo).where(TenantBillingInfo.tenant_id == tenant_id))
    return result.scalars().first()


async def list_locations(scope: TenantScope, db: AsyncSession) -> list[Location]:
    if scope.is_empty:
        return []
    stmt = _scoped(select(Location), Location.tenant_id, scope).order_by(Location.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_loyalty_programs(scope: TenantScope, db: AsyncSession) -> list[LoyaltyProgram]:
    if scope.is_empty:
        return []
    stmt = _scoped(select(LoyaltyProgram), LoyaltyProgram.tenant_id, scope).order_by(LoyaltyProgram.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_location(
    tenant: Tenant,
    name: str,
    address: str,
    db: AsyncSession,
) -> Location:
    """
    Add a location with a freshly generated scan code.

    A scan code collision is retried with a new random suffix.
    """
    # Read before the loop; a rollback expires loaded attributes
    tenant_id, tenant_name = tenant.id, tenant.name
    for attempt in range(1, SCAN_CODE_ATTEMPTS + 1):
        location = Location(
            tenant_id=tenant_id,
            name=name.strip(),
            address=address.strip(),
            scan_code=generate_scan_code(tenant_name, name),
        )
        db.add(location)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Scan code collision on attempt %d for tenant_id=%s", attempt, tenant_id)
            continue
        await db.refresh(location)
        logger.info("Location created: id=%s tenant_id=%s scan_code=%s", location.id, tenant_id, location.scan_code)
        return location

    raise ServiceError("Could not generate a unique scan code", service="tenant_service")


async def activate_program(tenant_id: str, program_id: str, db: AsyncSession) -> LoyaltyProgram:
    """Make `program_id` the tenant's only active program."""
    if await get_tenant_by_id(tenant_id, db) is None:
        raise TenantNotFoundError(tenant_id)

    result = await db.execute(
        select(LoyaltyProgram).where(LoyaltyProgram.id == program_id, LoyaltyProgram.tenant_id == tenant_id)
    )
    program = result.scalars().first()
    if program is None:
        raise LoyaltyProgramNotFoundError(program_id)

    # Deactivate first so the one-active-per-tenant index never sees two rows
    await db.execute(
        update(LoyaltyProgram)
        .where(LoyaltyProgram.tenant_id == tenant_id, LoyaltyProgram.id != program_id)
        .values(active=False)
    )
    await db.flush()
    program.active = True
    await db.commit()
    await db.refresh(program)
    logger.info("Loyalty program activated: id=%s tenant_id=%s", program.id, tenant_id)
    return program


def _check_tenant_changes(changes: dict[str, Any]) -> None:
    if "name" in changes:
        result = validate_length(changes["name"], 2, 200, "Business name")
        if not result.valid:
            raise ValidationError(result.error, field="name")
    if changes.get("contact_email") is not None:
        result = validate_email(changes["contact_email"])
        if not result.valid:
            raise ValidationError(result.error, field="contact_email")
    if changes.get("contact_phone") is not None:
        result = validate_phone(changes["contact_phone"])
        if not result.valid:
            raise ValidationError(result.error, field="contact_phone")


async def update_tenant(tenant: Tenant, changes: dict[str, Any], db: AsyncSession) -> Tenant:
    """
    Apply profile and branding changes to a tenant.

    Only EDITABLE_TENANT_FIELDS are written; status and approval columns go
    through the approval workflow.

    Raises:
        ValidationError: a changed field is malformed
    """
    changes = {k: v for k, v in changes.items() if k in EDITABLE_TENANT_FIELDS}
    _check_tenant_changes(changes)
    for key, value in changes.items():
        setattr(tenant, key, value.strip() if isinstance(value, str) else value)
    await db.commit()
    await db.refresh(tenant)
    logger.info("Tenant updated: id=%s fields=%s", tenant.id, sorted(changes))
    return tenant


async def delete_tenant(tenant_id: str, db: AsyncSession) -> None:
    """
    Permanently remove a tenant and everything it owns.

    Users keep their accounts; role records pointing at the tenant are
    detached from it.
    """
    if await get_tenant_by_id(tenant_id, db) is None:
        raise TenantNotFoundError(tenant_id)

    # Children first, so this works with or without FK cascades
    for model in (Stamp, CustomerCard, PushCampaign, LoyaltyProgram, Location, TenantBillingInfo):
        await db.execute(delete(model).where(model.tenant_id == tenant_id))
    await db.execute(update(UserRoleRecord).where(UserRoleRecord.tenant_id == tenant_id).values(tenant_id=None))
    await db.execute(delete(Tenant).where(Tenant.id == tenant_id))
    await db.commit()
    logger.warning("Tenant deleted: id=%s", tenant_id)


@dataclass(frozen=True)
class ProfileCompleteness:
    score: int
    max_score: int
    missing: list[str] = field(default_factory=list)

    @property
    def percent(self) -> int:
        return round(100 * self.score / self.max_score)


async def get_profile_completeness(tenant: Tenant, db: AsyncSession) -> ProfileCompleteness:
    """Score 0-7: contact person, email and phone, logo, billing NIP, a location, an active program."""
    billing = await get_billing_info(tenant.id, db)
    locations = await db.scalar(select(func.count(Location.id)).where(Location.tenant_id == tenant.id))
    active_programs = await db.scalar(
        select(func.count(LoyaltyProgram.id)).where(LoyaltyProgram.tenant_id == tenant.id, LoyaltyProgram.active)
    )
    checks = {
        "contact_person": bool(tenant.contact_person),
        "contact_email": bool(tenant.contact_email),
        "contact_phone": bool(tenant.contact_phone),
        "logo": bool(tenant.logo_url),
        "billing": billing is not None and bool(billing.nip),
        "location": bool(locations),
        "loyalty_program": bool(active_programs),
    }
    missing = [name for name, done in checks.items() if not done]
    return ProfileCompleteness(score=len(checks) - len(missing), max_score=len(checks), missing=missing)
