"""
Seed helpers: insert users, tenants, cards and stamps straight into the test database
"""

from datetime import datetime

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.auth import hash_password
from loyalty_panel.constants.roles import UserRole
from loyalty_panel.models import (
    CustomerCard,
    Location,
    LoyaltyProgram,
    Stamp,
    Tenant,
    TenantStatus,
    User,
    UserRoleRecord,
)
from loyalty_panel.services.auth_service import CurrentUser

TEST_PASSWORD = "Secret123"


async def create_user(
    db: AsyncSession,
    email: str,
    role: UserRole | str | None = None,
    tenant_id: str | None = None,
    password: str = TEST_PASSWORD,
) -> User:
    """Create an identity; a role record is added only when `role` is given."""
    user = User(email=email, hashed_password=hash_password(password))
    db.add(user)
    await db.flush()
    if role is not None:
        role_value = role.value if isinstance(role, UserRole) else role
        db.add(UserRoleRecord(user_id=user.id, role=role_value, tenant_id=tenant_id))
    await db.commit()
    await db.refresh(user)
    return user


async def create_tenant(
    db: AsyncSession,
    name: str = "Coderno Coffee",
    status: TenantStatus = TenantStatus.active,
    created_at: datetime | None = None,
) -> Tenant:
    tenant = Tenant(
        name=name,
        business_type="cafe",
        contact_email="owner@coderno.pl",
        contact_phone="+48123456789",
        contact_person="Anna Nowak",
        status=status.value,
    )
    if created_at is not None:
        tenant.created_at = created_at
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)
    return tenant


async def create_location(db: AsyncSession, tenant: Tenant, name: str = "Centrum") -> Location:
    location = Location(
        tenant_id=tenant.id,
        name=name,
        address="ul. Długa 1, Gdańsk",
        scan_code=f"{tenant.id[:8]}-{name.lower()}-abc123",
    )
    db.add(location)
    await db.commit()
    await db.refresh(location)
    return location


async def create_program(
    db: AsyncSession,
    tenant: Tenant,
    active: bool = True,
    stamps_required: int = 10,
) -> LoyaltyProgram:
    program = LoyaltyProgram(
        tenant_id=tenant.id,
        stamps_required=stamps_required,
        reward_description="Free coffee",
        active=active,
    )
    db.add(program)
    await db.commit()
    await db.refresh(program)
    return program


async def create_card(
    db: AsyncSession,
    tenant: Tenant,
    customer_id: str,
    stamps_collected: int = 0,
    created_at: datetime | None = None,
) -> CustomerCard:
    card = CustomerCard(tenant_id=tenant.id, customer_id=customer_id, stamps_collected=stamps_collected)
    if created_at is not None:
        card.created_at = created_at
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


async def add_stamp(db: AsyncSession, card: CustomerCard, stamped_at: datetime | None = None) -> Stamp:
    stamp = Stamp(tenant_id=card.tenant_id, card_id=card.id)
    if stamped_at is not None:
        stamp.stamped_at = stamped_at
    db.add(stamp)
    await db.commit()
    return stamp


def make_current_user(role: UserRole | str, tenant_id: str | None = None, user_id: str = "user-1") -> CurrentUser:
    role_value = role.value if isinstance(role, UserRole) else role
    return CurrentUser(id=user_id, email=f"{user_id}@example.com", role=role_value, tenant_id=tenant_id)


async def login(client: httpx.AsyncClient, email: str, password: str = TEST_PASSWORD) -> dict:
    """Sign in through the API and return bearer headers."""
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
