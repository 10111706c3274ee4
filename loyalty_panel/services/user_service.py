"""
User and role-record queries.

All functions accept an injected AsyncSession.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.auth import hash_password
from loyalty_panel.constants.roles import UserRole
from loyalty_panel.exceptions import DuplicateResourceError
from loyalty_panel.models.user import User, UserRoleRecord
from loyalty_panel.utils.dates import utcnow

logger = logging.getLogger(__name__)


async def get_user_by_email(email: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalars().first()


async def get_user_by_id(user_id: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalars().first()


async def create_user(email: str, password: str, db: AsyncSession, full_name: str | None = None) -> User:
    """Create an identity. No role record is created."""
    normalized = email.strip().lower()
    if await get_user_by_email(normalized, db):
        raise DuplicateResourceError("User", "email", normalized)

    user = User(email=normalized, hashed_password=hash_password(password), full_name=full_name)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User created: id=%s", user.id)
    return user


async def get_role_record(user_id: str, db: AsyncSession) -> UserRoleRecord | None:
    result = await db.execute(select(UserRoleRecord).where(UserRoleRecord.user_id == user_id))
    return result.scalars().first()


async def upsert_role(
    user_id: str,
    role: UserRole | str,
    db: AsyncSession,
    tenant_id: str | None = None,
) -> UserRoleRecord:
    """Create or replace the single role record of a user."""
    role_value = role.value if isinstance(role, UserRole) else role
    record = await get_role_record(user_id, db)
    if record is None:
        record = UserRoleRecord(user_id=user_id, role=role_value, tenant_id=tenant_id)
        db.add(record)
    else:
        record.role = role_value
        record.tenant_id = tenant_id
        record.updated_at = utcnow()
    await db.commit()
    await db.refresh(record)
    logger.info("Role set: user_id=%s role=%s tenant_id=%s", user_id, role_value, tenant_id)
    return record


async def get_business_owner(tenant_id: str, db: AsyncSession) -> User | None:
    """The user holding the business_owner role for a tenant, if any."""
    result = await db.execute(
        select(User)
        .join(UserRoleRecord, UserRoleRecord.user_id == User.id)
        .where(
            UserRoleRecord.tenant_id == tenant_id,
            UserRoleRecord.role == UserRole.BUSINESS_OWNER.value,
        )
        .limit(1)
    )
    return result.scalars().first()
