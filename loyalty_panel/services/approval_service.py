"""
Approval Service

Super-admin review of newly onboarded businesses.

Status moves:
    pending  -> active    (approve)
    pending  -> rejected  (reject, with a reason)
    rejected -> pending   (resubmit)
Requesting changes keeps the business pending and stores the notes.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.exceptions import InvalidStatusTransitionError, TenantNotFoundError, ValidationError
from loyalty_panel.models.location import Location
from loyalty_panel.models.loyalty_program import LoyaltyProgram
from loyalty_panel.models.tenant import Tenant, TenantStatus
from loyalty_panel.schemas.approval import (
    MIN_REASON_LENGTH,
    BusinessDetailsResponse,
    OwnerResponse,
    PendingBusinessResponse,
)
from loyalty_panel.schemas.tenant import BillingInfoResponse, LocationResponse, LoyaltyProgramResponse, TenantResponse
from loyalty_panel.services import tenant_service, user_service
from loyalty_panel.state import AppStateStore, CacheKind
from loyalty_panel.utils.dates import utcnow

logger = logging.getLogger(__name__)

PENDING_KEY = "all"


def _require_text(value: str | None, field: str, label: str) -> str:
    text = (value or "").strip()
    if len(text) < MIN_REASON_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_REASON_LENGTH} characters", field=field)
    return text


class ApprovalService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], state: AppStateStore):
        self._session_factory = session_factory
        self._state = state

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_pending_businesses(self) -> list[PendingBusinessResponse]:
        """Pending businesses, newest first, with their owner's email."""
        cached = self._state.get_cached(CacheKind.PENDING_BUSINESSES, PENDING_KEY)
        if cached is not None:
            return list(cached)

        async with self._session_factory() as db:
            result = await db.execute(
                select(Tenant).where(Tenant.status == TenantStatus.pending.value).order_by(Tenant.created_at.desc())
            )
            businesses = []
            for tenant in result.scalars().all():
                owner = await user_service.get_business_owner(tenant.id, db)
                businesses.append(
                    PendingBusinessResponse(
                        id=tenant.id,
                        name=tenant.name,
                        business_type=tenant.business_type,
                        contact_email=tenant.contact_email,
                        contact_phone=tenant.contact_phone,
                        contact_person=tenant.contact_person,
                        created_at=tenant.created_at,
                        owner_email=owner.email if owner else None,
                        owner_id=owner.id if owner else None,
                    )
                )

        self._state.set_cached(CacheKind.PENDING_BUSINESSES, PENDING_KEY, tuple(businesses))
        return businesses

    async def get_pending_count(self) -> int:
        return len(await self.get_pending_businesses())

    async def get_business_details(self, tenant_id: str) -> BusinessDetailsResponse:
        cached = self._state.get_cached(CacheKind.BUSINESS_DETAILS, tenant_id)
        if cached is not None:
            return cached

        async with self._session_factory() as db:
            tenant = await tenant_service.get_tenant_by_id(tenant_id, db)
            if tenant is None:
                raise TenantNotFoundError(tenant_id)

            location = (
                await db.execute(
                    select(Location).where(Location.tenant_id == tenant_id).order_by(Location.created_at).limit(1)
                )
            ).scalars().first()
            program = (
                await db.execute(
                    select(LoyaltyProgram)
                    .where(LoyaltyProgram.tenant_id == tenant_id)
                    .order_by(LoyaltyProgram.active.desc(), LoyaltyProgram.created_at)
                    .limit(1)
                )
            ).scalars().first()
            billing = await tenant_service.get_billing_info(tenant_id, db)
            owner = await user_service.get_business_owner(tenant_id, db)

            details = BusinessDetailsResponse(
                tenant=TenantResponse.model_validate(tenant),
                location=LocationResponse.model_validate(location) if location else None,
                loyalty_program=LoyaltyProgramResponse.model_validate(program) if program else None,
                billing_info=BillingInfoResponse.model_validate(billing) if billing else None,
                owner=OwnerResponse(id=owner.id, email=owner.email) if owner else None,
            )

        self._state.set_cached(CacheKind.BUSINESS_DETAILS, tenant_id, details)
        return details

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _transition(self, tenant_id: str, allowed_from: TenantStatus, target: TenantStatus, **changes) -> Tenant:
        async with self._session_factory() as db:
            tenant = await tenant_service.get_tenant_by_id(tenant_id, db)
            if tenant is None:
                raise TenantNotFoundError(tenant_id)
            if tenant.status != allowed_from.value:
                raise InvalidStatusTransitionError(tenant.status, target.value)

            tenant.status = target.value
            for key, value in changes.items():
                setattr(tenant, key, value)
            await db.commit()
            await db.refresh(tenant)

        self._state.clear_cache()
        return tenant

    async def approve_business(self, tenant_id: str, approved_by: str) -> Tenant:
        tenant = await self._transition(
            tenant_id,
            TenantStatus.pending,
            TenantStatus.active,
            approved_by=approved_by,
            approved_at=utcnow(),
            rejection_reason=None,
            change_request_notes=None,
        )
        logger.info("Business approved: tenant_id=%s by=%s", tenant_id, approved_by)
        return tenant

    async def reject_business(self, tenant_id: str, reason: str, rejected_by: str) -> Tenant:
        reason = _require_text(reason, "reason", "Rejection reason")
        tenant = await self._transition(
            tenant_id,
            TenantStatus.pending,
            TenantStatus.rejected,
            rejection_reason=reason,
            approved_by=rejected_by,
            approved_at=utcnow(),
        )
        logger.info("Business rejected: tenant_id=%s by=%s", tenant_id, rejected_by)
        return tenant

    async def request_changes(self, tenant_id: str, notes: str) -> Tenant:
        notes = _require_text(notes, "notes", "Notes")
        tenant = await self._transition(
            tenant_id,
            TenantStatus.pending,
            TenantStatus.pending,
            change_request_notes=notes,
        )
        logger.info("Changes requested: tenant_id=%s", tenant_id)
        return tenant

    async def resubmit_after_rejection(self, tenant_id: str) -> Tenant:
        tenant = await self._transition(
            tenant_id,
            TenantStatus.rejected,
            TenantStatus.pending,
            approved_by=None,
            approved_at=None,
        )
        logger.info("Business resubmitted for review: tenant_id=%s", tenant_id)
        return tenant
