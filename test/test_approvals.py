"""
Business approval workflow
"""

import pytest

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.exceptions import InvalidStatusTransitionError, TenantNotFoundError, ValidationError
from loyalty_panel.models import TenantStatus
from loyalty_panel.services.approval_service import ApprovalService
from loyalty_panel.state import AppStateStore
from utils.seed import create_location, create_program, create_tenant, create_user

REASON = "Logo is missing and the address is incomplete"


@pytest.fixture
def service(session_factory) -> ApprovalService:
    return ApprovalService(session_factory, AppStateStore())


@pytest.fixture
async def pending(test_db):
    tenant = await create_tenant(test_db, "Coderno Coffee", status=TenantStatus.pending)
    await create_user(test_db, "owner@coderno.pl", UserRole.BUSINESS_OWNER, tenant_id=tenant.id)
    await create_location(test_db, tenant)
    await create_program(test_db, tenant)
    return tenant


class TestReads:
    @pytest.mark.asyncio
    async def test_pending_list_includes_owner(self, service, test_db, pending):
        await create_tenant(test_db, "Already Active", status=TenantStatus.active)

        businesses = await service.get_pending_businesses()

        assert [b.id for b in businesses] == [pending.id]
        assert businesses[0].owner_email == "owner@coderno.pl"
        assert await service.get_pending_count() == 1

    @pytest.mark.asyncio
    async def test_details(self, service, pending):
        details = await service.get_business_details(pending.id)
        assert details.tenant.id == pending.id
        assert details.location.name == "Centrum"
        assert details.loyalty_program.stamps_required == 10
        assert details.billing_info is None
        assert details.owner.email == "owner@coderno.pl"

    @pytest.mark.asyncio
    async def test_details_of_missing_tenant(self, service):
        with pytest.raises(TenantNotFoundError):
            await service.get_business_details("missing")

    @pytest.mark.asyncio
    async def test_pending_list_is_cached_until_a_transition(self, service, test_db, pending):
        assert len(await service.get_pending_businesses()) == 1
        await create_tenant(test_db, "Second", status=TenantStatus.pending)
        assert len(await service.get_pending_businesses()) == 1

        await service.approve_business(pending.id, approved_by="admin-1")
        assert [b.name for b in await service.get_pending_businesses()] == ["Second"]


class TestTransitions:
    @pytest.mark.asyncio
    async def test_approve(self, service, pending):
        tenant = await service.approve_business(pending.id, approved_by="admin-1")
        assert tenant.status == "active"
        assert tenant.approved_by == "admin-1"
        assert tenant.approved_at is not None

    @pytest.mark.asyncio
    async def test_approve_twice_is_rejected(self, service, pending):
        await service.approve_business(pending.id, approved_by="admin-1")
        with pytest.raises(InvalidStatusTransitionError):
            await service.approve_business(pending.id, approved_by="admin-1")

    @pytest.mark.asyncio
    async def test_reject_needs_a_reason(self, service, pending):
        with pytest.raises(ValidationError) as exc_info:
            await service.reject_business(pending.id, "too short", rejected_by="admin-1")
        assert exc_info.value.field == "reason"

    @pytest.mark.asyncio
    async def test_reject_then_resubmit(self, service, pending):
        rejected = await service.reject_business(pending.id, REASON, rejected_by="admin-1")
        assert rejected.status == "rejected"
        assert rejected.rejection_reason == REASON

        resubmitted = await service.resubmit_after_rejection(pending.id)
        assert resubmitted.status == "pending"
        assert resubmitted.approved_by is None

    @pytest.mark.asyncio
    async def test_resubmit_requires_rejection(self, service, pending):
        with pytest.raises(InvalidStatusTransitionError):
            await service.resubmit_after_rejection(pending.id)

    @pytest.mark.asyncio
    async def test_request_changes_keeps_pending(self, service, pending):
        tenant = await service.request_changes(pending.id, REASON)
        assert tenant.status == "pending"
        assert tenant.change_request_notes == REASON

    @pytest.mark.asyncio
    async def test_missing_tenant(self, service):
        with pytest.raises(TenantNotFoundError):
            await service.approve_business("missing", approved_by="admin-1")
