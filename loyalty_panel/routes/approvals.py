"""
Approval Routes (super admin only)

GET  /approvals/pending                      → businesses awaiting review
GET  /approvals/pending/count                → how many
GET  /approvals/{tenant_id}                  → everything submitted during onboarding
POST /approvals/{tenant_id}/approve
POST /approvals/{tenant_id}/reject
POST /approvals/{tenant_id}/request-changes
POST /approvals/{tenant_id}/resubmit
"""

from fastapi import APIRouter, Depends

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, require_role
from loyalty_panel.schemas.approval import (
    ApprovalActionResponse,
    BusinessDetailsResponse,
    PendingBusinessResponse,
    PendingCountResponse,
    RejectRequest,
    RequestChangesRequest,
)
from loyalty_panel.schemas.tenant import TenantResponse
from loyalty_panel.services.auth_service import CurrentUser

router = APIRouter(prefix="/approvals", tags=["Approvals"])

super_admin_only = require_role(UserRole.SUPER_ADMIN)


def _action(tenant, message: str) -> ApprovalActionResponse:
    return ApprovalActionResponse(tenant=TenantResponse.model_validate(tenant), message=message)


@router.get("/pending", response_model=list[PendingBusinessResponse])
async def pending_businesses(
    _admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> list[PendingBusinessResponse]:
    return await container.approvals.get_pending_businesses()


@router.get("/pending/count", response_model=PendingCountResponse)
async def pending_count(
    _admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> PendingCountResponse:
    return PendingCountResponse(count=await container.approvals.get_pending_count())


@router.get("/{tenant_id}", response_model=BusinessDetailsResponse)
async def business_details(
    tenant_id: str,
    _admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> BusinessDetailsResponse:
    return await container.approvals.get_business_details(tenant_id)


@router.post("/{tenant_id}/approve", response_model=ApprovalActionResponse)
async def approve(
    tenant_id: str,
    admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> ApprovalActionResponse:
    tenant = await container.approvals.approve_business(tenant_id, approved_by=admin.id)
    return _action(tenant, "Business approved")


@router.post("/{tenant_id}/reject", response_model=ApprovalActionResponse)
async def reject(
    tenant_id: str,
    payload: RejectRequest,
    admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> ApprovalActionResponse:
    tenant = await container.approvals.reject_business(tenant_id, payload.reason, rejected_by=admin.id)
    return _action(tenant, "Business rejected")


@router.post("/{tenant_id}/request-changes", response_model=ApprovalActionResponse)
async def request_changes(
    tenant_id: str,
    payload: RequestChangesRequest,
    _admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> ApprovalActionResponse:
    tenant = await container.approvals.request_changes(tenant_id, payload.notes)
    return _action(tenant, "Changes requested")


@router.post("/{tenant_id}/resubmit", response_model=ApprovalActionResponse)
async def resubmit(
    tenant_id: str,
    _admin: CurrentUser = Depends(super_admin_only),
    container: ServiceContainer = Depends(get_container),
) -> ApprovalActionResponse:
    tenant = await container.approvals.resubmit_after_rejection(tenant_id)
    return _action(tenant, "Business returned to review")
