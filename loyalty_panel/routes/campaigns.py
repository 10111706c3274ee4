"""
Campaign Routes

GET  /campaigns/segments         → audience segments and what they support
POST /campaigns/preview          → estimated recipients for a segment
POST /campaigns                  → send a campaign now
GET  /campaigns                  → campaign history of one tenant
GET  /campaigns/{id}/stats       → delivery counters from the provider
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_current_user, require_role
from loyalty_panel.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from loyalty_panel.schemas.campaign import (
    CampaignCreate,
    CampaignResponse,
    CampaignSendResponse,
    CampaignStatsResponse,
    SegmentPreviewRequest,
    SegmentPreviewResponse,
    SegmentResponse,
)
from loyalty_panel.services.auth_service import CurrentUser
from loyalty_panel.services.push_gateway import SEGMENT_CAPABILITIES, SegmentType
from loyalty_panel.services.tenant_scope import ScopeKind, resolve_tenant_scope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])

campaign_senders = require_role(UserRole.SUPER_ADMIN, UserRole.BUSINESS_OWNER)


def _parse_segment(value: str | None, user: CurrentUser) -> SegmentType:
    try:
        segment = SegmentType.parse(value)
    except ValueError:
        raise ValidationError(f"Unknown segment '{value}'", field="segment")
    if segment.capability.diagnostic and user.known_role is not UserRole.SUPER_ADMIN:
        raise AuthorizationError(required_permission=f"segment:{segment.value}")
    return segment


def _target_tenant(user: CurrentUser, requested_tenant_id: str | None) -> str:
    """The single tenant a campaign action applies to."""
    scope = resolve_tenant_scope(user, requested_tenant_id)
    if scope.kind is ScopeKind.TENANT:
        return scope.tenant_id
    if scope.is_all or not requested_tenant_id:
        raise ValidationError("Choose the business to target", field="tenant_id")
    raise AuthorizationError(required_permission="tenant_access")


@router.get("/segments", response_model=list[SegmentResponse])
async def list_segments(user: CurrentUser = Depends(get_current_user)) -> list[SegmentResponse]:
    is_admin = user.known_role is UserRole.SUPER_ADMIN
    return [
        SegmentResponse(value=segment.value, **asdict(capability))
        for segment, capability in SEGMENT_CAPABILITIES.items()
        if is_admin or not capability.diagnostic
    ]


@router.post("/preview", response_model=SegmentPreviewResponse)
async def preview_segment(
    payload: SegmentPreviewRequest,
    user: CurrentUser = Depends(campaign_senders),
    container: ServiceContainer = Depends(get_container),
) -> SegmentPreviewResponse:
    segment = _parse_segment(payload.segment, user)
    tenant_id = _target_tenant(user, payload.tenant_id)
    preview = await container.campaigns.preview_segment(tenant_id, segment)
    return SegmentPreviewResponse(
        segment=preview.segment.value,
        count=preview.count,
        supported=preview.supported,
        warnings=preview.warnings,
    )


@router.post(
    "",
    response_model=CampaignSendResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_502_BAD_GATEWAY: {"model": CampaignSendResponse}},
)
async def send_campaign(
    payload: CampaignCreate,
    user: CurrentUser = Depends(campaign_senders),
    container: ServiceContainer = Depends(get_container),
):
    """
    Send a campaign to the tenant's customers.

    A provider failure is answered with 502 and the provider's error detail in
    the body. A campaign that went out but could not be recorded is still a
    success, with a warning.
    """
    segment = _parse_segment(payload.segment, user)
    tenant_id = _target_tenant(user, payload.tenant_id)
    result = await container.campaigns.send_campaign(
        name=payload.name,
        title=payload.title,
        message=payload.message,
        tenant_id=tenant_id,
        segment=segment,
        created_by=user.id,
        confirm_all_subscribers=payload.confirm_all_subscribers,
    )
    body = CampaignSendResponse(**asdict(result))
    if not result.success:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=body.model_dump(mode="json"))
    return body


@router.get("", response_model=list[CampaignResponse])
async def list_campaigns(
    tenant_id: str | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> list[CampaignResponse]:
    scope = resolve_tenant_scope(user, tenant_id)
    if scope.kind is not ScopeKind.TENANT:
        return []
    campaigns = await container.campaigns.list_campaigns(scope.tenant_id)
    return [CampaignResponse.model_validate(c) for c in campaigns]


@router.get("/{campaign_id}/stats", response_model=CampaignStatsResponse)
async def campaign_stats(
    campaign_id: str,
    user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> CampaignStatsResponse:
    campaign = await container.campaigns.get_campaign(campaign_id)
    if campaign is None or not resolve_tenant_scope(user, campaign.tenant_id).allows(campaign.tenant_id):
        raise ResourceNotFoundError("Campaign", campaign_id)
    if not campaign.onesignal_notification_id:
        return CampaignStatsResponse(sent=0, delivered=0, failed=0, remaining=0)

    stats = await container.campaigns.get_campaign_stats(campaign.onesignal_notification_id)
    return CampaignStatsResponse(**asdict(stats))
