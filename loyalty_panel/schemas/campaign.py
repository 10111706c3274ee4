"""
Campaign Schemas

Pydantic models for push campaigns.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SegmentResponse(BaseModel):
    value: str
    label: str
    behavioral_targeting: bool
    preview_supported: bool
    diagnostic: bool
    requires_confirmation: bool


class SegmentPreviewRequest(BaseModel):
    tenant_id: str | None = None
    segment: str = "all_customers"


class SegmentPreviewResponse(BaseModel):
    segment: str
    count: int
    supported: bool
    warnings: list[str] = Field(default_factory=list)


class CampaignCreate(BaseModel):
    """Request to send a campaign now"""

    name: str | None = None
    title: str = Field("", max_length=200)
    message: str = Field("", max_length=2000)
    tenant_id: str | None = None
    segment: str = "all_customers"
    confirm_all_subscribers: bool = False


class CampaignSendResponse(BaseModel):
    success: bool
    campaign_id: str | None = None
    notification_id: str | None = None
    recipients: int = 0
    error: str | None = None
    provider_status: int | None = None
    provider_detail: Any = None
    warnings: list[str] = Field(default_factory=list)


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    onesignal_notification_id: str | None = None
    name: str
    message_title: str
    message_body: str
    segment_type: str
    target_count: int
    sent_at: datetime
    created_by: str | None = None
    created_at: datetime


class CampaignStatsResponse(BaseModel):
    sent: int
    delivered: int
    failed: int
    remaining: int
