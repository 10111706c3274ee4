"""
Approval Schemas

Pydantic models for the business approval workflow.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from loyalty_panel.schemas.tenant import BillingInfoResponse, LocationResponse, LoyaltyProgramResponse, TenantResponse

MIN_REASON_LENGTH = 10


class PendingBusinessResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    business_type: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_person: str | None = None
    created_at: datetime
    owner_email: str | None = None
    owner_id: str | None = None


class OwnerResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str


class BusinessDetailsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    tenant: TenantResponse
    location: LocationResponse | None = None
    loyalty_program: LoyaltyProgramResponse | None = None
    billing_info: BillingInfoResponse | None = None
    owner: OwnerResponse | None = None


class PendingCountResponse(BaseModel):
    count: int


class RejectRequest(BaseModel):
    """Reject a pending business; the reason is shown to the owner"""

    reason: str = Field(..., description=f"At least {MIN_REASON_LENGTH} characters")


class RequestChangesRequest(BaseModel):
    notes: str = Field(..., description=f"At least {MIN_REASON_LENGTH} characters")


class ApprovalActionResponse(BaseModel):
    tenant: TenantResponse
    message: str
