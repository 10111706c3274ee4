"""
Tenant Schemas

Pydantic models for tenants, locations and loyalty programs.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    business_type: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_person: str | None = None
    logo_url: str | None = None
    background_image_url: str | None = None
    stamp_icon_url: str | None = None
    status: str
    rejection_reason: str | None = None
    change_request_notes: str | None = None
    onboarding_completed: bool = False
    approved_at: datetime | None = None
    created_at: datetime


class BillingInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    company_name: str | None = None
    nip: str | None = None
    street_address: str | None = None
    city: str | None = None
    postal_code: str | None = None


class LocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    tenant_id: str
    name: str
    address: str
    scan_code: str
    created_at: datetime


class LocationCreate(BaseModel):
    """Request to add a location to a tenant"""

    name: str = Field(..., min_length=2, max_length=200)
    address: str = Field(..., min_length=5, max_length=500)


class LoyaltyProgramResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    tenant_id: str
    stamps_required: int
    reward_description: str
    active: bool
    created_at: datetime


class TenantUpdate(BaseModel):
    """Profile and branding fields; omitted fields are left unchanged"""

    name: str | None = Field(None, min_length=2, max_length=200)
    business_type: str | None = Field(None, max_length=100)
    contact_email: str | None = Field(None, max_length=255)
    contact_phone: str | None = Field(None, max_length=32)
    contact_person: str | None = Field(None, max_length=200)
    logo_url: str | None = Field(None, max_length=500)
    background_image_url: str | None = Field(None, max_length=500)
    stamp_icon_url: str | None = Field(None, max_length=500)


class TenantDeleteRequest(BaseModel):
    """Irreversible delete: the caller re-enters their password and the tenant name"""

    password: str = Field(..., min_length=1)
    confirm_name: str


class ProfileCompletenessResponse(BaseModel):
    tenant_id: str
    score: int
    max_score: int
    percent: int
    missing: list[str] = Field(default_factory=list)
