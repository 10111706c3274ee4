"""
Onboarding Schemas

One request carries everything the onboarding wizard collects. Field rules
are checked by OnboardingService.validate_business_data so every problem is
reported at once, not by pydantic.
"""

from pydantic import BaseModel, Field


class OnboardingRequest(BaseModel):
    # Basic info
    business_name: str = ""
    business_type: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    contact_person: str = ""

    # First location
    location_name: str = ""
    location_address: str = ""

    # Billing (optional)
    company_name: str | None = None
    nip: str | None = None
    street_address: str | None = None
    city: str | None = None
    postal_code: str | None = None

    # Branding (optional, already uploaded)
    logo_url: str | None = None
    background_image_url: str | None = None
    stamp_icon_url: str | None = None

    # Loyalty program
    stamps_required: int | None = None
    reward_description: str = ""

    @property
    def has_billing(self) -> bool:
        return bool(self.nip or self.company_name)


class FieldError(BaseModel):
    field: str
    message: str


class OnboardingValidationResponse(BaseModel):
    valid: bool
    errors: list[FieldError] = Field(default_factory=list)


class OnboardingResponse(BaseModel):
    success: bool
    tenant_id: str | None = None
    error: str | None = None
    failed_step: str | None = None
    warnings: list[str] = Field(default_factory=list)
