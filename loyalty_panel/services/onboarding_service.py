"""
Onboarding Service

Creates a new business in one go: tenant, owner role, first location,
loyalty program, then optional billing and branding.

The steps run one after another and each commits on its own. There is no
rollback: when a step fails, the rows created by earlier steps stay and the
failing step's message is returned. Billing and branding failures are only
reported as warnings.
"""

import enum
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.constants.roles import ONBOARDING_OWNER_ROLE
from loyalty_panel.exceptions import DuplicateResourceError, ServiceError, ValidationError
from loyalty_panel.models.loyalty_program import MAX_STAMPS_REQUIRED, MIN_STAMPS_REQUIRED, LoyaltyProgram
from loyalty_panel.models.tenant import Tenant, TenantBillingInfo, TenantStatus
from loyalty_panel.schemas.onboarding import FieldError, OnboardingRequest, OnboardingResponse, OnboardingValidationResponse
from loyalty_panel.services import tenant_service, user_service
from loyalty_panel.state import AppStateStore
from loyalty_panel.utils.nip import clean_nip, validate_nip_checksum
from loyalty_panel.utils.validation import validate_email, validate_phone, validate_postal_code

logger = logging.getLogger(__name__)


class OnboardingStep(str, enum.Enum):
    TENANT = "tenant"
    OWNER_ROLE = "owner_role"
    LOCATION = "location"
    LOYALTY_PROGRAM = "loyalty_program"
    BILLING = "billing"
    BRANDING = "branding"


STEP_ERRORS = {
    OnboardingStep.TENANT: "Could not create the business",
    OnboardingStep.OWNER_ROLE: "Could not assign the business owner role",
    OnboardingStep.LOCATION: "Could not create the location",
    OnboardingStep.LOYALTY_PROGRAM: "Could not create the loyalty program",
    OnboardingStep.BILLING: "Billing details could not be saved; add them later in settings",
    OnboardingStep.BRANDING: "Branding images could not be saved; add them later in settings",
}


class OnboardingService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], state: AppStateStore):
        self._session_factory = session_factory
        self._state = state

    @staticmethod
    def validate_business_data(data: OnboardingRequest) -> OnboardingValidationResponse:
        """Check every field and return all problems found."""
        errors: list[FieldError] = []

        def fail(field: str, message: str) -> None:
            errors.append(FieldError(field=field, message=message))

        if len(data.business_name.strip()) < 2:
            fail("business_name", "Business name is required (min. 2 characters)")
        if not data.business_type.strip():
            fail("business_type", "Business type is required")
        if len(data.contact_person.strip()) < 2:
            fail("contact_person", "Contact person is required")

        email = validate_email(data.contact_email)
        if not email.valid:
            fail("contact_email", email.error)
        phone = validate_phone(data.contact_phone)
        if not phone.valid:
            fail("contact_phone", phone.error)

        if len(data.location_name.strip()) < 2:
            fail("location_name", "Location name is required")
        if len(data.location_address.strip()) < 5:
            fail("location_address", "Location address is required")

        if data.stamps_required is None or not MIN_STAMPS_REQUIRED <= data.stamps_required <= MAX_STAMPS_REQUIRED:
            fail("stamps_required", f"Stamps required must be between {MIN_STAMPS_REQUIRED} and {MAX_STAMPS_REQUIRED}")
        if len(data.reward_description.strip()) < 3:
            fail("reward_description", "Reward description is required")

        if data.nip and not validate_nip_checksum(data.nip):
            fail("nip", "Invalid NIP")
        if data.postal_code:
            postal = validate_postal_code(data.postal_code)
            if not postal.valid:
                fail("postal_code", postal.error)

        return OnboardingValidationResponse(valid=not errors, errors=errors)

    async def _similar_business_names(self, name: str, db: AsyncSession) -> list[str]:
        pattern = f"%{name.strip().lower()}%"
        result = await db.execute(select(Tenant.name).where(func.lower(Tenant.name).like(pattern)))
        return list(result.scalars().all())

    async def _nip_exists(self, nip: str, db: AsyncSession) -> bool:
        result = await db.execute(select(TenantBillingInfo.id).where(TenantBillingInfo.nip == nip))
        return result.first() is not None

    async def complete_onboarding(self, data: OnboardingRequest, user_id: str) -> OnboardingResponse:
        """
        Run the onboarding steps for `user_id`.

        Raises:
            ValidationError: any field is invalid (all errors are in details)
            DuplicateResourceError: the NIP is already registered
        """
        logger.info("Starting onboarding for user_id=%s", user_id)

        report = self.validate_business_data(data)
        if not report.valid:
            first = report.errors[0]
            logger.warning("Onboarding validation failed: %s", [e.field for e in report.errors])
            raise ValidationError(
                first.message,
                field=first.field,
                details={"errors": [e.model_dump() for e in report.errors]},
            )

        nip = clean_nip(data.nip) if data.nip else None
        response = OnboardingResponse(success=False)

        async with self._session_factory() as db:
            if nip and await self._nip_exists(nip, db):
                logger.warning("Onboarding rejected: NIP already registered")
                raise DuplicateResourceError("Business", "NIP", nip)

            similar = await self._similar_business_names(data.business_name, db)
            if similar:
                logger.warning("Similar business names found: %s", similar)
                response.warnings.append(f"Businesses with a similar name already exist: {', '.join(similar)}")

            step = OnboardingStep.TENANT
            try:
                tenant = Tenant(
                    name=data.business_name.strip(),
                    business_type=data.business_type.strip(),
                    contact_email=data.contact_email.strip(),
                    contact_phone=data.contact_phone.strip(),
                    contact_person=data.contact_person.strip(),
                    status=TenantStatus.pending.value,
                )
                db.add(tenant)
                await db.commit()
                await db.refresh(tenant)
                tenant_id = tenant.id
                response.tenant_id = tenant_id
                logger.info("Onboarding: tenant created id=%s", tenant_id)

                step = OnboardingStep.OWNER_ROLE
                await user_service.upsert_role(user_id, ONBOARDING_OWNER_ROLE, db, tenant_id=tenant_id)

                step = OnboardingStep.LOCATION
                await tenant_service.create_location(tenant, data.location_name, data.location_address, db)

                step = OnboardingStep.LOYALTY_PROGRAM
                db.add(
                    LoyaltyProgram(
                        tenant_id=tenant_id,
                        stamps_required=data.stamps_required,
                        reward_description=data.reward_description.strip(),
                        active=True,
                    )
                )
                await db.commit()
            except (SQLAlchemyError, ServiceError) as e:
                await db.rollback()
                logger.error(f"Onboarding failed at step '{step.value}': {e!s}")
                response.error = STEP_ERRORS[step]
                response.failed_step = step.value
                return response

            if data.has_billing:
                try:
                    db.add(
                        TenantBillingInfo(
                            tenant_id=tenant_id,
                            company_name=data.company_name,
                            nip=nip,
                            street_address=data.street_address,
                            city=data.city,
                            postal_code=data.postal_code,
                        )
                    )
                    await db.commit()
                except SQLAlchemyError as e:
                    await db.rollback()
                    logger.error(f"Onboarding: billing info not saved for tenant_id={tenant_id}: {e!s}")
                    response.warnings.append(STEP_ERRORS[OnboardingStep.BILLING])

            try:
                tenant = await tenant_service.get_tenant_by_id(tenant_id, db)
                tenant.logo_url = data.logo_url
                tenant.background_image_url = data.background_image_url
                tenant.stamp_icon_url = data.stamp_icon_url
                tenant.onboarding_completed = True
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Onboarding: branding not saved for tenant_id={tenant_id}: {e!s}")
                response.warnings.append(STEP_ERRORS[OnboardingStep.BRANDING])

        self._state.clear_cache()
        response.success = True
        logger.info("Onboarding completed: tenant_id=%s", tenant_id)
        return response
