"""
Onboarding Routes

POST /onboarding           → create the signed-in user's business
POST /onboarding/validate  → check the wizard fields without saving
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_current_user, get_session_store
from loyalty_panel.exceptions import ValidationError
from loyalty_panel.schemas.onboarding import OnboardingRequest, OnboardingResponse, OnboardingValidationResponse
from loyalty_panel.services.auth_service import AuthService, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])


@router.post(
    "",
    response_model=OnboardingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": OnboardingResponse}},
)
async def complete_onboarding(
    payload: OnboardingRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AuthService = Depends(get_session_store),
    container: ServiceContainer = Depends(get_container),
):
    if user.tenant_id:
        raise ValidationError("Your account already belongs to a business", field="tenant_id")

    result = await container.onboarding.complete_onboarding(payload, user.id)
    # The owner role was written during onboarding
    session.invalidate_cache()
    if not result.success:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result.model_dump(mode="json"))
    return result


@router.post("/validate", response_model=OnboardingValidationResponse)
async def validate_onboarding(
    payload: OnboardingRequest,
    container: ServiceContainer = Depends(get_container),
) -> OnboardingValidationResponse:
    return container.onboarding.validate_business_data(payload)
