"""
Auth Routes

Bearer-token sessions backed by the session store. Every token maps to one
AuthService held by the container's SessionRegistry.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_current_user, get_db, get_session_store, get_token
from loyalty_panel.exceptions import ValidationError
from loyalty_panel.permissions_config.permissions import get_permissions_for_role
from loyalty_panel.schemas.auth import (
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    VerifyPasswordRequest,
    VerifyPasswordResponse,
)
from loyalty_panel.services import user_service
from loyalty_panel.services.auth_service import AuthService, CurrentUser
from loyalty_panel.utils.validation import validate_password, validate_password_confirmation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token_response(token: str, user: CurrentUser) -> TokenResponse:
    return TokenResponse(
        access_token=token,
        user=CurrentUserResponse.build(user, get_permissions_for_role(user.role)),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> TokenResponse:
    """
    Create an account and sign it in.

    New accounts get the viewer role without a tenant; completing onboarding
    turns them into the owner of the new business.
    """
    for check, field in (
        (validate_password(payload.password), "password"),
        (validate_password_confirmation(payload.password, payload.password_confirmation), "password_confirmation"),
    ):
        if not check.valid:
            raise ValidationError(check.error, field=field)

    user = await user_service.create_user(payload.email, payload.password, db, full_name=payload.full_name)
    await user_service.upsert_role(user.id, UserRole.VIEWER, db)

    token, current = await container.sessions.login(payload.email, payload.password)
    logger.info("Account registered: user_id=%s", current.id)
    return _token_response(token, current)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    container: ServiceContainer = Depends(get_container),
) -> TokenResponse:
    token, user = await container.sessions.login(payload.email, payload.password)
    return _token_response(token, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(get_token),
    container: ServiceContainer = Depends(get_container),
) -> None:
    await container.sessions.logout(token)


@router.get("/me", response_model=CurrentUserResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    session: AuthService = Depends(get_session_store),
) -> CurrentUserResponse:
    return CurrentUserResponse.build(user, session.get_permissions())


@router.post("/verify-password", response_model=VerifyPasswordResponse)
async def verify_password(
    payload: VerifyPasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AuthService = Depends(get_session_store),
) -> VerifyPasswordResponse:
    """Re-check the signed-in user's password before a sensitive action."""
    return VerifyPasswordResponse(valid=await session.verify_password(user.email, payload.password))
