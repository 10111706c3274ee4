"""
Tenant Routes

GET    /tenants                                            → tenants in scope
GET    /tenants/{tenant_id}                                → one tenant
PATCH  /tenants/{tenant_id}                                → edit profile and branding
DELETE /tenants/{tenant_id}                                → delete permanently (password re-check)
GET    /tenants/{tenant_id}/profile-completeness           → onboarding profile score
GET    /tenants/{tenant_id}/locations                      → its locations
POST   /tenants/{tenant_id}/locations                      → add a location
GET    /tenants/{tenant_id}/loyalty-programs               → its programs
POST   /tenants/{tenant_id}/loyalty-programs/{program_id}/activate

Reads outside the caller's scope come back empty (lists) or 404 (single
resources). Writes also need the matching permission flag.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_current_user, get_db, get_session_store, require_permission
from loyalty_panel.exceptions import AuthorizationError, TenantNotFoundError, ValidationError
from loyalty_panel.models.tenant import Tenant
from loyalty_panel.schemas.tenant import (
    LocationCreate,
    LocationResponse,
    LoyaltyProgramResponse,
    ProfileCompletenessResponse,
    TenantDeleteRequest,
    TenantResponse,
    TenantUpdate,
)
from loyalty_panel.services import tenant_service
from loyalty_panel.services.auth_service import AuthService, CurrentUser
from loyalty_panel.services.tenant_scope import resolve_tenant_scope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


async def _tenant_in_scope(tenant_id: str, user: CurrentUser, db: AsyncSession) -> Tenant:
    scope = resolve_tenant_scope(user, tenant_id)
    tenant = await tenant_service.get_tenant_by_id(tenant_id, db) if scope.allows(tenant_id) else None
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


@router.get("", response_model=list[TenantResponse])
async def list_tenants_route(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TenantResponse]:
    tenants = await tenant_service.list_tenants(resolve_tenant_scope(user), db)
    return [TenantResponse.model_validate(t) for t in tenants]


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant_route(
    tenant_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TenantResponse:
    return TenantResponse.model_validate(await _tenant_in_scope(tenant_id, user, db))


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant_route(
    tenant_id: str,
    payload: TenantUpdate,
    user: CurrentUser = Depends(require_permission("can_edit_tenants")),
    session: AuthService = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> TenantResponse:
    tenant = await _tenant_in_scope(tenant_id, user, db)
    if not session.can_manage_tenant(tenant.id):
        raise AuthorizationError(required_permission="tenant_manage")

    tenant = await tenant_service.update_tenant(tenant, payload.model_dump(exclude_unset=True), db)
    container.dashboard.invalidate()
    return TenantResponse.model_validate(tenant)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant_route(
    tenant_id: str,
    payload: TenantDeleteRequest,
    user: CurrentUser = Depends(require_permission("can_delete_tenants")),
    session: AuthService = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    """Irreversible. The caller confirms with their own password and the tenant's name."""
    tenant = await _tenant_in_scope(tenant_id, user, db)
    if not session.can_manage_tenant(tenant.id):
        raise AuthorizationError(required_permission="tenant_manage")
    if payload.confirm_name != tenant.name:
        raise ValidationError("Confirmation does not match the business name", field="confirm_name")
    if not await session.verify_password(user.email, payload.password):
        raise ValidationError("Incorrect password", field="password")

    logger.warning("Tenant %s deleted by user_id=%s", tenant.id, user.id)
    await tenant_service.delete_tenant(tenant.id, db)
    container.dashboard.invalidate()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{tenant_id}/profile-completeness", response_model=ProfileCompletenessResponse)
async def profile_completeness_route(
    tenant_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileCompletenessResponse:
    tenant = await _tenant_in_scope(tenant_id, user, db)
    result = await tenant_service.get_profile_completeness(tenant, db)
    return ProfileCompletenessResponse(
        tenant_id=tenant.id,
        score=result.score,
        max_score=result.max_score,
        percent=result.percent,
        missing=result.missing,
    )


@router.get("/{tenant_id}/locations", response_model=list[LocationResponse])
async def list_locations_route(
    tenant_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[LocationResponse]:
    locations = await tenant_service.list_locations(resolve_tenant_scope(user, tenant_id), db)
    return [LocationResponse.model_validate(loc) for loc in locations]


@router.post("/{tenant_id}/locations", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location_route(
    tenant_id: str,
    payload: LocationCreate,
    user: CurrentUser = Depends(require_permission("can_create_locations")),
    session: AuthService = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> LocationResponse:
    tenant = await _tenant_in_scope(tenant_id, user, db)
    if not session.can_access_tenant(tenant.id):
        raise AuthorizationError(required_permission="tenant_access")

    location = await tenant_service.create_location(tenant, payload.name, payload.address, db)
    container.dashboard.invalidate()
    return LocationResponse.model_validate(location)


@router.get("/{tenant_id}/loyalty-programs", response_model=list[LoyaltyProgramResponse])
async def list_programs_route(
    tenant_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[LoyaltyProgramResponse]:
    programs = await tenant_service.list_loyalty_programs(resolve_tenant_scope(user, tenant_id), db)
    return [LoyaltyProgramResponse.model_validate(p) for p in programs]


@router.post("/{tenant_id}/loyalty-programs/{program_id}/activate", response_model=LoyaltyProgramResponse)
async def activate_program_route(
    tenant_id: str,
    program_id: str,
    user: CurrentUser = Depends(require_permission("can_edit_loyalty_programs")),
    session: AuthService = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> LoyaltyProgramResponse:
    """Make one program the tenant's only active program."""
    tenant = await _tenant_in_scope(tenant_id, user, db)
    if not session.can_manage_tenant(tenant.id):
        raise AuthorizationError(required_permission="tenant_manage")

    program = await tenant_service.activate_program(tenant.id, program_id, db)
    container.dashboard.invalidate()
    return LoyaltyProgramResponse.model_validate(program)
