"""
FastAPI dependencies: container access, database sessions, and the
authenticated panel user.
"""

import logging
from collections.abc import AsyncIterator, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.container import ServiceContainer
from loyalty_panel.exceptions import AuthenticationError, AuthorizationError
from loyalty_panel.permissions_config.permissions import has_permission
from loyalty_panel.services.auth_service import AuthService, CurrentUser

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_db(container: ServiceContainer = Depends(get_container)) -> AsyncIterator[AsyncSession]:
    async with container.session_factory() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {e}")
            raise


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return credentials.credentials


def get_session_store(
    token: str = Depends(get_token),
    container: ServiceContainer = Depends(get_container),
) -> AuthService:
    return container.sessions.get(token)


async def get_current_user(
    request: Request,
    token: str = Depends(get_token),
    session: AuthService = Depends(get_session_store),
    container: ServiceContainer = Depends(get_container),
) -> CurrentUser:
    user = await session.fetch_current_user()
    if user is None:
        container.sessions.discard(token)
        raise AuthenticationError("Session expired or account has no role assigned")
    request.state.user = user
    return user


def require_role(*roles: UserRole) -> Callable:
    """Dependency that only lets the listed roles through."""
    allowed = {role.value for role in roles}

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning("Role %s denied; requires one of %s", user.role, sorted(allowed))
            raise AuthorizationError(required_permission=f"role:{'|'.join(sorted(allowed))}")
        return user

    return _check


def require_permission(permission: str) -> Callable:
    """Dependency that needs one permission flag of the caller's role."""

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_permission(user.role, permission):
            logger.warning("Role %s denied; lacks %s", user.role, permission)
            raise AuthorizationError(required_permission=permission)
        return user

    return _check
