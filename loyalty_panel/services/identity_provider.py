"""
Local identity provider.

Proves who a user is (email + password against the ``users`` table) and
hands out signed bearer tokens. It knows nothing about panel roles.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.auth import create_access_token, decode_access_token, verify_password
from loyalty_panel.exceptions import AuthenticationError, InvalidCredentialsError
from loyalty_panel.services import user_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str


@dataclass(frozen=True)
class IdentitySession:
    token: str
    identity: Identity


@dataclass(frozen=True)
class RoleRecord:
    role: str
    tenant_id: str | None


class LocalIdentityProvider:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self._clock = clock
        # jti -> token exp; an expired token is rejected by decoding, so its entry can go
        self._revoked: dict[str, float] = {}

    @property
    def revoked_count(self) -> int:
        return len(self._revoked)

    def _prune_revoked(self) -> None:
        now = self._clock()
        expired = [jti for jti, exp in self._revoked.items() if exp <= now]
        for jti in expired:
            del self._revoked[jti]
        if expired:
            logger.debug("Pruned %d expired revoked tokens", len(expired))

    async def _authenticate(self, email: str, password: str) -> Identity | None:
        async with self._session_factory() as db:
            user = await user_service.get_user_by_email(email, db)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return Identity(user_id=user.id, email=user.email)

    async def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        identity = await self._authenticate(email, password)
        if identity is None:
            raise InvalidCredentialsError()
        token = create_access_token({"sub": identity.user_id, "email": identity.email})
        return IdentitySession(token=token, identity=identity)

    async def check_credentials(self, email: str, password: str) -> bool:
        """Validate credentials without issuing a token."""
        return await self._authenticate(email, password) is not None

    async def get_identity(self, token: str) -> Identity | None:
        """Resolve a bearer token; None when it is expired, invalid or revoked."""
        try:
            claims = decode_access_token(token)
        except AuthenticationError:
            return None
        self._prune_revoked()
        if claims.get("jti") in self._revoked:
            return None

        async with self._session_factory() as db:
            user = await user_service.get_user_by_id(claims["sub"], db)
        if user is None:
            return None
        return Identity(user_id=user.id, email=user.email)

    async def get_role_record(self, user_id: str) -> RoleRecord | None:
        async with self._session_factory() as db:
            record = await user_service.get_role_record(user_id, db)
        if record is None:
            return None
        return RoleRecord(role=record.role, tenant_id=record.tenant_id)

    async def sign_out(self, token: str) -> None:
        try:
            claims = decode_access_token(token)
        except AuthenticationError:
            return
        self._prune_revoked()
        self._revoked[claims["jti"]] = float(claims.get("exp", float("inf")))
        logger.debug("Token revoked for user_id=%s", claims["sub"])
