"""
Session store.

One AuthService exists per bearer token. It resolves the panel user behind
the token (identity + role record), caches it briefly, and answers the
permission helpers the routes need. SessionRegistry owns the per-token
instances.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from loyalty_panel.auth import token_expiry
from loyalty_panel.constants.roles import UserRole, parse_role
from loyalty_panel.exceptions import NoRoleAssignedError
from loyalty_panel.permissions_config.permissions import UserPermissions, get_permissions_for_role
from loyalty_panel.services.identity_provider import LocalIdentityProvider
from loyalty_panel.utils.metrics import record_auth_attempt, record_cache_hit, record_cache_miss, set_active_sessions

logger = logging.getLogger(__name__)

DEFAULT_USER_CACHE_SECONDS = 30.0


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    role: str
    tenant_id: str | None = None

    @property
    def known_role(self) -> UserRole | None:
        return parse_role(self.role)


class AuthService:
    def __init__(
        self,
        provider: LocalIdentityProvider,
        token: str | None = None,
        cache_seconds: float = DEFAULT_USER_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._provider = provider
        self._clock = clock
        self._cache_seconds = cache_seconds
        self.token = token

        self._user_cache: CurrentUser | None = None
        self._cache_timestamp: float = 0.0
        self._inflight: asyncio.Task | None = None

        self._current_user: CurrentUser | None = None
        self._is_authenticated = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_current_user(self) -> CurrentUser | None:
        """Last resolved user. No I/O."""
        return self._current_user

    def is_authenticated(self) -> bool:
        return self._is_authenticated

    def _set_user(self, user: CurrentUser | None) -> None:
        self._current_user = user
        self._is_authenticated = user is not None
        logger.debug("User state updated: authenticated=%s user_id=%s", self._is_authenticated, user and user.id)

    def _cache_valid(self) -> bool:
        return self._user_cache is not None and self._clock() - self._cache_timestamp < self._cache_seconds

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _load_user(self) -> CurrentUser | None:
        if not self.token:
            return None
        identity = await self._provider.get_identity(self.token)
        if identity is None:
            logger.info("No active session for token")
            return None
        record = await self._provider.get_role_record(identity.user_id)
        if record is None:
            logger.warning("Session exists but user_id=%s has no role record", identity.user_id)
            return None
        return CurrentUser(id=identity.user_id, email=identity.email, role=record.role, tenant_id=record.tenant_id)

    async def _refresh(self) -> CurrentUser | None:
        user = await self._load_user()
        if user is not None:
            self._user_cache = user
            self._cache_timestamp = self._clock()
        else:
            self._user_cache = None
            self._cache_timestamp = 0.0
        self._set_user(user)
        return user

    async def fetch_current_user(self) -> CurrentUser | None:
        """
        Resolve the user behind the session token.

        Served from cache for ``cache_seconds``. Concurrent callers during a
        lookup share the same in-flight request.
        """
        if self._cache_valid():
            record_cache_hit("session_user")
            self._set_user(self._user_cache)
            return self._user_cache

        if self._inflight is None:
            record_cache_miss("session_user")
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> CurrentUser:
        """
        Sign in and resolve the panel user.

        Raises:
            InvalidCredentialsError: wrong email or password
            NoRoleAssignedError: valid identity without a role record
        """
        logger.info("Login attempt started")
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except Exception:
            record_auth_attempt("failure")
            raise

        self.token = session.token
        user = await self._load_user()
        if user is None:
            record_auth_attempt("no_role")
            await self._provider.sign_out(session.token)
            self.token = None
            raise NoRoleAssignedError(user_id=session.identity.user_id)

        record_auth_attempt("success")
        self._user_cache = user
        self._cache_timestamp = self._clock()
        self._set_user(user)
        logger.info("Login successful: user_id=%s role=%s", user.id, user.role)
        return user

    async def logout(self) -> None:
        """Sign out at the provider. Local state is cleared even if that fails."""
        logger.info("Logging out user_id=%s", self._current_user and self._current_user.id)
        try:
            if self.token:
                await self._provider.sign_out(self.token)
        finally:
            self._user_cache = None
            self._cache_timestamp = 0.0
            self.token = None
            self._set_user(None)

    def invalidate_cache(self) -> None:
        """Force the next fetch_current_user to look the user up again."""
        self._user_cache = None
        self._cache_timestamp = 0.0

    async def verify_password(self, email: str, password: str) -> bool:
        """Check credentials without touching this session."""
        valid = await self._provider.check_credentials(email, password)
        if not valid:
            logger.warning("Password verification failed")
        return valid

    # ------------------------------------------------------------------
    # Permission helpers (use the last resolved user)
    # ------------------------------------------------------------------

    def get_permissions(self) -> UserPermissions | None:
        user = self._current_user
        if user is None:
            return None
        return get_permissions_for_role(user.role)

    def is_super_admin(self) -> bool:
        user = self._current_user
        return user is not None and user.known_role is UserRole.SUPER_ADMIN

    def is_business_owner(self) -> bool:
        user = self._current_user
        return user is not None and user.known_role is UserRole.BUSINESS_OWNER

    def get_user_tenant_id(self) -> str | None:
        user = self._current_user
        return user.tenant_id if user else None

    def can_access_tenant(self, tenant_id: str) -> bool:
        user = self._current_user
        if user is None:
            return False
        if get_permissions_for_role(user.role).can_view_all_tenants:
            return True
        return (
            user.known_role in (UserRole.BUSINESS_OWNER, UserRole.MANAGER)
            and user.tenant_id is not None
            and user.tenant_id == tenant_id
        )

    def can_manage_tenant(self, tenant_id: str) -> bool:
        """Super admins manage every tenant; business owners only their own."""
        user = self._current_user
        if user is None:
            return False
        if self.is_super_admin():
            return True
        return (
            user.known_role is UserRole.BUSINESS_OWNER
            and user.tenant_id is not None
            and user.tenant_id == tenant_id
        )


class SessionRegistry:
    """
    Holds one AuthService per bearer token.

    Entries are dropped once their token's ``exp`` has passed; eviction runs
    whenever a new session is added.
    """

    def __init__(
        self,
        provider: LocalIdentityProvider,
        cache_seconds: float = DEFAULT_USER_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._provider = provider
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._sessions: dict[str, AuthService] = {}
        self._expires: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _new_service(self, token: str | None = None) -> AuthService:
        return AuthService(self._provider, token=token, cache_seconds=self._cache_seconds, clock=self._clock)

    def _add(self, token: str, service: AuthService) -> None:
        self._evict_expired()
        self._sessions[token] = service
        # Unreadable tokens never resolve, so they go on the next sweep
        self._expires[token] = token_expiry(token) or 0.0
        set_active_sessions(len(self._sessions))

    def _evict_expired(self) -> None:
        now = self._wall_clock()
        expired = [token for token, exp in self._expires.items() if exp <= now]
        for token in expired:
            self._sessions.pop(token, None)
            del self._expires[token]
        if expired:
            logger.debug("Evicted %d expired sessions", len(expired))
            set_active_sessions(len(self._sessions))

    def get(self, token: str) -> AuthService:
        service = self._sessions.get(token)
        if service is None:
            service = self._new_service(token)
            self._add(token, service)
        return service

    def discard(self, token: str) -> None:
        """Forget a token that no longer resolves to a user."""
        self._expires.pop(token, None)
        if self._sessions.pop(token, None) is not None:
            set_active_sessions(len(self._sessions))

    async def login(self, email: str, password: str) -> tuple[str, CurrentUser]:
        service = self._new_service()
        user = await service.login(email, password)
        self._add(service.token, service)
        return service.token, user

    async def logout(self, token: str) -> None:
        self._expires.pop(token, None)
        service = self._sessions.pop(token, None) or self._new_service(token)
        set_active_sessions(len(self._sessions))
        await service.logout()

    async def verify_password(self, email: str, password: str) -> bool:
        return await self._provider.check_credentials(email, password)
