"""
Process-wide application state with per-kind TTL caching.

State only changes through ``app_state_reducer`` applied to one of the action
dataclasses below. ``AppStateStore`` wraps the reducer with the cache helpers
the services use.

Cached data is keyed by (kind, key) where ``key`` is usually a tenant scope
cache key, so data resolved for one scope is never served to another.
"""

import enum
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar

from loyalty_panel.utils.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheKind(str, enum.Enum):
    USER = "user"
    TENANT = "tenant"
    LOCATIONS = "locations"
    DASHBOARD = "dashboard"
    PENDING_BUSINESSES = "pendingBusinesses"
    BUSINESS_DETAILS = "businessDetails"


# Seconds
CACHE_TTLS: dict[CacheKind, float] = {
    CacheKind.USER: 5 * 60,
    CacheKind.TENANT: 10 * 60,
    CacheKind.LOCATIONS: 5 * 60,
    CacheKind.DASHBOARD: 2 * 60,
    CacheKind.PENDING_BUSINESSES: 60,
    CacheKind.BUSINESS_DETAILS: 5 * 60,
}


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    timestamp: float

    def is_valid(self, ttl: float, now: float) -> bool:
        return now - self.timestamp < ttl


CacheKey = tuple[CacheKind, str]


@dataclass(frozen=True)
class AppState:
    current_user: Any = None
    is_authenticated: bool = False
    data: Mapping[CacheKey, Any] = field(default_factory=dict)
    cache_timestamps: Mapping[CacheKey, float | None] = field(default_factory=dict)
    loading: Mapping[CacheKind, bool] = field(default_factory=lambda: {kind: False for kind in CacheKind})
    errors: Mapping[CacheKind, str | None] = field(default_factory=lambda: {kind: None for kind in CacheKind})


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True)
class SetUser:
    user: Any
    key: str | None = None


@dataclass(frozen=True)
class SetAuthenticated:
    value: bool


@dataclass(frozen=True)
class SetTenant:
    key: str
    tenant: Any


@dataclass(frozen=True)
class SetLocations:
    key: str
    locations: Any


@dataclass(frozen=True)
class SetDashboardStats:
    key: str
    stats: Any


@dataclass(frozen=True)
class SetPendingBusinesses:
    key: str
    businesses: Any


@dataclass(frozen=True)
class SetBusinessDetails:
    key: str
    details: Any


@dataclass(frozen=True)
class SetLoading:
    kind: CacheKind
    value: bool


@dataclass(frozen=True)
class SetError:
    kind: CacheKind
    value: str | None


@dataclass(frozen=True)
class UpdateCacheTimestamp:
    kind: CacheKind
    key: str
    value: float


@dataclass(frozen=True)
class ClearCache:
    """Invalidate every cache entry. Data stays in place until overwritten."""


@dataclass(frozen=True)
class ResetState:
    pass


AppAction = (
    SetUser
    | SetAuthenticated
    | SetTenant
    | SetLocations
    | SetDashboardStats
    | SetPendingBusinesses
    | SetBusinessDetails
    | SetLoading
    | SetError
    | UpdateCacheTimestamp
    | ClearCache
    | ResetState
)

# Data-setting actions: (kind, attribute holding the payload)
_DATA_ACTIONS: dict[type, tuple[CacheKind, str]] = {
    SetTenant: (CacheKind.TENANT, "tenant"),
    SetLocations: (CacheKind.LOCATIONS, "locations"),
    SetDashboardStats: (CacheKind.DASHBOARD, "stats"),
    SetPendingBusinesses: (CacheKind.PENDING_BUSINESSES, "businesses"),
    SetBusinessDetails: (CacheKind.BUSINESS_DETAILS, "details"),
}

_SETTER_FOR_KIND: dict[CacheKind, Callable[[str, Any], AppAction]] = {
    CacheKind.TENANT: lambda key, data: SetTenant(key, data),
    CacheKind.LOCATIONS: lambda key, data: SetLocations(key, data),
    CacheKind.DASHBOARD: lambda key, data: SetDashboardStats(key, data),
    CacheKind.PENDING_BUSINESSES: lambda key, data: SetPendingBusinesses(key, data),
    CacheKind.BUSINESS_DETAILS: lambda key, data: SetBusinessDetails(key, data),
}


def app_state_reducer(state: AppState, action: AppAction) -> AppState:
    """Return the next state. Never mutates ``state``."""
    if isinstance(action, SetUser):
        data = state.data if action.key is None else {**state.data, (CacheKind.USER, action.key): action.user}
        return replace(state, current_user=action.user, is_authenticated=action.user is not None, data=data)

    if isinstance(action, SetAuthenticated):
        return replace(state, is_authenticated=action.value)

    if type(action) in _DATA_ACTIONS:
        kind, attr = _DATA_ACTIONS[type(action)]
        return replace(state, data={**state.data, (kind, action.key): getattr(action, attr)})

    if isinstance(action, SetLoading):
        return replace(state, loading={**state.loading, action.kind: action.value})

    if isinstance(action, SetError):
        return replace(state, errors={**state.errors, action.kind: action.value})

    if isinstance(action, UpdateCacheTimestamp):
        return replace(
            state,
            cache_timestamps={**state.cache_timestamps, (action.kind, action.key): action.value},
        )

    if isinstance(action, ClearCache):
        return replace(state, cache_timestamps={key: None for key in state.cache_timestamps})

    if isinstance(action, ResetState):
        return AppState()

    raise TypeError(f"Unknown state action: {action!r}")


class AppStateStore:
    """
    Holds the current AppState and applies actions to it.

    The clock is injectable so tests can move time forward.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        ttls: Mapping[CacheKind, float] | None = None,
    ):
        self._state = AppState()
        self._clock = clock
        self._ttls = dict(ttls or CACHE_TTLS)

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: AppAction) -> AppState:
        self._state = app_state_reducer(self._state, action)
        return self._state

    def entry(self, kind: CacheKind, key: str) -> CacheEntry | None:
        timestamp = self._state.cache_timestamps.get((kind, key))
        if timestamp is None or (kind, key) not in self._state.data:
            return None
        return CacheEntry(self._state.data[(kind, key)], timestamp)

    def is_cache_valid(self, kind: CacheKind, key: str) -> bool:
        cached = self.entry(kind, key)
        return cached is not None and cached.is_valid(self._ttls[kind], self._clock())

    def get_cached(self, kind: CacheKind, key: str) -> Any | None:
        """Cached data for (kind, key) while it is within TTL, otherwise None."""
        if self.is_cache_valid(kind, key):
            record_cache_hit(kind.value)
            return self._state.data[(kind, key)]
        record_cache_miss(kind.value)
        return None

    def set_cached(self, kind: CacheKind, key: str, data: Any) -> None:
        if kind is CacheKind.USER:
            self.dispatch(SetUser(data, key))
        else:
            self.dispatch(_SETTER_FOR_KIND[kind](key, data))
        self.dispatch(UpdateCacheTimestamp(kind, key, self._clock()))

    def set_loading(self, kind: CacheKind, value: bool) -> None:
        self.dispatch(SetLoading(kind, value))

    def set_error(self, kind: CacheKind, message: str | None) -> None:
        self.dispatch(SetError(kind, message))

    def clear_cache(self) -> None:
        logger.debug("Clearing cached state timestamps")
        self.dispatch(ClearCache())

    def reset(self) -> None:
        self.dispatch(ResetState())
