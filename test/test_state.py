"""
Tests for the application state reducer and the TTL cache built on it
"""

import pytest

from loyalty_panel.state import (
    CACHE_TTLS,
    AppState,
    AppStateStore,
    CacheKind,
    ClearCache,
    ResetState,
    SetDashboardStats,
    SetError,
    SetLoading,
    SetUser,
    UpdateCacheTimestamp,
    app_state_reducer,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestReducer:
    def test_reducer_does_not_mutate(self):
        state = AppState()
        new_state = app_state_reducer(state, SetLoading(CacheKind.DASHBOARD, True))
        assert state.loading[CacheKind.DASHBOARD] is False
        assert new_state.loading[CacheKind.DASHBOARD] is True

    def test_set_user_sets_authenticated(self):
        state = app_state_reducer(AppState(), SetUser({"id": "u1"}))
        assert state.is_authenticated
        assert app_state_reducer(state, SetUser(None)).is_authenticated is False

    def test_set_data_is_keyed(self):
        state = app_state_reducer(AppState(), SetDashboardStats("tenant:a", "A"))
        state = app_state_reducer(state, SetDashboardStats("tenant:b", "B"))
        assert state.data[(CacheKind.DASHBOARD, "tenant:a")] == "A"
        assert state.data[(CacheKind.DASHBOARD, "tenant:b")] == "B"

    def test_clear_cache_keeps_data_and_nulls_timestamps(self):
        state = app_state_reducer(AppState(), SetDashboardStats("all", "X"))
        state = app_state_reducer(state, UpdateCacheTimestamp(CacheKind.DASHBOARD, "all", 5.0))
        cleared = app_state_reducer(state, ClearCache())
        assert cleared.data[(CacheKind.DASHBOARD, "all")] == "X"
        assert cleared.cache_timestamps[(CacheKind.DASHBOARD, "all")] is None

    def test_reset(self):
        state = app_state_reducer(AppState(), SetError(CacheKind.USER, "boom"))
        assert app_state_reducer(state, ResetState()) == AppState()

    def test_unknown_action_raises(self):
        with pytest.raises(TypeError):
            app_state_reducer(AppState(), object())


class TestAppStateStore:
    def test_ttls(self):
        assert CACHE_TTLS[CacheKind.DASHBOARD] == 120
        assert CACHE_TTLS[CacheKind.TENANT] == 600
        assert CACHE_TTLS[CacheKind.PENDING_BUSINESSES] == 60

    def test_cached_until_ttl_expires(self):
        clock = FakeClock()
        store = AppStateStore(clock=clock)
        store.set_cached(CacheKind.DASHBOARD, "all", "snapshot")

        clock.now += 119
        assert store.get_cached(CacheKind.DASHBOARD, "all") == "snapshot"
        clock.now += 1
        assert store.get_cached(CacheKind.DASHBOARD, "all") is None

    def test_missing_entry(self):
        assert AppStateStore().get_cached(CacheKind.TENANT, "tenant:x") is None

    def test_clear_cache_invalidates_every_entry(self):
        store = AppStateStore(clock=FakeClock())
        store.set_cached(CacheKind.DASHBOARD, "all", 1)
        store.set_cached(CacheKind.BUSINESS_DETAILS, "t1", 2)
        store.clear_cache()
        assert not store.is_cache_valid(CacheKind.DASHBOARD, "all")
        assert not store.is_cache_valid(CacheKind.BUSINESS_DETAILS, "t1")

    def test_user_cache_goes_through_set_user(self):
        store = AppStateStore(clock=FakeClock())
        store.set_cached(CacheKind.USER, "token-1", {"id": "u1"})
        assert store.state.current_user == {"id": "u1"}
        assert store.get_cached(CacheKind.USER, "token-1") == {"id": "u1"}

    def test_loading_and_error(self):
        store = AppStateStore()
        store.set_loading(CacheKind.DASHBOARD, True)
        store.set_error(CacheKind.DASHBOARD, "failed")
        assert store.state.loading[CacheKind.DASHBOARD] is True
        assert store.state.errors[CacheKind.DASHBOARD] == "failed"
        store.reset()
        assert store.state == AppState()
