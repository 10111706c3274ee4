"""
Dashboard aggregation: trend math, scoped statistics and snapshot caching
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from loyalty_panel.constants.roles import UserRole
from loyalty_panel.schemas.dashboard import DashboardData
from loyalty_panel.services import tenant_service
from loyalty_panel.services.dashboard_service import (
    DashboardService,
    compute_engagement,
    compute_trend,
    get_customer_stats,
    round_half_up,
)
from loyalty_panel.services.tenant_scope import TenantScope
from loyalty_panel.state import AppStateStore, CacheKind
from loyalty_panel.utils.dates import utcnow
from utils.seed import add_stamp, create_card, create_location, create_program, create_tenant, make_current_user

# ══════════════════════════════════════════════════════════════════════════════
# Pure helpers
# ══════════════════════════════════════════════════════════════════════════════


class TestTrendMath:
    @pytest.mark.parametrize(
        ("current", "baseline", "expected"),
        [
            (0, 0, 0),
            (5, 0, 100),
            (15, 10, 50),
            (5, 10, -50),
            (10, 10, 0),
            (1, 3, -67),
        ],
    )
    def test_compute_trend(self, current, baseline, expected):
        assert compute_trend(current, baseline) == expected

    def test_round_half_up_goes_towards_positive_infinity(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(-50.5) == -50
        assert round_half_up(2.25, 1) == 2.3

    def test_engagement_without_active_cards(self):
        assert compute_engagement(10, 0) == 0.0

    def test_engagement(self):
        assert compute_engagement(5, 2) == 2.5


# ══════════════════════════════════════════════════════════════════════════════
# Statistics over the database
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
async def seeded(test_db):
    """
    Tenant A: three customers (two created in the baseline window), five
    stamps (three today, two in the baseline window). Tenant B: one customer
    with one stamp today.
    """
    now = utcnow()
    tenant_a = await create_tenant(test_db, "Coderno Coffee")
    tenant_b = await create_tenant(test_db, "Bistro Bałtyk")

    card1 = await create_card(test_db, tenant_a, "c1", stamps_collected=3, created_at=now - timedelta(days=5))
    await create_card(test_db, tenant_a, "c2", stamps_collected=0, created_at=now - timedelta(days=45))
    card3 = await create_card(test_db, tenant_a, "c3", stamps_collected=2, created_at=now - timedelta(days=40))
    for _ in range(3):
        await add_stamp(test_db, card1, stamped_at=now)
    for _ in range(2):
        await add_stamp(test_db, card3, stamped_at=now - timedelta(days=50))

    card_b = await create_card(test_db, tenant_b, "c9", stamps_collected=1, created_at=now - timedelta(days=1))
    await add_stamp(test_db, card_b, stamped_at=now)

    await create_location(test_db, tenant_a, "Centrum")
    await create_location(test_db, tenant_b, "Molo")
    await create_program(test_db, tenant_a, active=True)
    await create_program(test_db, tenant_a, active=False, stamps_required=5)
    return {"now": now, "a": tenant_a, "b": tenant_b}


class TestCustomerStats:
    @pytest.mark.asyncio
    async def test_single_tenant(self, test_db, seeded):
        stats = await get_customer_stats(TenantScope.tenant(seeded["a"].id), test_db, now=seeded["now"])

        assert stats.total_customers == 3
        assert stats.active_cards == 2
        assert stats.total_stamps == 5
        assert stats.stamps_today == 3
        assert stats.engagement == 2.5
        assert stats.customers_trend == 50
        assert stats.cards_trend == 100
        assert stats.stamps_trend == 150
        assert stats.engagement_trend == 25

    @pytest.mark.asyncio
    async def test_all_tenants(self, test_db, seeded):
        stats = await get_customer_stats(TenantScope.all(), test_db, now=seeded["now"])
        assert stats.total_customers == 4
        assert stats.total_stamps == 6
        assert stats.stamps_today == 4

    @pytest.mark.asyncio
    async def test_empty_scope_is_zero_without_queries(self):
        db = AsyncMock()
        stats = await get_customer_stats(TenantScope.empty(), db)
        assert stats.total_customers == 0
        db.execute.assert_not_called()


# ══════════════════════════════════════════════════════════════════════════════
# DashboardService
# ══════════════════════════════════════════════════════════════════════════════


class TestDashboardService:
    @pytest.mark.asyncio
    async def test_no_user_gets_empty_snapshot(self, session_factory):
        service = DashboardService(session_factory, AppStateStore())
        data = await service.get_dashboard_data(None)
        assert data == DashboardData()
        assert data.scope == "none"

    @pytest.mark.asyncio
    async def test_owner_sees_only_own_tenant(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        owner = make_current_user(UserRole.BUSINESS_OWNER, tenant_id=seeded["a"].id)

        data = await service.get_dashboard_data(owner)

        assert [t.id for t in data.tenants] == [seeded["a"].id]
        assert {loc.tenant_id for loc in data.locations} == {seeded["a"].id}
        assert data.stats.total_tenants == 1
        assert data.stats.total_locations == 1
        assert data.stats.total_loyalty_programs == 2
        assert data.stats.active_programs == 1
        assert data.stats.total_customers == 3
        assert data.scope == f"tenant:{seeded['a'].id}"

    @pytest.mark.asyncio
    async def test_foreign_tenant_request_is_empty(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        owner = make_current_user(UserRole.BUSINESS_OWNER, tenant_id=seeded["a"].id)

        data = await service.get_dashboard_data(owner, seeded["b"].id)

        assert data.tenants == ()
        assert data.stats.total_customers == 0

    @pytest.mark.asyncio
    async def test_super_admin_sees_everything(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        data = await service.get_dashboard_data(make_current_user(UserRole.SUPER_ADMIN))
        assert data.stats.total_tenants == 2
        assert data.stats.total_customers == 4
        assert data.scope == "all"

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        admin = make_current_user(UserRole.SUPER_ADMIN)

        with patch.object(tenant_service, "list_tenants", wraps=tenant_service.list_tenants) as spy:
            first = await service.get_dashboard_data(admin)
            second = await service.get_dashboard_data(admin)

        assert second is first
        assert spy.await_count == 1

    @pytest.mark.asyncio
    async def test_scopes_are_cached_separately(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        admin = make_current_user(UserRole.SUPER_ADMIN)

        everything = await service.get_dashboard_data(admin)
        only_b = await service.get_dashboard_data(admin, seeded["b"].id)

        assert everything.stats.total_tenants == 2
        assert [t.id for t in only_b.tenants] == [seeded["b"].id]

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, session_factory, seeded):
        service = DashboardService(session_factory, AppStateStore())
        admin = make_current_user(UserRole.SUPER_ADMIN)

        with patch.object(tenant_service, "list_tenants", wraps=tenant_service.list_tenants) as spy:
            await service.get_dashboard_data(admin)
            service.invalidate()
            await service.get_dashboard_data(admin)

        assert spy.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self, session_factory, seeded):
        state = AppStateStore()
        service = DashboardService(session_factory, state)
        admin = make_current_user(UserRole.SUPER_ADMIN)

        with patch.object(tenant_service, "list_locations", AsyncMock(side_effect=RuntimeError("db down"))):
            with pytest.raises(RuntimeError):
                await service.get_dashboard_data(admin)

        assert state.state.errors[CacheKind.DASHBOARD] == "db down"
        assert state.state.loading[CacheKind.DASHBOARD] is False
        assert state.get_cached(CacheKind.DASHBOARD, "all") is None

        data = await service.get_dashboard_data(admin)
        assert data.stats.total_locations == 2
        assert state.state.errors[CacheKind.DASHBOARD] is None
