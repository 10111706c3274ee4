"""
Dashboard service: tenant-scoped KPIs with 30-day trends, cached per scope.

Each metric is compared against the same metric restricted to the baseline
window [now - 60d, now - 30d].
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TypeVar

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.models.customer_card import CustomerCard, Stamp
from loyalty_panel.schemas.dashboard import DashboardData, DashboardStats
from loyalty_panel.schemas.tenant import LocationResponse, LoyaltyProgramResponse, TenantResponse
from loyalty_panel.services import tenant_service
from loyalty_panel.services.auth_service import CurrentUser
from loyalty_panel.services.tenant_scope import ScopeKind, TenantScope, resolve_tenant_scope
from loyalty_panel.state import AppStateStore, CacheKind
from loyalty_panel.utils.dates import start_of_day, utcnow
from loyalty_panel.utils.metrics import observe_dashboard_fetch

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASELINE_START_DAYS = 60
BASELINE_END_DAYS = 30


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 towards positive infinity, so -50.5 -> -50 and 2.25 -> 2.3."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def compute_trend(current: float, baseline: float) -> int:
    """
    Whole-percent change from baseline to current.

    A zero baseline gives 100 when anything happened since, 0 otherwise.
    """
    if baseline > 0:
        return int(round_half_up((current - baseline) / baseline * 100))
    return 100 if current > 0 else 0


def compute_engagement(stamps: int, active_cards: int) -> float:
    """Stamps per active card; 0 without active cards."""
    if active_cards <= 0:
        return 0.0
    return stamps / active_cards


def _scoped(stmt, column, scope: TenantScope):
    if scope.kind is ScopeKind.TENANT:
        return stmt.where(column == scope.tenant_id)
    return stmt


async def get_customer_stats(scope: TenantScope, db: AsyncSession, now: datetime | None = None) -> DashboardStats:
    """Customer/stamp/card counts and their trends, using batched conditional aggregation."""
    if scope.is_empty:
        return DashboardStats()

    now = now or utcnow()
    baseline_start = now - timedelta(days=BASELINE_START_DAYS)
    baseline_end = now - timedelta(days=BASELINE_END_DAYS)
    today = start_of_day(now)
    in_card_baseline = (CustomerCard.created_at >= baseline_start, CustomerCard.created_at <= baseline_end)

    # Single query over customer_cards: customers, active cards, and their baselines
    cards_row = (
        await db.execute(
            _scoped(
                select(
                    func.count(distinct(CustomerCard.customer_id)).label("customers"),
                    func.count(CustomerCard.id).filter(CustomerCard.stamps_collected > 0).label("active_cards"),
                    func.count(distinct(CustomerCard.customer_id)).filter(*in_card_baseline).label("customers_baseline"),
                    func.count(CustomerCard.id)
                    .filter(CustomerCard.stamps_collected > 0, *in_card_baseline)
                    .label("active_cards_baseline"),
                ),
                CustomerCard.tenant_id,
                scope,
            )
        )
    ).one()

    stamps_row = (
        await db.execute(
            _scoped(
                select(
                    func.count(Stamp.id).label("stamps"),
                    func.count(Stamp.id).filter(Stamp.stamped_at >= today).label("stamps_today"),
                    func.count(Stamp.id)
                    .filter(Stamp.stamped_at >= baseline_start, Stamp.stamped_at <= baseline_end)
                    .label("stamps_baseline"),
                ),
                Stamp.tenant_id,
                scope,
            )
        )
    ).one()

    customers = cards_row.customers or 0
    active_cards = cards_row.active_cards or 0
    stamps = stamps_row.stamps or 0

    engagement = compute_engagement(stamps, active_cards)
    previous_engagement = compute_engagement(stamps_row.stamps_baseline or 0, cards_row.active_cards_baseline or 0)

    logger.debug(
        "Dashboard stats for scope=%s: customers=%d stamps=%d active_cards=%d",
        scope.cache_key,
        customers,
        stamps,
        active_cards,
    )

    return DashboardStats(
        total_customers=customers,
        total_stamps=stamps,
        active_cards=active_cards,
        stamps_today=stamps_row.stamps_today or 0,
        engagement=round_half_up(engagement, 1),
        customers_trend=compute_trend(customers, cards_row.customers_baseline or 0),
        stamps_trend=compute_trend(stamps, stamps_row.stamps_baseline or 0),
        cards_trend=compute_trend(active_cards, cards_row.active_cards_baseline or 0),
        engagement_trend=compute_trend(engagement, previous_engagement),
    )


class DashboardService:
    """
    Composes the dashboard for a user.

    The four fetches run concurrently, each on its own database session.
    If any of them fails the whole call fails and nothing is cached.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], state: AppStateStore):
        self._session_factory = session_factory
        self._state = state

    async def _run(self, fetch: Callable[..., Awaitable[T]], scope: TenantScope) -> T:
        async with self._session_factory() as db:
            return await fetch(scope, db)

    async def _tenants(self, scope: TenantScope, db: AsyncSession) -> tuple[TenantResponse, ...]:
        return tuple(TenantResponse.model_validate(t) for t in await tenant_service.list_tenants(scope, db))

    async def _locations(self, scope: TenantScope, db: AsyncSession) -> tuple[LocationResponse, ...]:
        return tuple(LocationResponse.model_validate(loc) for loc in await tenant_service.list_locations(scope, db))

    async def _programs(self, scope: TenantScope, db: AsyncSession) -> tuple[LoyaltyProgramResponse, ...]:
        programs = await tenant_service.list_loyalty_programs(scope, db)
        return tuple(LoyaltyProgramResponse.model_validate(p) for p in programs)

    async def get_dashboard_data(
        self,
        user: CurrentUser | None,
        requested_tenant_id: str | None = None,
    ) -> DashboardData:
        if user is None:
            return DashboardData()

        scope = resolve_tenant_scope(user, requested_tenant_id)
        cached = self._state.get_cached(CacheKind.DASHBOARD, scope.cache_key)
        if cached is not None:
            logger.debug("Dashboard cache hit for scope=%s", scope.cache_key)
            return cached

        self._state.set_loading(CacheKind.DASHBOARD, True)
        started = time.perf_counter()
        try:
            tenants, locations, programs, stats = await asyncio.gather(
                self._run(self._tenants, scope),
                self._run(self._locations, scope),
                self._run(self._programs, scope),
                self._run(get_customer_stats, scope),
            )
        except Exception as e:
            logger.error(f"Dashboard fetch failed for scope={scope.cache_key}: {e!s}")
            self._state.set_error(CacheKind.DASHBOARD, str(e))
            raise
        finally:
            self._state.set_loading(CacheKind.DASHBOARD, False)

        data = DashboardData(
            tenants=tenants,
            locations=locations,
            loyalty_programs=programs,
            stats=stats.model_copy(
                update={
                    "total_tenants": len(tenants),
                    "total_locations": len(locations),
                    "total_loyalty_programs": len(programs),
                    "active_programs": sum(1 for p in programs if p.active),
                }
            ),
            scope=scope.cache_key,
        )
        observe_dashboard_fetch(scope.kind.value, time.perf_counter() - started)
        self._state.set_error(CacheKind.DASHBOARD, None)
        self._state.set_cached(CacheKind.DASHBOARD, scope.cache_key, data)
        return data

    def invalidate(self) -> None:
        """Mark every cached snapshot stale."""
        self._state.clear_cache()
