"""
Dashboard Routes

GET  /dashboard              → scoped KPIs, trends and lists
POST /dashboard/cache/clear  → mark every cached snapshot stale
"""

from fastapi import APIRouter, Depends, Query, status

from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_current_user
from loyalty_panel.schemas.dashboard import DashboardResponse, DashboardStats, DashboardSummary
from loyalty_panel.services.auth_service import CurrentUser
from loyalty_panel.utils.formatters import format_number, format_trend

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _summary(stats: DashboardStats) -> DashboardSummary:
    return DashboardSummary(
        total_customers=format_number(stats.total_customers),
        total_stamps=format_number(stats.total_stamps),
        active_cards=format_number(stats.active_cards),
        engagement=format_number(stats.engagement),
        customers_trend=format_trend(stats.customers_trend),
        stamps_trend=format_trend(stats.stamps_trend),
        cards_trend=format_trend(stats.cards_trend),
        engagement_trend=format_trend(stats.engagement_trend),
    )


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    tenant_id: str | None = Query(None, description="Super admins may narrow the dashboard to one tenant"),
    user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> DashboardResponse:
    data = await container.dashboard.get_dashboard_data(user, tenant_id)
    return DashboardResponse(data=data, summary=_summary(data.stats))


@router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT)
async def clear_dashboard_cache(
    _user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> None:
    container.dashboard.invalidate()
