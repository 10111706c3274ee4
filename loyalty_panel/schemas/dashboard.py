"""
Dashboard Schemas

The composed dashboard snapshot. Instances are frozen because the same
object is handed out on every cache hit.
"""

from pydantic import BaseModel, ConfigDict

from loyalty_panel.schemas.tenant import LocationResponse, LoyaltyProgramResponse, TenantResponse


class DashboardStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_tenants: int = 0
    total_locations: int = 0
    total_loyalty_programs: int = 0
    active_programs: int = 0

    total_customers: int = 0
    total_stamps: int = 0
    active_cards: int = 0
    stamps_today: int = 0
    engagement: float = 0.0

    customers_trend: int = 0
    stamps_trend: int = 0
    cards_trend: int = 0
    engagement_trend: int = 0


class DashboardData(BaseModel):
    model_config = ConfigDict(frozen=True)

    tenants: tuple[TenantResponse, ...] = ()
    locations: tuple[LocationResponse, ...] = ()
    loyalty_programs: tuple[LoyaltyProgramResponse, ...] = ()
    stats: DashboardStats = DashboardStats()
    scope: str = "none"


class DashboardSummary(BaseModel):
    """Formatted strings for display next to the raw numbers"""

    total_customers: str
    total_stamps: str
    active_cards: str
    engagement: str
    customers_trend: str
    stamps_trend: str
    cards_trend: str
    engagement_trend: str


class DashboardResponse(BaseModel):
    data: DashboardData
    summary: DashboardSummary
