"""
Monitoring Routes

Health checks and Prometheus metrics.
"""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_panel.config import settings
from loyalty_panel.container import ServiceContainer
from loyalty_panel.dependencies import get_container, get_db
from loyalty_panel.utils.metrics import set_app_info, update_health_status, update_uptime

router = APIRouter(tags=["Monitoring"])

APP_START_TIME = time.time()

set_app_info(version=settings.app_version, environment=settings.environment)


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: str
    uptime_seconds: float
    checks: dict[str, dict[str, Any]]


async def _check_database(db: AsyncSession) -> dict[str, Any]:
    """Check database connectivity and update health metrics."""
    try:
        start = time.perf_counter()
        await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000
    except SQLAlchemyError as e:
        update_health_status("database", healthy=False)
        return {"status": "unhealthy", "error": str(e), "message": "Database connection failed"}

    update_health_status("database", healthy=True)
    return {"status": "healthy", "latency_ms": round(latency_ms, 2), "message": "Database connection successful"}


def _check_push_provider(container: ServiceContainer) -> dict[str, Any]:
    configured = container.settings.push_provider_configured
    update_health_status("push_provider", healthy=configured)
    if configured:
        return {"status": "healthy", "message": "Push provider credentials present"}
    return {"status": "not_configured", "message": "ONESIGNAL_APP_ID / ONESIGNAL_REST_API_KEY missing"}


@router.get("/health", response_model=HealthStatus)
async def health_check(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> HealthStatus:
    checks = {
        "database": await _check_database(db),
        "push_provider": _check_push_provider(container),
    }
    healthy = all(check["status"] in ("healthy", "not_configured") for check in checks.values())
    return HealthStatus(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=container.settings.app_version,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        checks=checks,
    )


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    update_uptime(APP_START_TIME)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
