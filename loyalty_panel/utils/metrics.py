"""
Prometheus Metrics Module

Application metrics exposed at /metrics for Prometheus scraping.
"""

import time
from collections.abc import Callable

from prometheus_client import Counter, Gauge, Histogram, Info
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info("loyalty_panel_app", "Loyalty panel application information")


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# HTTP Request Metrics
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "loyalty_panel_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "loyalty_panel_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "loyalty_panel_http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method"],
)

# =============================================================================
# Cache Metrics
# =============================================================================

CACHE_HITS_TOTAL = Counter(
    "loyalty_panel_cache_hits_total",
    "Total cache hits",
    ["cache_type"],
)

CACHE_MISSES_TOTAL = Counter(
    "loyalty_panel_cache_misses_total",
    "Total cache misses",
    ["cache_type"],
)

# =============================================================================
# Authentication Metrics
# =============================================================================

AUTH_ATTEMPTS_TOTAL = Counter(
    "loyalty_panel_auth_attempts_total",
    "Total authentication attempts",
    ["result"],  # success, failure, no_role
)

ACTIVE_SESSIONS = Gauge(
    "loyalty_panel_active_sessions",
    "Number of session stores currently held by the registry",
)

# =============================================================================
# Push Provider Metrics
# =============================================================================

PUSH_PROVIDER_REQUESTS_TOTAL = Counter(
    "loyalty_panel_push_provider_requests_total",
    "Requests made to the push notification provider",
    ["operation", "outcome"],  # send/preview/cancel/stats, ok/error
)

PUSH_PREVIEW_CANCEL_FAILURES_TOTAL = Counter(
    "loyalty_panel_push_preview_cancel_failures_total",
    "Preview notifications that could not be cancelled",
)

CAMPAIGNS_SENT_TOTAL = Counter(
    "loyalty_panel_campaigns_sent_total",
    "Push campaigns sent",
    ["segment", "result"],  # success, provider_error
)

# =============================================================================
# Prometheus Metrics Middleware
# =============================================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Collects HTTP request metrics.

    Tracks:
    - Request count by method, endpoint, and status code
    - Request duration by method and endpoint
    - In-progress requests by method
    """

    EXCLUDED_PATHS = {"/metrics", "/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(path)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            status_code = 500
            raise
        finally:
            duration = time.perf_counter() - start_time
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(duration)
            HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method).dec()

        return response

    @staticmethod
    def _normalize_path(path: str) -> str:
        """
        Replace dynamic segments so label cardinality stays bounded.

        Examples:
            /tenants/6f1c...-.../locations -> /tenants/{uuid}/locations
            /campaigns/4821/stats -> /campaigns/{id}/stats
        """
        normalized = []
        for part in path.split("/"):
            if part.isdigit():
                normalized.append("{id}")
            elif part and len(part) == 36 and "-" in part:
                normalized.append("{uuid}")
            else:
                normalized.append(part)
        return "/".join(normalized)


# =============================================================================
# Helper Functions
# =============================================================================


def record_cache_hit(cache_type: str = "default") -> None:
    CACHE_HITS_TOTAL.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str = "default") -> None:
    CACHE_MISSES_TOTAL.labels(cache_type=cache_type).inc()


def record_auth_attempt(result: str) -> None:
    """Record an authentication attempt (success/failure/no_role)."""
    AUTH_ATTEMPTS_TOTAL.labels(result=result).inc()


def record_provider_request(operation: str, ok: bool) -> None:
    PUSH_PROVIDER_REQUESTS_TOTAL.labels(operation=operation, outcome="ok" if ok else "error").inc()


def record_preview_cancel_failure() -> None:
    PUSH_PREVIEW_CANCEL_FAILURES_TOTAL.inc()


def record_campaign_sent(segment: str, success: bool) -> None:
    CAMPAIGNS_SENT_TOTAL.labels(segment=segment, result="success" if success else "provider_error").inc()


def set_active_sessions(count: int) -> None:
    ACTIVE_SESSIONS.set(count)


# =============================================================================
# Application Health Metrics
# =============================================================================

APP_UPTIME_SECONDS = Gauge(
    "loyalty_panel_uptime_seconds",
    "Application uptime in seconds",
)

HEALTH_CHECK_STATUS = Gauge(
    "loyalty_panel_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["service"],  # database, push_provider
)


def update_health_status(service: str, healthy: bool) -> None:
    HEALTH_CHECK_STATUS.labels(service=service).set(1 if healthy else 0)


def update_uptime(start_time: float) -> None:
    APP_UPTIME_SECONDS.set(time.time() - start_time)


# =============================================================================
# Dashboard Metrics
# =============================================================================

DASHBOARD_FETCH_SECONDS = Histogram(
    "loyalty_panel_dashboard_fetch_seconds",
    "Time to compose an uncached dashboard snapshot",
    ["scope"],  # all, tenant, none
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


def observe_dashboard_fetch(scope_kind: str, seconds: float) -> None:
    DASHBOARD_FETCH_SECONDS.labels(scope=scope_kind).observe(seconds)
