"""
OneSignal push gateway.

Maps audience segments onto OneSignal's REST API and executes send, preview
and stats calls. Customers are tagged on the device with ``tenant_ids``
(a comma-separated list of tenant UUIDs), so tenant targeting is a single
``tag contains`` filter.

Segment preview uses the provider's own audience estimate: a notification is
scheduled a few days ahead, its ``recipients`` count is read, and it is
cancelled straight away. A cancel that fails leaves a real notification
scheduled, so it is logged and handed to ``cancel_failure_recorder``.
"""

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from loyalty_panel.exceptions import ProviderError
from loyalty_panel.utils.metrics import record_preview_cancel_failure, record_provider_request

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://onesignal.com/api/v1"
TENANT_TAG_KEY = "tenant_ids"
ALL_SUBSCRIBERS_SEGMENT = "All"


class SegmentType(str, enum.Enum):
    ALL_CUSTOMERS = "all_customers"
    ACTIVE = "active"
    INACTIVE = "inactive"
    NEAR_REWARD = "near_reward"
    # Diagnostic: every subscriber of the app, across all tenants
    TEST_ALL_SUBSCRIBERS = "test_all_subscribers"

    @classmethod
    def _missing_(cls, value):
        # Campaign rows written before the rename store "all"
        if value == "all":
            return cls.ALL_CUSTOMERS
        return None

    @classmethod
    def parse(cls, value: "str | SegmentType | None") -> "SegmentType":
        if value is None or value == "":
            return cls.ALL_CUSTOMERS
        return cls(value)

    @property
    def capability(self) -> "SegmentCapability":
        return SEGMENT_CAPABILITIES[self]


@dataclass(frozen=True)
class SegmentCapability:
    label: str
    # False: the segment is sent with the plain tenant filter
    behavioral_targeting: bool
    preview_supported: bool
    diagnostic: bool = False
    requires_confirmation: bool = False


SEGMENT_CAPABILITIES: dict[SegmentType, SegmentCapability] = {
    SegmentType.ALL_CUSTOMERS: SegmentCapability("All customers", behavioral_targeting=True, preview_supported=True),
    SegmentType.ACTIVE: SegmentCapability("Active customers", behavioral_targeting=False, preview_supported=False),
    SegmentType.INACTIVE: SegmentCapability("Inactive customers", behavioral_targeting=False, preview_supported=False),
    SegmentType.NEAR_REWARD: SegmentCapability("Close to a reward", behavioral_targeting=False, preview_supported=False),
    SegmentType.TEST_ALL_SUBSCRIBERS: SegmentCapability(
        "TEST: all subscribers (no tenant filter)",
        behavioral_targeting=True,
        preview_supported=True,
        diagnostic=True,
        requires_confirmation=True,
    ),
}


@dataclass(frozen=True)
class NotificationResult:
    id: str | None
    recipients: int


@dataclass(frozen=True)
class CampaignStats:
    sent: int = 0
    delivered: int = 0
    failed: int = 0
    remaining: int = 0


# (notification_id, tenant_id, segment, error) -> None
CancelFailureRecorder = Callable[[str, str | None, SegmentType, str], Awaitable[None]]


class OneSignalGateway:
    def __init__(
        self,
        app_id: str,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        preview_schedule_days: int = 7,
        max_schedule_days: int = 30,
        cancel_failure_recorder: CancelFailureRecorder | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not 0 < preview_schedule_days < max_schedule_days:
            raise ValueError(
                f"preview_schedule_days must be between 1 and {max_schedule_days - 1}, got {preview_schedule_days}"
            )
        self.app_id = app_id
        self.preview_schedule_days = preview_schedule_days
        self._cancel_failure_recorder = cancel_failure_recorder
        self._clock = clock
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Basic {api_key}", "Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Targeting
    # ------------------------------------------------------------------

    def build_filters(self, tenant_id: str, segment: SegmentType | str | None = None) -> list[dict[str, str]]:
        """Provider filter list selecting the tenant's customers."""
        segment = SegmentType.parse(segment)
        if not segment.capability.behavioral_targeting:
            logger.warning(
                "Unsupported advanced segment '%s': sending to all customers of tenant %s",
                segment.value,
                tenant_id,
            )
        return [{"field": "tag", "key": TENANT_TAG_KEY, "relation": "contains", "value": tenant_id}]

    def _audience(self, tenant_id: str, segment: SegmentType) -> dict[str, Any]:
        if segment.capability.diagnostic:
            return {"included_segments": [ALL_SUBSCRIBERS_SEGMENT]}
        return {"filters": self.build_filters(tenant_id, segment)}

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text[:1000]}

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def send_notification(
        self,
        title: str,
        message: str,
        tenant_id: str,
        segment: SegmentType | str | None = None,
    ) -> NotificationResult:
        """
        Send a push notification now.

        Raises:
            ProviderError: non-2xx response or the request could not be made
        """
        segment = SegmentType.parse(segment)
        payload: dict[str, Any] = {
            "app_id": self.app_id,
            "headings": {"en": title},
            "contents": {"en": message},
            "ios_badgeType": "Increase",
            "ios_badgeCount": 1,
            **self._audience(tenant_id, segment),
        }
        if segment.capability.diagnostic:
            logger.warning("TEST MODE: sending to ALL subscribers without tenant filtering (tenant_id=%s)", tenant_id)

        logger.info("Sending notification: tenant_id=%s segment=%s", tenant_id, segment.value)
        logger.debug("OneSignal request payload: %s", payload)

        try:
            response = await self._client.post("/notifications", json=payload)
        except httpx.TimeoutException:
            record_provider_request("send", ok=False)
            raise ProviderError("Push provider request timed out")
        except httpx.RequestError as e:
            record_provider_request("send", ok=False)
            raise ProviderError(f"Push provider request failed: {e!s}")

        data = self._json(response)
        if not response.is_success:
            record_provider_request("send", ok=False)
            errors = data.get("errors", data) if isinstance(data, dict) else data
            logger.error("OneSignal API error: status=%d errors=%s", response.status_code, errors)
            raise ProviderError(f"OneSignal API error: {errors}", provider_status=response.status_code, payload=data)
        if not isinstance(data, dict):
            record_provider_request("send", ok=False)
            logger.error("Unexpected OneSignal response body: status=%d body=%s", response.status_code, data)
            raise ProviderError(
                "Unexpected response from push provider", provider_status=response.status_code, payload=data
            )

        record_provider_request("send", ok=True)
        result = NotificationResult(id=data.get("id") or None, recipients=data.get("recipients") or 0)
        if data.get("errors"):
            logger.warning("OneSignal accepted the notification with errors: %s", data["errors"])
        logger.info("Notification sent: id=%s recipients=%d", result.id, result.recipients)
        return result

    async def preview_segment_count(self, tenant_id: str, segment: SegmentType | str | None = None) -> int:
        """
        Estimated recipient count for a segment, without delivering anything.

        Unsupported segments return 0 without calling the provider. Errors
        other than a failed cancel also return 0.
        """
        segment = SegmentType.parse(segment)
        if not segment.capability.preview_supported:
            logger.info("Preview not available for segment '%s'", segment.value)
            return 0

        send_after = self._clock() + timedelta(days=self.preview_schedule_days)
        payload = {
            "app_id": self.app_id,
            "headings": {"en": "Preview"},
            "contents": {"en": "Preview"},
            "send_after": send_after.isoformat(),
            **self._audience(tenant_id, segment),
        }

        try:
            response = await self._client.post("/notifications", json=payload)
            if not response.is_success:
                record_provider_request("preview", ok=False)
                logger.warning("Failed to get segment count: status=%d", response.status_code)
                return 0
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            count = int(data.get("recipients") or 0)
            notification_id = data.get("id")
        except Exception as e:
            record_provider_request("preview", ok=False)
            logger.error(f"Failed to get segment count: {e!s}", exc_info=True)
            return 0

        record_provider_request("preview", ok=True)
        if notification_id:
            await self._cancel_preview(notification_id, tenant_id, segment)

        if count == 0:
            logger.warning("Preview returned 0 recipients; check that devices are tagged with %s", TENANT_TAG_KEY)
        else:
            logger.debug("Segment count for tenant_id=%s segment=%s: %d", tenant_id, segment.value, count)
        return count

    async def _cancel_preview(self, notification_id: str, tenant_id: str, segment: SegmentType) -> None:
        error: str | None = None
        try:
            response = await self._client.delete(f"/notifications/{notification_id}", params={"app_id": self.app_id})
            if not response.is_success:
                error = f"status {response.status_code}: {response.text[:500]}"
        except httpx.HTTPError as e:
            error = f"{type(e).__name__}: {e!s}"

        if error is None:
            record_provider_request("cancel", ok=True)
            logger.debug("Cancelled preview notification %s", notification_id)
            return

        record_provider_request("cancel", ok=False)
        record_preview_cancel_failure()
        logger.warning(
            "Could not cancel preview notification %s (tenant_id=%s); it is still scheduled: %s",
            notification_id,
            tenant_id,
            error,
        )
        if self._cancel_failure_recorder is None:
            return
        try:
            await self._cancel_failure_recorder(notification_id, tenant_id, segment, error)
        except Exception:
            logger.error("Failed to record uncancelled preview notification %s", notification_id, exc_info=True)

    async def get_campaign_stats(self, notification_id: str) -> CampaignStats:
        """Delivery counters for a sent notification; zeros on any error."""
        try:
            response = await self._client.get(f"/notifications/{notification_id}", params={"app_id": self.app_id})
            if not response.is_success:
                record_provider_request("stats", ok=False)
                logger.warning("Failed to get campaign stats: id=%s status=%d", notification_id, response.status_code)
                return CampaignStats()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            stats = CampaignStats(
                sent=data.get("successful") or 0,
                # OneSignal reports delivery as "converted"
                delivered=data.get("converted") or 0,
                failed=data.get("failed") or 0,
                remaining=data.get("remaining") or 0,
            )
        except Exception as e:
            record_provider_request("stats", ok=False)
            logger.error(f"Failed to get campaign stats for {notification_id}: {e!s}")
            return CampaignStats()

        record_provider_request("stats", ok=True)
        return stats
