"""
Campaign orchestration: validate, send through the push gateway, record history.

Sending cannot be undone, so history is best effort: once the provider has
accepted a notification the result reports success even if the history row
could not be written.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.exceptions import PersistenceWarning, ProviderError, ValidationError
from loyalty_panel.models.push_campaign import PreviewCancelFailure, PushCampaign
from loyalty_panel.services.push_gateway import CampaignStats, OneSignalGateway, SegmentType
from loyalty_panel.utils.dates import utcnow
from loyalty_panel.utils.metrics import record_campaign_sent

logger = logging.getLogger(__name__)

ADVANCED_SEGMENT_WARNING = (
    "Segment '{segment}' is not targeted by customer behaviour yet; "
    "the campaign was sent to all customers of the business."
)
ZERO_RECIPIENTS_WARNING = (
    "The preview estimated 0 recipients. Devices may not be tagged yet; sending is still allowed."
)


@dataclass
class CampaignSendResult:
    success: bool
    campaign_id: str | None = None
    notification_id: str | None = None
    recipients: int = 0
    error: str | None = None
    provider_status: int | None = None
    provider_detail: Any = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class SegmentPreview:
    segment: SegmentType
    count: int
    supported: bool
    warnings: list[str] = field(default_factory=list)


def make_cancel_failure_recorder(session_factory: async_sessionmaker[AsyncSession]):
    """Recorder that keeps uncancelled preview notifications in push_preview_cancel_failures."""

    async def record(notification_id: str, tenant_id: str | None, segment: SegmentType, error: str) -> None:
        async with session_factory() as db:
            db.add(
                PreviewCancelFailure(
                    notification_id=notification_id,
                    tenant_id=tenant_id,
                    segment_type=segment.value,
                    error=error,
                )
            )
            await db.commit()

    return record


class CampaignService:
    def __init__(self, gateway: OneSignalGateway, session_factory: async_sessionmaker[AsyncSession]):
        self.gateway = gateway
        self._session_factory = session_factory

    @staticmethod
    def validate(title: str | None, message: str | None, segment: SegmentType, confirm_all_subscribers: bool) -> None:
        if not title or not title.strip():
            raise ValidationError("Notification title is required", field="title")
        if not message or not message.strip():
            raise ValidationError("Notification message is required", field="message")
        if segment.capability.requires_confirmation and not confirm_all_subscribers:
            raise ValidationError(
                "Sending to every subscriber of the app requires explicit confirmation",
                field="confirm_all_subscribers",
            )

    async def send_campaign(
        self,
        name: str | None,
        title: str,
        message: str,
        tenant_id: str,
        segment: SegmentType | str | None,
        created_by: str | None,
        confirm_all_subscribers: bool = False,
    ) -> CampaignSendResult:
        """
        Send a campaign now.

        Raises:
            ValidationError: blank title/message, or an unconfirmed diagnostic send
        """
        segment = SegmentType.parse(segment)
        self.validate(title, message, segment, confirm_all_subscribers)
        name = (name or "").strip() or title.strip()

        logger.info("Sending campaign '%s' to tenant_id=%s segment=%s", name, tenant_id, segment.value)
        try:
            sent = await self.gateway.send_notification(title.strip(), message.strip(), tenant_id, segment)
        except ProviderError as e:
            record_campaign_sent(segment.value, success=False)
            logger.error(f"Failed to send campaign '{name}': {e.message}")
            return CampaignSendResult(
                success=False,
                error=e.message,
                provider_status=e.provider_status,
                provider_detail=e.payload,
            )

        record_campaign_sent(segment.value, success=True)
        result = CampaignSendResult(success=True, notification_id=sent.id, recipients=sent.recipients)
        if not segment.capability.behavioral_targeting:
            result.warnings.append(ADVANCED_SEGMENT_WARNING.format(segment=segment.value))

        try:
            result.campaign_id = await self._save_campaign(
                tenant_id=tenant_id,
                notification_id=sent.id,
                name=name,
                title=title.strip(),
                message=message.strip(),
                segment=segment,
                target_count=sent.recipients,
                created_by=created_by,
            )
        except Exception as e:
            text = f"Campaign was sent but its history could not be saved: {e!s}"
            logger.error(text, exc_info=True)
            warnings.warn(text, PersistenceWarning, stacklevel=2)
            result.warnings.append(text)

        return result

    async def _save_campaign(
        self,
        tenant_id: str,
        notification_id: str | None,
        name: str,
        title: str,
        message: str,
        segment: SegmentType,
        target_count: int,
        created_by: str | None,
    ) -> str:
        async with self._session_factory() as db:
            campaign = PushCampaign(
                tenant_id=tenant_id,
                onesignal_notification_id=notification_id,
                name=name,
                message_title=title,
                message_body=message,
                segment_type=segment.value,
                target_count=target_count,
                sent_at=utcnow(),
                created_by=created_by,
            )
            db.add(campaign)
            await db.commit()
            logger.info("Campaign saved: id=%s notification_id=%s", campaign.id, notification_id)
            return campaign.id

    async def preview_segment(self, tenant_id: str, segment: SegmentType | str | None) -> SegmentPreview:
        segment = SegmentType.parse(segment)
        count = await self.gateway.preview_segment_count(tenant_id, segment)
        preview = SegmentPreview(segment=segment, count=count, supported=segment.capability.preview_supported)
        if not preview.supported:
            preview.warnings.append(f"Recipient preview is not available for segment '{segment.value}'.")
        elif count == 0:
            preview.warnings.append(ZERO_RECIPIENTS_WARNING)
        return preview

    async def get_campaign_stats(self, notification_id: str) -> CampaignStats:
        return await self.gateway.get_campaign_stats(notification_id)

    async def get_campaign(self, campaign_id: str) -> PushCampaign | None:
        async with self._session_factory() as db:
            result = await db.execute(select(PushCampaign).where(PushCampaign.id == campaign_id))
            return result.scalars().first()

    async def list_campaigns(self, tenant_id: str) -> list[PushCampaign]:
        """Campaign history for a tenant, newest first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(PushCampaign)
                .where(PushCampaign.tenant_id == tenant_id)
                .order_by(PushCampaign.created_at.desc())
            )
            campaigns = list(result.scalars().all())
        logger.debug("Campaigns fetched for tenant_id=%s: %d", tenant_id, len(campaigns))
        return campaigns
