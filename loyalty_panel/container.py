"""
Composition root.

Every long-lived object the API needs is built once here and stored on
``app.state.container``. Route dependencies read it from there, so tests can
build a container around their own database and provider transport.
"""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_panel.config import Settings
from loyalty_panel.services.approval_service import ApprovalService
from loyalty_panel.services.auth_service import SessionRegistry
from loyalty_panel.services.campaign_service import CampaignService, make_cancel_failure_recorder
from loyalty_panel.services.dashboard_service import DashboardService
from loyalty_panel.services.identity_provider import LocalIdentityProvider
from loyalty_panel.services.onboarding_service import OnboardingService
from loyalty_panel.services.push_gateway import OneSignalGateway
from loyalty_panel.state import AppStateStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    state: AppStateStore
    identity_provider: LocalIdentityProvider
    sessions: SessionRegistry
    push_gateway: OneSignalGateway
    dashboard: DashboardService
    campaigns: CampaignService
    approvals: ApprovalService
    onboarding: OnboardingService

    @classmethod
    def build(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        push_transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ServiceContainer":
        if not settings.push_provider_configured:
            logger.warning("ONESIGNAL_APP_ID / ONESIGNAL_REST_API_KEY not set; push campaigns will fail")

        state = AppStateStore()
        provider = LocalIdentityProvider(session_factory)
        gateway = OneSignalGateway(
            app_id=settings.onesignal_app_id,
            api_key=settings.onesignal_rest_api_key,
            base_url=settings.onesignal_api_url,
            timeout=settings.onesignal_timeout_seconds,
            transport=push_transport,
            preview_schedule_days=settings.preview_schedule_days,
            max_schedule_days=settings.provider_max_schedule_days,
            cancel_failure_recorder=make_cancel_failure_recorder(session_factory),
        )
        return cls(
            settings=settings,
            session_factory=session_factory,
            state=state,
            identity_provider=provider,
            sessions=SessionRegistry(provider, cache_seconds=settings.session_user_cache_seconds),
            push_gateway=gateway,
            dashboard=DashboardService(session_factory, state),
            campaigns=CampaignService(gateway, session_factory),
            approvals=ApprovalService(session_factory, state),
            onboarding=OnboardingService(session_factory, state),
        )

    async def aclose(self) -> None:
        await self.push_gateway.aclose()
