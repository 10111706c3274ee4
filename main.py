import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import loyalty_panel.models  # noqa: F401  (registers tables on Base.metadata)
from loyalty_panel.config import Settings, get_settings
from loyalty_panel.container import ServiceContainer
from loyalty_panel.database import AsyncSessionLocal, Base
from loyalty_panel.exception_handlers import register_exception_handlers
from loyalty_panel.middleware.logging import StructuredLoggingMiddleware, configure_logging
from loyalty_panel.routes import approvals, auth, campaigns, dashboard, monitoring, onboarding, tenants
from loyalty_panel.utils.metrics import PrometheusMiddleware

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    push_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or get_settings()
    session_factory = session_factory or AsyncSessionLocal
    configure_logging(settings.effective_log_level, json_format=settings.log_format == "json")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up the application...")
        if settings.debug or settings.database_url.startswith("sqlite"):
            async with session_factory.kw["bind"].begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created (if not existing).")

        app.state.container = ServiceContainer.build(settings, session_factory, push_transport=push_transport)
        try:
            yield
        finally:
            logger.info("Shutting down the application...")
            await app.state.container.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Administration backend for multi-tenant loyalty programs",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(tenants.router)
    app.include_router(campaigns.router)
    app.include_router(approvals.router)
    app.include_router(onboarding.router)
    app.include_router(monitoring.router)

    @app.get("/", tags=["Root"])
    async def root():
        return {"message": f"Welcome to the {settings.app_name} API"}

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
