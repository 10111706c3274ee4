"""
Pytest configuration and fixtures for loyalty panel tests
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import loyalty_panel.models  # noqa: F401
from loyalty_panel.config import Settings
from loyalty_panel.container import ServiceContainer
from loyalty_panel.database import Base
from utils.mocks import FakeOneSignal

# ── Database ───────────────────────────────────────────────────────────────────


@pytest.fixture
async def test_engine(tmp_path):
    """
    File-backed SQLite database per test.

    A file (not :memory:) lets the dashboard open several sessions at once.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Push provider ──────────────────────────────────────────────────────────────


@pytest.fixture
def onesignal() -> FakeOneSignal:
    return FakeOneSignal()


# ── Container / app ────────────────────────────────────────────────────────────


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        onesignal_app_id="app-123",
        onesignal_rest_api_key="rest-key",
        onesignal_api_url="https://onesignal.test/api/v1",
    )


@pytest.fixture
async def container(test_settings, session_factory, onesignal) -> AsyncGenerator[ServiceContainer, None]:
    built = ServiceContainer.build(test_settings, session_factory, push_transport=onesignal.transport)
    yield built
    await built.aclose()


@pytest.fixture
def app(test_settings, session_factory, container):
    from main import create_app

    application = create_app(test_settings, session_factory)
    # ASGITransport does not run the lifespan
    application.state.container = container
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
