"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, a running SSE hub and an application client.
"""

import asyncio
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from saaskit.api.main import create_app
from saaskit.api.sse.hub import SSEHub
from saaskit.api.sse.models import HubConfig
from saaskit.api.sse.service import SSEService
from saaskit.config.settings import Settings
from tests.utils.helpers import TEST_API_KEY, make_settings


@pytest.fixture
def test_settings() -> Settings:
    """Test settings fixture."""
    return make_settings()


@pytest.fixture(autouse=True)
def override_settings(test_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Make the global settings instance the test settings."""
    monkeypatch.setattr("saaskit.config.settings.settings", test_settings)
    return test_settings


@pytest.fixture
def hub_config() -> HubConfig:
    return HubConfig(buffer_size=10, enable_heartbeat=False, max_clients=100, max_clients_per_user=5)


@pytest_asyncio.fixture
async def hub(hub_config: HubConfig) -> AsyncGenerator[SSEHub, None]:
    """SSE hub running on the test event loop."""
    hub = SSEHub(hub_config)
    task = asyncio.create_task(hub.run())
    yield hub
    hub.shutdown()
    await task


@pytest_asyncio.fixture
async def sse_service(hub_config: HubConfig) -> AsyncGenerator[SSEService, None]:
    """Started SSE service."""
    service = SSEService(hub_config)
    await service.start()
    yield service
    if service.is_running:
        await service.stop()


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    """Application built with the test settings."""
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI test client with lifespan hooks run."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def api_headers() -> dict:
    return {"X-API-Key": TEST_API_KEY}
