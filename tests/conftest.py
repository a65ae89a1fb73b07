"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["WC_PROJECT_ID"] = "test-project"
os.environ["DEBUG"] = "true"

from swapconnect.config import Settings
from swapconnect.metrics import MetricsRecorder
from swapconnect.wallet.store import SessionStore

from helpers import FakeClock


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        wc_project_id="test-project",
        app_public_url="https://swap.example.org",
        swap_timeout_seconds=300,
        telegram_bot_token="",
    )


@pytest.fixture
def metrics() -> MetricsRecorder:
    """Metrics recorder on a private registry."""
    return MetricsRecorder(enabled=True, registry=CollectorRegistry())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> SessionStore:
    return SessionStore(clock=clock)


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification sink that records every message."""
    mock = AsyncMock()
    mock.notify = AsyncMock(return_value=True)
    return mock
