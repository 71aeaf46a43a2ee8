"""Shared test fixtures."""

import os

# Required settings must exist before anything imports config.settings.
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from datetime import time  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402

from src.pm_market.domain.period import MarketCalendar  # noqa: E402


@pytest.fixture
def calendar() -> MarketCalendar:
    return MarketCalendar(underlying="TSLA", zone=ZoneInfo("Europe/Rome"), cutover=time(15, 30))


@pytest.fixture
def db() -> AsyncMock:
    """Session stand-in: commit/rollback/execute are awaitable."""
    return AsyncMock()
