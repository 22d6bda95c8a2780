"""Pytest configuration and fixtures."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from whale_analytics.config import clear_settings_cache


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time for deterministic window computations."""
    return datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def notifier() -> AsyncMock:
    """Recording AlertNotifier double."""
    mock = AsyncMock()
    mock.notify_accumulation = AsyncMock(return_value=None)
    mock.notify_confluence = AsyncMock(return_value=None)
    return mock


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Make every test load settings from its own environment."""
    clear_settings_cache()
    yield
    clear_settings_cache()
