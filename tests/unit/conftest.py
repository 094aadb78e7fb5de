"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests should be fast and isolated, never touching the network.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest


# =============================================================================
# Time Fixtures
# =============================================================================


@pytest.fixture
def date_finder() -> Callable[[list[datetime]], Callable[[str], list[datetime]]]:
    """
    Build a stand-in for the natural-language date finder.

    Usage:
        def test_range(date_finder):
            finder = date_finder([datetime(2024, 1, 1), datetime(2024, 2, 1)])
            resolve_time_spec("january", finder)
    """
    def factory(dates: list[datetime]) -> Callable[[str], list[datetime]]:
        return lambda text: [d.replace(tzinfo=timezone.utc) if d.tzinfo is None else d for d in dates]
    return factory


# =============================================================================
# HTTP Mock Fixtures
# =============================================================================


@pytest.fixture
def make_response() -> Callable[..., httpx.Response]:
    """
    Build real httpx.Response objects for patched client calls.

    Usage:
        response = make_response(200, json={"response": {...}})
    """
    def factory(status_code: int = 200, **kwargs: Any) -> httpx.Response:
        return httpx.Response(status_code, **kwargs)
    return factory


@pytest.fixture
def mock_coroner_client() -> MagicMock:
    """
    Mock CoronerClient for command tests.

    Usage:
        mock_coroner_client.query.return_value = {"response": {...}}
    """
    client = MagicMock()
    client.query = AsyncMock()
    client.describe = AsyncMock()
    client.close = AsyncMock()
    return client


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                # Test code that logs
                mock_logger.warning.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
