"""
Global fixtures for marketplace unit tests.

Provides a gateway double built on AsyncMock so core logic can be
exercised without a backend.
"""

import os
from unittest.mock import AsyncMock

# Set test environment BEFORE any imports so settings never read a real .env
os.environ["ENVIRONMENT"] = "development"

import pytest

from src.common.repositories import MarketplaceGatewayInterface


@pytest.fixture
def gateway():
    """
    AsyncMock gateway. Every method is awaitable and returns a MagicMock
    until a test sets return_value or side_effect.
    """
    mock = AsyncMock(spec=MarketplaceGatewayInterface)
    mock.get_current_session.return_value = None
    mock.list_jobs.return_value = []
    mock.list_applications.return_value = []
    return mock
