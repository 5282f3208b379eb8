"""
Pytest fixtures for marketplace service tests.
"""

import os
from unittest.mock import AsyncMock

# IMPORTANT: Set environment variables BEFORE any imports from marketplace_service
# to ensure MarketplaceSettings is configured correctly when first loaded.
# MarketplaceSettings validation requires:
# - session_secret: min 16 characters
# - backend_url: http(s) URL
os.environ["ENVIRONMENT"] = "development"
os.environ["SESSION_SECRET"] = "test-session-secret-1234"  # Min 16 chars
os.environ["BACKEND_URL"] = "http://backend.test"
os.environ["BACKEND_ANON_KEY"] = "test-anon-key"
os.environ["GATEWAY_RETRY_BACKOFF_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient

from src.common.repositories import MarketplaceGatewayInterface
from tests.fixtures.marketplace_records import make_profile, make_session


@pytest.fixture
def gateway():
    """Gateway double shared by every dependency in a request."""
    mock = AsyncMock(spec=MarketplaceGatewayInterface)
    mock.get_current_session.return_value = None
    mock.list_jobs.return_value = []
    mock.list_applications.return_value = []
    return mock


@pytest.fixture
def client(gateway):
    """FastAPI test client with the backend gateway replaced."""
    from marketplace_service.app import app
    from marketplace_service.auth import get_gateway

    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sign_in(gateway):
    """Make the gateway report a signed-in user with the given role."""

    def _sign_in(role="client"):
        profile = make_profile(role)
        gateway.get_current_session.return_value = make_session(user_id=profile.id)
        gateway.get_profile.return_value = profile
        return profile

    return _sign_in
