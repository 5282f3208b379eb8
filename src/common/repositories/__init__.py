"""
Data-Access Gateway for the hosted marketplace backend.

Provides an abstraction layer over the backend-as-a-service that owns
authentication and the profiles, jobs and applications tables.

Public API:
- create_gateway(): Factory binding a gateway to one caller's tokens
- MarketplaceGatewayInterface: Abstract interface consumed by the core
- GatewayConfig: Backend connection settings
- GatewayError and subclasses: failure taxonomy

Usage:
    from src.common.repositories import create_gateway

    gateway = create_gateway(config, access_token=token)
    session = await gateway.get_current_session()
    jobs = await gateway.list_jobs(JobFilter(status="open"))
"""

from .base import (
    ApplicationFilter,
    AuthError,
    GatewayError,
    GatewayUnavailableError,
    JobFilter,
    MarketplaceGatewayInterface,
    RecordNotFoundError,
    RecordValidationError,
)
from .config import (
    GatewayConfig,
    close_http_client,
    create_gateway,
    get_http_client,
)

__all__ = [
    # Gateway
    "create_gateway",
    "get_http_client",
    "close_http_client",
    "GatewayConfig",
    "MarketplaceGatewayInterface",
    # Filters
    "JobFilter",
    "ApplicationFilter",
    # Errors
    "GatewayError",
    "GatewayUnavailableError",
    "RecordNotFoundError",
    "RecordValidationError",
    "AuthError",
]
