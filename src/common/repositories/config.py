"""
Gateway Configuration and Factory

Provides the shared HTTP client and a factory that binds a gateway to one
caller's session tokens.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx

from .base import MarketplaceGatewayInterface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection settings for the hosted backend.

    The web service builds this from its validated settings.
    """
    base_url: str
    anon_key: str
    timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_backoff_seconds: float = 0.5
    retry_backoff_max_seconds: float = 4.0

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - BACKEND_URL (required): Base URL of the hosted backend
        - BACKEND_ANON_KEY: Public API key
        - GATEWAY_TIMEOUT_SECONDS: Per-request timeout (default 10)
        - GATEWAY_MAX_RETRIES: Attempts per call (default 3)

        Raises:
            ValueError: If BACKEND_URL is not set
        """
        base_url = os.getenv("BACKEND_URL")
        if not base_url:
            raise ValueError("BACKEND_URL environment variable is required")

        return cls(
            base_url=base_url.rstrip("/"),
            anon_key=os.getenv("BACKEND_ANON_KEY", ""),
            timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            max_retries=int(os.getenv("GATEWAY_MAX_RETRIES", "3")),
        )


# Singleton HTTP client (connection pool shared by all requests)
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client(config: GatewayConfig) -> httpx.AsyncClient:
    """
    Get the shared httpx.AsyncClient, creating it on first use.

    Uses singleton pattern for connection pooling. Session tokens are never
    stored on the client; they travel as per-request headers.
    """
    global _http_client

    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )
        logger.info(f"Initialized backend HTTP client (timeout={config.timeout_seconds}s)")

    return _http_client


async def close_http_client() -> None:
    """Close the shared client. Called on application shutdown."""
    global _http_client

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
        logger.info("Backend HTTP client closed")


def create_gateway(
    config: GatewayConfig,
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> MarketplaceGatewayInterface:
    """
    Create a gateway bound to one caller's tokens.

    Args:
        config: Backend connection settings
        access_token: Caller's access token (None for anonymous callers)
        refresh_token: Caller's refresh token, carried through unchanged
        client: HTTP client override (tests); defaults to the shared client

    Returns:
        MarketplaceGatewayInterface implementation
    """
    from .hosted_gateway import HostedMarketplaceGateway

    return HostedMarketplaceGateway(
        client=client or get_http_client(config),
        config=config,
        access_token=access_token,
        refresh_token=refresh_token,
    )
