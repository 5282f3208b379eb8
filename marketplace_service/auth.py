"""
Authentication Module

Binds each request to the caller's backend session and gates protected
routes with the role access guard.

The backend tokens live in the signed session cookie; nothing about the
session is cached in the process. Every request gets its own gateway and,
for protected routes, its own AccessGuard.
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from fastapi import Depends, Request

from src.common.repositories import MarketplaceGatewayInterface, create_gateway
from src.common.types import Profile, Role, Session
from src.marketplace.access_guard import AccessGuard, GuardState, GuardStatus

from .config import get_settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


class AccessDenied(Exception):
    """
    Raised by guarded routes when the guard settles on DENIED.

    The app's exception handler turns it into a redirect for page routes
    and a 401/403 JSON body for /api routes.
    """

    def __init__(self, state: GuardState):
        self.state = state
        super().__init__(f"Access denied: {state.reason.value if state.reason else 'unknown'}")


def request_id_of(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def get_gateway(request: Request) -> MarketplaceGatewayInterface:
    """Gateway bound to the tokens in this request's session cookie."""
    config = get_settings().gateway_config()
    client = getattr(request.app.state, "http_client", None)
    return create_gateway(
        config,
        access_token=request.session.get(ACCESS_TOKEN_KEY),
        refresh_token=request.session.get(REFRESH_TOKEN_KEY),
        client=client,
    )


def store_session(request: Request, session: Session) -> None:
    """Persist backend tokens in the signed session cookie."""
    request.session[ACCESS_TOKEN_KEY] = session.access_token
    if session.refresh_token:
        request.session[REFRESH_TOKEN_KEY] = session.refresh_token
    else:
        request.session.pop(REFRESH_TOKEN_KEY, None)


def clear_session(request: Request) -> None:
    request.session.clear()


async def run_guard(guard: AccessGuard) -> GuardState:
    """Evaluate a guard; if the request task is cancelled, detach it first."""
    try:
        return await guard.evaluate()
    except asyncio.CancelledError:
        guard.detach()
        raise


def require_roles(*roles: Union[Role, str]) -> Callable:
    """
    Dependency factory for protected routes.

    With no roles, any signed-in user with a profile is admitted.

    Usage:
        @router.get("/client")
        async def client_dashboard(profile: Profile = Depends(require_roles(Role.CLIENT))):
            ...
    """

    async def dependency(
        request: Request,
        gateway: MarketplaceGatewayInterface = Depends(get_gateway),
    ) -> Profile:
        guard = AccessGuard(gateway, allowed_roles=roles, request_id=request_id_of(request))
        state = await run_guard(guard)
        if state.status is not GuardStatus.GRANTED:
            raise AccessDenied(state)
        return state.profile

    return dependency
