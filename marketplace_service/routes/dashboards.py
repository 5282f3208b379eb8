"""
Dashboard Routes

One landing page per role, each behind the access guard.

Endpoints:
    GET /client - Client dashboard (client role)
    GET /worker - Worker dashboard (worker role)
    GET /admin  - Platform overview (admin role)

Any backend failure while loading dashboard data is logged and answered
with 503.
"""

from dataclasses import fields
from typing import Awaitable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request

from src.common.logger import get_logger
from src.common.repositories import GatewayError, MarketplaceGatewayInterface
from src.common.types import Profile, Role
from src.marketplace.dashboards import (
    load_admin_dashboard,
    load_client_dashboard,
    load_worker_dashboard,
)

from ..auth import get_gateway, request_id_of, require_roles
from ..models import AdminDashboardResponse, ClientDashboardResponse, WorkerDashboardResponse

router = APIRouter(tags=["dashboards"])

DashboardT = TypeVar("DashboardT")


async def _load(request: Request, name: str, loading: Awaitable[DashboardT]) -> DashboardT:
    try:
        return await loading
    except GatewayError as e:
        log = get_logger(__name__, request_id=request_id_of(request), component="dashboard")
        log.error(f"Failed to load {name} dashboard: {type(e).__name__}: {e}")
        raise HTTPException(status_code=503, detail="Dashboard data is temporarily unavailable")


@router.get("/client", response_model=ClientDashboardResponse)
async def client_dashboard(
    request: Request,
    profile: Profile = Depends(require_roles(Role.CLIENT)),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    dashboard = await _load(request, "client", load_client_dashboard(gateway, profile))
    return ClientDashboardResponse(**_fields(dashboard))


@router.get("/worker", response_model=WorkerDashboardResponse)
async def worker_dashboard(
    request: Request,
    profile: Profile = Depends(require_roles(Role.WORKER)),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    dashboard = await _load(request, "worker", load_worker_dashboard(gateway, profile))
    return WorkerDashboardResponse(**_fields(dashboard))


@router.get("/admin", response_model=AdminDashboardResponse)
async def admin_dashboard(
    request: Request,
    profile: Profile = Depends(require_roles(Role.ADMIN)),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    dashboard = await _load(request, "admin", load_admin_dashboard(gateway))
    return AdminDashboardResponse(**_fields(dashboard))


def _fields(dashboard) -> dict:
    return {f.name: getattr(dashboard, f.name) for f in fields(dashboard)}
