"""
FastAPI service for the JobSpark marketplace.

Serves the browse, post-job, dashboard and account routes. Authentication
and data live in the hosted backend; this service keeps the caller's backend
tokens in a signed session cookie and runs the role access guard in front of
every protected route.
"""

import logging
import os
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from src.common.logger import setup_logging
from src.common.repositories import (
    AuthError,
    GatewayError,
    GatewayUnavailableError,
    RecordNotFoundError,
    RecordValidationError,
    close_http_client,
    get_http_client,
)
from src.marketplace.access_guard import DenialReason
from version import __version__

from .auth import AccessDenied, request_id_of
from .config import settings, validate_config_on_startup
from .models import HealthResponse
from .routes import accounts_router, dashboards_router, jobs_router

# Configure logging
setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

# Validate configuration at startup
validate_config_on_startup()

app = FastAPI(title="JobSpark Marketplace", version=__version__)

_session_secret = settings.session_secret
if not _session_secret:
    # Sessions will not survive a restart
    logger.warning("SESSION_SECRET not set, using an ephemeral session secret")
    _session_secret = os.urandom(32).hex()

app.add_middleware(
    SessionMiddleware,
    secret_key=_session_secret,
    session_cookie="jobspark_session",
    max_age=settings.session_max_age_seconds,
    same_site="lax",
    https_only=settings.is_production,
)

# Configure CORS using validated settings
if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include modular route handlers
app.include_router(accounts_router)
app.include_router(jobs_router)
app.include_router(dashboards_router)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    """Tag each request with an id, echoed back in X-Request-ID."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api/")


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    """Pages redirect to sign-in or unauthorized; API callers get 401/403."""
    state = exc.state
    if _is_api(request):
        if state.reason is DenialReason.ROLE_MISMATCH:
            return JSONResponse(status_code=403, content={"detail": "Insufficient role"})
        return JSONResponse(status_code=401, content={"detail": "Authentication required"})
    return RedirectResponse(url=state.redirect_to, status_code=303)


@app.exception_handler(RecordValidationError)
async def record_validation_handler(request: Request, exc: RecordValidationError):
    return JSONResponse(
        status_code=422,
        content={"success": False, "detail": str(exc), "errors": exc.field_errors},
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(GatewayUnavailableError)
async def unavailable_handler(request: Request, exc: GatewayUnavailableError):
    logger.error(f"[{request_id_of(request)}] Backend unavailable on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable, please try again"},
    )


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error(f"[{request_id_of(request)}] Backend error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Backend request failed"})


@app.on_event("startup")
async def open_backend_client():
    """Create the shared backend HTTP client."""
    app.state.http_client = get_http_client(settings.gateway_config())


@app.on_event("shutdown")
async def close_backend_client():
    await close_http_client()
    app.state.http_client = None


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for container orchestration."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc),
    )
