"""
Account Routes

Registration, sign-in, sign-out and the static pages around them.

Endpoints:
    GET  /                    - Landing page view model
    GET  /login               - Sign-in page view model
    GET  /register            - Sign-up page view model
    GET  /unauthorized        - Access-denied page view model
    POST /api/auth/register   - Validate sign-up form, register, start session
    POST /api/auth/login      - Sign in, start session
    POST /logout              - End session, redirect home
    GET  /api/me              - Current profile and navigation
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from src.common.repositories import (
    GatewayError,
    MarketplaceGatewayInterface,
    RecordNotFoundError,
)
from src.common.types import Profile, Role
from src.marketplace.forms import RegistrationForm, form_errors
from src.marketplace.navigation import home_path_for, nav_links_for

from ..auth import clear_session, get_gateway, require_roles, store_session
from ..models import AuthResponse, FormErrorResponse, LoginRequest, MeResponse, MessagePage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])


@router.get("/", response_model=MessagePage)
async def home_page():
    return MessagePage(
        title="JobSpark",
        message="Post jobs, find work, get it done.",
        links=[
            {"href": "/jobs", "label": "Browse Jobs"},
            {"href": "/login", "label": "Sign In"},
            {"href": "/register", "label": "Create Account"},
        ],
    )


@router.get("/login", response_model=MessagePage)
async def login_page():
    return MessagePage(
        title="Sign In",
        message="Sign in to continue.",
        links=[{"href": "/register", "label": "Create Account"}],
    )


@router.get("/register", response_model=MessagePage)
async def register_page():
    return MessagePage(
        title="Create Account",
        message="Sign up as a client to post jobs or as a worker to find work.",
        links=[
            {"href": "/register?role=client", "label": "I'm hiring"},
            {"href": "/register?role=worker", "label": "I'm looking for work"},
            {"href": "/login", "label": "Sign In"},
        ],
    )


@router.get("/unauthorized", response_model=MessagePage)
async def unauthorized_page():
    return MessagePage(
        title="Access Denied",
        message=(
            "You don't have permission to access this page. Please contact an "
            "administrator if you believe this is an error."
        ),
        links=[{"href": "/", "label": "Go Home"}],
    )


@router.post("/api/auth/register", response_model=AuthResponse)
async def register(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """
    Register a client or worker account.

    The backend creates the auth user; the profile row is written right after.
    When the backend requires email confirmation no session is started and
    `confirmation_required` is true.
    """
    try:
        form = RegistrationForm.model_validate(payload)
    except ValidationError as e:
        return JSONResponse(
            status_code=422,
            content=FormErrorResponse(errors=form_errors(e)).model_dump(),
        )

    session = await gateway.register(form.to_registration_data())
    confirmation_required = not session.access_token
    if not confirmation_required:
        store_session(request, session)

    logger.info(f"Registered {form.role} account for user {session.user_id}")
    return AuthResponse(
        user_id=session.user_id,
        role=form.role,
        redirect_to=home_path_for(Role.parse(form.role)),
        confirmation_required=confirmation_required,
        message=(
            "Registration successful! Please check your email to verify your account."
            if confirmation_required
            else "Registration successful!"
        ),
    )


@router.post("/api/auth/login", response_model=AuthResponse)
async def login(
    request: Request,
    credentials: LoginRequest,
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """Sign in and return the caller's landing page."""
    session = await gateway.login(credentials.email.strip().lower(), credentials.password)

    try:
        profile = await gateway.get_profile(session.user_id)
    except RecordNotFoundError:
        clear_session(request)
        raise HTTPException(
            status_code=401,
            detail="Profile not found. Please contact support or try registering again.",
        )

    store_session(request, session)
    return AuthResponse(
        user_id=session.user_id,
        role=profile.role.value,
        redirect_to=home_path_for(profile.role),
    )


@router.post("/logout")
async def logout(
    request: Request,
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """End the session. The local session is cleared even if the backend call fails."""
    try:
        await gateway.logout()
    except GatewayError as e:
        logger.warning(f"Backend logout failed, clearing local session anyway: {e}")
    finally:
        clear_session(request)
    return RedirectResponse(url="/", status_code=303)


@router.get("/api/me", response_model=MeResponse)
async def me(profile: Profile = Depends(require_roles())):
    return MeResponse(
        profile=profile,
        nav_links=nav_links_for(profile.role),
        home=home_path_for(profile.role),
    )
