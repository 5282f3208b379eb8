"""
Shared Pydantic models for the marketplace service.

These models define the structure for API requests and responses. Record
payloads reuse the canonical types from src.common.types.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.common.types import Application, Job, Profile


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str
    timestamp: datetime


class LoginRequest(BaseModel):
    """Request body for email/password sign-in."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Response after registering or signing in."""

    success: bool = True
    user_id: str
    role: Optional[str] = None
    redirect_to: str
    confirmation_required: bool = False
    message: Optional[str] = None


class FormErrorResponse(BaseModel):
    """422 body for a rejected form."""

    success: bool = False
    errors: Dict[str, str]


class JobQueryEcho(BaseModel):
    """The filter/sort selection the list was produced with."""

    search_term: str
    category: str
    experience_level: str
    project_type: str
    sort_key: str


class JobFilterOptions(BaseModel):
    """Select options offered by the browse page."""

    categories: List[str]
    experience_levels: List[str]
    project_types: List[str]
    sort_options: List[Dict[str, str]]


class JobListResponse(BaseModel):
    """Filtered, ordered job list for the browse page."""

    jobs: List[Job]
    total_available: int = Field(..., description="Open jobs before filtering")
    total_matching: int
    query: JobQueryEcho
    options: Optional[JobFilterOptions] = None
    viewer_role: Optional[str] = None


class JobResponse(BaseModel):
    success: bool = True
    job: Job


class ApplicationResponse(BaseModel):
    success: bool = True
    application: Application


class PostJobFormResponse(BaseModel):
    """Options for the post-job form."""

    categories: List[str]
    experience_levels: List[Dict[str, str]]
    project_types: List[Dict[str, str]]


class MeResponse(BaseModel):
    """Current profile with its navigation and landing page."""

    profile: Profile
    nav_links: List[Dict[str, str]]
    home: str


class ClientDashboardResponse(BaseModel):
    total_jobs: int
    active_jobs: int
    completed_jobs: int
    total_applications: int
    recent_jobs: List[Job]
    recent_applications: List[Application]


class WorkerDashboardResponse(BaseModel):
    total_applications: int
    active_applications: int
    completed_jobs: int
    available_jobs: int
    profile_completion: int = Field(..., ge=0, le=100)
    recent_jobs: List[Job]
    my_applications: List[Application]


class AdminDashboardResponse(BaseModel):
    total_jobs: int
    total_applications: int
    jobs_by_status: Dict[str, int]
    applications_by_status: Dict[str, int]
    recent_jobs: List[Job]


class MessagePage(BaseModel):
    """Static page view model (login, unauthorized)."""

    title: str
    message: str
    links: List[Dict[str, str]] = Field(default_factory=list)
