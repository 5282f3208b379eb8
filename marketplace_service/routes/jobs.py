"""
Job Routes

Browsing, posting and applying to jobs.

Endpoints:
    GET  /jobs                             - Browse page: open jobs, filtered and sorted
    GET  /api/jobs                         - Same list without the select options
    GET  /api/jobs/{job_id}                - Single job
    GET  /post-job                         - Post-job form options (clients)
    POST /api/jobs                         - Create a job (clients)
    POST /api/jobs/{job_id}/applications   - Apply to an open job (workers)

Browsing is public. Filtering runs in-process over the fetched open jobs,
so changing the query never changes what is fetched.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.common.repositories import (
    ApplicationFilter,
    GatewayError,
    JobFilter,
    MarketplaceGatewayInterface,
)
from src.common.types import JobStatus, Profile, Role
from src.marketplace.access_guard import resolve_session
from src.marketplace.forms import (
    JOB_CATEGORIES,
    PROJECT_TYPE_OPTIONS,
    SKILL_LEVEL_OPTIONS,
    ApplicationForm,
    JobPostForm,
    form_errors,
)
from src.marketplace.job_filter import (
    CATEGORIES,
    EXPERIENCE_LEVELS,
    PROJECT_TYPES,
    SORT_OPTIONS,
    JobQuery,
    filter_jobs,
)

from ..auth import get_gateway, require_roles
from ..models import (
    ApplicationResponse,
    FormErrorResponse,
    JobFilterOptions,
    JobListResponse,
    JobQueryEcho,
    JobResponse,
    PostJobFormResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


def _filter_options() -> JobFilterOptions:
    return JobFilterOptions(
        categories=CATEGORIES,
        experience_levels=EXPERIENCE_LEVELS,
        project_types=PROJECT_TYPES,
        sort_options=SORT_OPTIONS,
    )


async def _viewer_role(gateway: MarketplaceGatewayInterface) -> Optional[str]:
    """Role of the signed-in viewer, if any. Browsing never fails on this."""
    try:
        identity = await resolve_session(gateway)
    except GatewayError as e:
        logger.warning(f"Could not resolve viewer for job browse: {e}")
        return None
    return identity.role.value if identity else None


async def _browse(
    request: Request,
    gateway: MarketplaceGatewayInterface,
    with_options: bool,
) -> JobListResponse:
    query = JobQuery.from_params(request.query_params)
    jobs = await gateway.list_jobs(JobFilter(status=JobStatus.OPEN.value))
    visible = filter_jobs(jobs, query)
    return JobListResponse(
        jobs=visible,
        total_available=len(jobs),
        total_matching=len(visible),
        query=JobQueryEcho(**query.to_dict()),
        options=_filter_options() if with_options else None,
        viewer_role=await _viewer_role(gateway) if with_options else None,
    )


def _form_rejected(exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=FormErrorResponse(errors=form_errors(exc)).model_dump(),
    )


@router.get("/jobs", response_model=JobListResponse)
async def browse_jobs(
    request: Request,
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """
    Browse page view model.

    Query params: q, category, experience_level, project_type, sort.
    Unknown or blank values fall back to "no filter" / newest first.
    """
    return await _browse(request, gateway, with_options=True)


@router.get("/api/jobs", response_model=JobListResponse)
async def list_jobs(
    request: Request,
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    return await _browse(request, gateway, with_options=False)


@router.get("/api/jobs/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    job = await gateway.get_job(job_id)
    return JobResponse(job=job)


@router.get("/post-job", response_model=PostJobFormResponse)
async def post_job_form(profile: Profile = Depends(require_roles(Role.CLIENT))):
    return PostJobFormResponse(
        categories=JOB_CATEGORIES,
        experience_levels=SKILL_LEVEL_OPTIONS,
        project_types=PROJECT_TYPE_OPTIONS,
    )


@router.post("/api/jobs", response_model=JobResponse, status_code=201)
async def create_job(
    payload: Dict[str, Any] = Body(...),
    profile: Profile = Depends(require_roles(Role.CLIENT)),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """Validate the post-job form and create an open job owned by the caller."""
    try:
        form = JobPostForm.model_validate(payload)
    except ValidationError as e:
        return _form_rejected(e)

    job = await gateway.create_job(form.to_job_payload(client_id=profile.id))
    logger.info(f"Client {profile.id} posted job {job.id}")
    return JobResponse(job=job)


@router.post(
    "/api/jobs/{job_id}/applications",
    response_model=ApplicationResponse,
    status_code=201,
)
async def apply_to_job(
    job_id: str,
    payload: Dict[str, Any] = Body(...),
    profile: Profile = Depends(require_roles(Role.WORKER)),
    gateway: MarketplaceGatewayInterface = Depends(get_gateway),
):
    """
    Apply to a job.

    Rejected with 409 when the job is no longer open or the worker has
    already applied.
    """
    try:
        form = ApplicationForm.model_validate(payload)
    except ValidationError as e:
        return _form_rejected(e)

    job = await gateway.get_job(job_id)
    if job.status is not JobStatus.OPEN:
        raise HTTPException(status_code=409, detail="This job is no longer accepting applications")

    existing = await gateway.list_applications(
        ApplicationFilter(worker_id=profile.id, job_id=job_id)
    )
    if existing:
        raise HTTPException(status_code=409, detail="You have already applied to this job")

    application = await gateway.create_application(
        form.to_application_payload(job_id=job_id, worker_id=profile.id)
    )
    logger.info(f"Worker {profile.id} applied to job {job_id}")
    return ApplicationResponse(application=application)
