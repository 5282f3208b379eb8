"""
Dashboard summaries for clients, workers and admins.

The summarise_* functions are pure: they take lists already fetched from the
gateway. The load_* coroutines do the fetching for a resolved profile and
let GatewayError propagate to the route.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from src.common.repositories.base import (
    ApplicationFilter,
    JobFilter,
    MarketplaceGatewayInterface,
)
from src.common.types import Application, ApplicationStatus, Job, JobStatus, Profile

RECENT_LIMIT = 5

PROFILE_COMPLETION_FIELDS = ("full_name", "email", "phone", "experience_level", "skills", "bio")


@dataclass(frozen=True)
class ClientDashboard:
    total_jobs: int
    active_jobs: int
    completed_jobs: int
    total_applications: int
    recent_jobs: List[Job] = field(default_factory=list)
    recent_applications: List[Application] = field(default_factory=list)


@dataclass(frozen=True)
class WorkerDashboard:
    total_applications: int
    active_applications: int
    completed_jobs: int
    available_jobs: int
    profile_completion: int
    recent_jobs: List[Job] = field(default_factory=list)
    my_applications: List[Application] = field(default_factory=list)


@dataclass(frozen=True)
class AdminDashboard:
    total_jobs: int
    total_applications: int
    jobs_by_status: Dict[str, int] = field(default_factory=dict)
    applications_by_status: Dict[str, int] = field(default_factory=dict)
    recent_jobs: List[Job] = field(default_factory=list)


def profile_completion(profile: Profile) -> int:
    """
    Percentage of the profile-completion fields that are filled in.

    A field counts when it is a non-empty string or a non-empty list.
    """
    filled = 0
    for name in PROFILE_COMPLETION_FIELDS:
        value = getattr(profile, name, None)
        if value and len(value) > 0:
            filled += 1
    return round(filled * 100 / len(PROFILE_COMPLETION_FIELDS))


def summarise_client(jobs: Sequence[Job], applications: Sequence[Application]) -> ClientDashboard:
    """Stats for a client's own jobs and the applications made to them."""
    job_ids = {job.id for job in jobs}
    received = [app for app in applications if app.job_id in job_ids]
    return ClientDashboard(
        total_jobs=len(jobs),
        active_jobs=sum(1 for job in jobs if job.status is JobStatus.OPEN),
        completed_jobs=sum(1 for job in jobs if job.status is JobStatus.COMPLETED),
        total_applications=len(received),
        recent_jobs=list(jobs[:RECENT_LIMIT]),
        recent_applications=received[:RECENT_LIMIT],
    )


def summarise_worker(
    profile: Profile,
    applications: Sequence[Application],
    open_jobs: Sequence[Job],
) -> WorkerDashboard:
    """Stats for a worker's applications and the jobs open to them."""
    return WorkerDashboard(
        total_applications=len(applications),
        active_applications=sum(1 for app in applications if app.status is ApplicationStatus.PENDING),
        completed_jobs=sum(1 for app in applications if app.status is ApplicationStatus.COMPLETED),
        available_jobs=len(open_jobs),
        profile_completion=profile_completion(profile),
        recent_jobs=list(open_jobs[:RECENT_LIMIT]),
        my_applications=list(applications[:RECENT_LIMIT]),
    )


def summarise_admin(jobs: Sequence[Job], applications: Sequence[Application]) -> AdminDashboard:
    """Platform-wide counts for the admin overview."""
    return AdminDashboard(
        total_jobs=len(jobs),
        total_applications=len(applications),
        jobs_by_status=dict(Counter(job.status.value for job in jobs)),
        applications_by_status=dict(Counter(app.status.value for app in applications)),
        recent_jobs=list(jobs[:RECENT_LIMIT]),
    )


async def load_client_dashboard(
    gateway: MarketplaceGatewayInterface, profile: Profile
) -> ClientDashboard:
    jobs = await gateway.list_jobs(JobFilter(client_id=profile.id))
    applications: List[Application] = []
    if jobs:
        applications = await gateway.list_applications()
    return summarise_client(jobs, applications)


async def load_worker_dashboard(
    gateway: MarketplaceGatewayInterface, profile: Profile
) -> WorkerDashboard:
    applications = await gateway.list_applications(ApplicationFilter(worker_id=profile.id))
    open_jobs = await gateway.list_jobs(JobFilter(status=JobStatus.OPEN.value))
    return summarise_worker(profile, applications, open_jobs)


async def load_admin_dashboard(gateway: MarketplaceGatewayInterface) -> AdminDashboard:
    jobs = await gateway.list_jobs()
    applications = await gateway.list_applications()
    return summarise_admin(jobs, applications)
