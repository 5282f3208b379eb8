"""
Marketplace core: job filtering/sorting, role access guard, dashboards,
form validation and navigation.
"""

from .access_guard import (
    AccessGuard,
    DenialReason,
    GuardState,
    GuardStatus,
    ResolvedIdentity,
    resolve_session,
)
from .job_filter import JobQuery, filter_jobs

__all__ = [
    "AccessGuard",
    "DenialReason",
    "GuardState",
    "GuardStatus",
    "ResolvedIdentity",
    "resolve_session",
    "JobQuery",
    "filter_jobs",
]
