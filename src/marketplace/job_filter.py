"""
Job listing filter/sort engine.

Turns an already-fetched list of jobs plus the browse page's query into the
ordered list the page displays. Pure and synchronous: no I/O, no state kept
between calls, so it is simply re-run whenever the query changes.

Usage:
    query = JobQuery.from_params(request.query_params)
    visible = filter_jobs(jobs, query)
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from src.common.types import Job

ALL_CATEGORIES = "All Categories"
ALL_LEVELS = "All Levels"
ALL_TYPES = "All Types"

CATEGORIES: List[str] = [
    ALL_CATEGORIES,
    "Web Development",
    "Mobile Development",
    "Design & Creative",
    "Writing & Translation",
    "Digital Marketing",
    "Data Science",
    "Engineering",
    "Sales & Business Development",
    "Customer Service",
    "Admin & Virtual Assistant",
    "Photography",
    "Video & Animation",
    "Other",
]

EXPERIENCE_LEVELS: List[str] = [ALL_LEVELS, "Entry Level", "Intermediate", "Expert"]

PROJECT_TYPES: List[str] = [ALL_TYPES, "Fixed Price", "Hourly", "Ongoing"]

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_HIGHEST_BUDGET = "highest_budget"
SORT_LOWEST_BUDGET = "lowest_budget"

SORT_OPTIONS: List[dict] = [
    {"value": SORT_NEWEST, "label": "Newest First"},
    {"value": SORT_OLDEST, "label": "Oldest First"},
    {"value": SORT_HIGHEST_BUDGET, "label": "Highest Budget"},
    {"value": SORT_LOWEST_BUDGET, "label": "Lowest Budget"},
]

# Browse-page labels whose normalised form differs from the stored value
_LABEL_ALIASES = {
    "entry_level": "entry",
    "fixed_price": "fixed",
    "fixed_price_project": "fixed",
    "hourly_project": "hourly",
    "ongoing_project": "ongoing",
}


def normalize_choice(value: Optional[str]) -> str:
    """
    Normalise a select value for comparison: lowercase, whitespace to underscores.

    Examples:
        >>> normalize_choice("Entry Level")
        'entry'
        >>> normalize_choice("In Progress")
        'in_progress'
    """
    if not value:
        return ""
    normalized = re.sub(r"\s+", "_", value.strip().lower())
    return _LABEL_ALIASES.get(normalized, normalized)


def _text_or(value: Any, default: str) -> str:
    if isinstance(value, str):
        return value
    return default


@dataclass(frozen=True)
class JobQuery:
    """User-supplied filter and sort selection from the browse page."""
    search_term: str = ""
    category: str = ALL_CATEGORIES
    experience_level: str = ALL_LEVELS
    project_type: str = ALL_TYPES
    sort_key: str = SORT_NEWEST

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "JobQuery":
        """
        Build a query from request parameters. Never raises.

        Missing, blank or non-string values fall back to the permissive default
        for that field.
        """
        def pick(*names: str) -> Optional[str]:
            for name in names:
                value = params.get(name)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return None

        return cls(
            search_term=pick("q", "search", "search_term") or "",
            category=pick("category") or ALL_CATEGORIES,
            experience_level=pick("experience_level", "experience") or ALL_LEVELS,
            project_type=pick("project_type", "type") or ALL_TYPES,
            sort_key=pick("sort", "sort_by", "sort_key") or SORT_NEWEST,
        )

    def to_dict(self) -> dict:
        return {
            "search_term": self.search_term,
            "category": self.category,
            "experience_level": self.experience_level,
            "project_type": self.project_type,
            "sort_key": self.sort_key,
        }


def _matches_search(job: Job, term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    if needle in (job.title or "").lower():
        return True
    if needle in (job.description or "").lower():
        return True
    return any(needle in skill.lower() for skill in (job.skills or []) if isinstance(skill, str))


def _matches_choice(stored: Optional[str], selected: str, wildcard: str) -> bool:
    if selected == wildcard:
        return True
    wanted = normalize_choice(selected)
    if not wanted:
        return True
    return normalize_choice(stored) == wanted


def job_matches(job: Job, query: JobQuery) -> bool:
    """True iff the job passes every filter in the query."""
    search_term = _text_or(query.search_term, "")
    category = _text_or(query.category, ALL_CATEGORIES)
    experience = _text_or(query.experience_level, ALL_LEVELS)
    project_type = _text_or(query.project_type, ALL_TYPES)

    if not _matches_search(job, search_term):
        return False
    if category and category != ALL_CATEGORIES and job.category != category:
        return False
    if not _matches_choice(job.experience_level, experience, ALL_LEVELS):
        return False
    if not _matches_choice(job.project_type, project_type, ALL_TYPES):
        return False
    return True


# sort key -> (attribute getter, descending)
_SORTS: dict = {
    SORT_NEWEST: (lambda job: job.created_at, True),
    SORT_OLDEST: (lambda job: job.created_at, False),
    SORT_HIGHEST_BUDGET: (lambda job: job.budget, True),
    SORT_LOWEST_BUDGET: (lambda job: job.budget, False),
}


def _stable_sort(jobs: List[Job], key: Callable[[Job], Any], descending: bool) -> List[Job]:
    # Jobs missing the sort field keep their relative order after the rest
    present = [job for job in jobs if key(job) is not None]
    missing = [job for job in jobs if key(job) is None]
    return sorted(present, key=key, reverse=descending) + missing


def filter_jobs(jobs: Sequence[Job], query: Optional[JobQuery] = None) -> List[Job]:
    """
    Filter and order jobs for display.

    Args:
        jobs: Jobs as fetched from the gateway, in any order
        query: Filter/sort selection; None means no filters, newest first

    Returns:
        New list of matching jobs. Ties keep their input order. An unknown
        sort key leaves the filtered list in input order.
    """
    query = query or JobQuery()
    filtered = [job for job in jobs if job_matches(job, query)]

    sort = _SORTS.get(query.sort_key) if isinstance(query.sort_key, str) else None
    if sort is None:
        return filtered
    key, descending = sort
    return _stable_sort(filtered, key, descending)
