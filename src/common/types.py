"""
Canonical Types and Schemas for the JobSpark marketplace

Records (profiles, jobs, applications) are owned by the hosted backend.
These models are the transient, read-only copies the service works with:
they validate what the backend returns and what forms submit.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Closed set of account roles."""
    CLIENT = "client"
    WORKER = "worker"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Return the matching Role, or None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ExperienceLevel(str, Enum):
    ENTRY = "entry"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class ProjectType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    ONGOING = "ongoing"


class JobStatus(str, Enum):
    """Job lifecycle status. Transitions are made by the backend only."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


def _as_utc(value: object) -> object:
    """Parse ISO timestamps and pin naive values to UTC so all are comparable."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Record(BaseModel):
    """Base for backend records. Unknown columns (joins, audit fields) are ignored."""
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    @field_validator("created_at", mode="before", check_fields=False)
    @classmethod
    def normalize_created_at(cls, v):
        return _as_utc(v)


class Profile(Record):
    """Identity record for a session user. `id` is the auth user id."""
    id: str
    full_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    role: Role
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    experience_level: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        role = Role.parse(v)
        if role is None:
            raise ValueError(f"unknown role: {v!r}")
        return role


class Job(Record):
    """A client-posted work request."""
    id: str
    title: str
    description: str = ""
    category: str = ""
    skills: List[str] = Field(default_factory=list)
    budget: Decimal = Field(..., gt=0)
    location: str = ""
    duration: str = ""
    experience_level: str = ""
    project_type: str = ""
    status: JobStatus = JobStatus.OPEN
    client_id: str
    created_at: datetime
    requirements: Optional[str] = None
    # Embedded by list queries as profiles(full_name, avatar_url)
    client_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("client_name", AliasPath("profiles", "full_name"))
    )
    client_avatar_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("client_avatar_url", AliasPath("profiles", "avatar_url")),
    )

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v):
        # PostgREST returns NULL for an unset text[] column
        if v is None:
            return []
        return v


class Application(Record):
    """A worker's bid on a job."""
    id: str
    job_id: str
    worker_id: str
    proposed_rate: Optional[Decimal] = None
    cover_letter: str = ""
    status: ApplicationStatus = ApplicationStatus.PENDING
    created_at: datetime
    # Embedded by list queries as jobs(*) and profiles(full_name, avatar_url)
    job_title: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("job_title", AliasPath("jobs", "title"))
    )
    applicant_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("applicant_name", AliasPath("profiles", "full_name")),
    )
    applicant_avatar_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("applicant_avatar_url", AliasPath("profiles", "avatar_url")),
    )


class Session(Record):
    """
    Read-only snapshot of an authenticated backend session.

    access_token is None only right after sign-up when the backend holds the
    session back until the email address is confirmed.
    """
    user_id: str
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
