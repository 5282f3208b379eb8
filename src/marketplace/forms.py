"""
Form validation for registration, job posting and job applications.

Each form is a pydantic model whose validators carry the user-facing
messages shown next to the field. `form_errors()` flattens a
ValidationError into {field: message} for the response body.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

from src.common.types import ApplicationStatus, ExperienceLevel, JobStatus, ProjectType, Role

from .job_filter import ALL_CATEGORIES, CATEGORIES, normalize_choice

JOB_CATEGORIES: List[str] = [c for c in CATEGORIES if c != ALL_CATEGORIES]

SKILL_LEVEL_OPTIONS = [
    {"value": ExperienceLevel.ENTRY.value, "label": "Entry Level"},
    {"value": ExperienceLevel.INTERMEDIATE.value, "label": "Intermediate"},
    {"value": ExperienceLevel.EXPERT.value, "label": "Expert"},
]

PROJECT_TYPE_OPTIONS = [
    {"value": ProjectType.FIXED.value, "label": "Fixed Price Project"},
    {"value": ProjectType.HOURLY.value, "label": "Hourly Project"},
    {"value": ProjectType.ONGOING.value, "label": "Ongoing Project"},
]

# Roles a visitor may pick when signing up; admins are provisioned by hand
SELF_SERVICE_ROLES = (Role.CLIENT, Role.WORKER)

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
_PHONE_RE = re.compile(r"^[\+]?[1-9][\d]{0,15}$")


def _required(value: Any, message: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(message)
    return str(value).strip()


def parse_skills(raw: Union[str, List[str], None]) -> List[str]:
    """
    Split a comma-separated skills field into a clean list.

    Examples:
        >>> parse_skills("React, Node.js , ,MongoDB")
        ['React', 'Node.js', 'MongoDB']
    """
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else raw
    return [str(item).strip() for item in items if str(item).strip()]


def form_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a ValidationError into {field: first message}."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "form"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


class RegistrationForm(BaseModel):
    """Sign-up form."""
    full_name: str
    email: str
    phone: str
    role: str
    password: str

    @field_validator("full_name", mode="before")
    @classmethod
    def check_full_name(cls, v):
        v = _required(v, "Full name is required")
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        v = _required(v, "Email is required")
        if not _EMAIL_RE.fullmatch(v):
            raise ValueError("Please enter a valid email address")
        return v.lower()

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v):
        v = _required(v, "Phone number is required")
        if not _PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        role = Role.parse(v)
        if role not in SELF_SERVICE_ROLES:
            raise ValueError("Please select a role")
        return role.value

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v):
        if not isinstance(v, str) or not v:
            raise ValueError("Password is required")
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    def to_registration_data(self) -> Dict[str, Any]:
        return self.model_dump()


class JobPostForm(BaseModel):
    """Job posting form submitted by a client."""
    title: str
    category: str
    project_type: str
    description: str
    skills: List[str]
    budget: Decimal
    duration: str
    location: str
    experience_level: str
    requirements: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v):
        v = _required(v, "Job title is required")
        if len(v) < 10:
            raise ValueError("Title must be at least 10 characters")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def check_category(cls, v):
        v = _required(v, "Category is required")
        if v not in JOB_CATEGORIES:
            raise ValueError("Category is required")
        return v

    @field_validator("project_type", mode="before")
    @classmethod
    def check_project_type(cls, v):
        v = normalize_choice(_required(v, "Project type is required"))
        if v not in {t.value for t in ProjectType}:
            raise ValueError("Project type is required")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v):
        v = _required(v, "Description is required")
        if len(v) < 100:
            raise ValueError("Description must be at least 100 characters")
        return v

    @field_validator("skills", mode="before")
    @classmethod
    def check_skills(cls, v):
        skills = parse_skills(v)
        if not skills:
            raise ValueError("Skills are required")
        return skills

    @field_validator("budget", mode="before")
    @classmethod
    def check_budget(cls, v):
        v = _required(v, "Budget is required")
        try:
            budget = Decimal(v)
        except ArithmeticError:
            raise ValueError("Budget must be a number")
        if not budget.is_finite() or budget <= 0:
            raise ValueError("Budget must be greater than 0")
        return budget

    @field_validator("duration", mode="before")
    @classmethod
    def check_duration(cls, v):
        return _required(v, "Duration is required")

    @field_validator("location", mode="before")
    @classmethod
    def check_location(cls, v):
        return _required(v, "Location is required")

    @field_validator("experience_level", mode="before")
    @classmethod
    def check_experience_level(cls, v):
        v = normalize_choice(_required(v, "Experience level is required"))
        if v not in {level.value for level in ExperienceLevel}:
            raise ValueError("Experience level is required")
        return v

    @field_validator("requirements", mode="before")
    @classmethod
    def strip_requirements(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    def to_job_payload(self, client_id: str) -> Dict[str, Any]:
        """Row to insert: form fields plus owner, initial status and timestamp."""
        payload = self.model_dump()
        payload.update(
            client_id=client_id,
            status=JobStatus.OPEN.value,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        return payload


class ApplicationForm(BaseModel):
    """A worker's application to an open job."""
    cover_letter: str
    proposed_rate: Optional[Decimal] = None

    @field_validator("cover_letter", mode="before")
    @classmethod
    def check_cover_letter(cls, v):
        return _required(v, "Cover letter is required")

    @field_validator("proposed_rate", mode="before")
    @classmethod
    def check_proposed_rate(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        try:
            rate = Decimal(str(v).strip())
        except ArithmeticError:
            raise ValueError("Proposed rate must be a number")
        if not rate.is_finite() or rate <= 0:
            raise ValueError("Proposed rate must be greater than 0")
        return rate

    def to_application_payload(self, job_id: str, worker_id: str) -> Dict[str, Any]:
        payload = self.model_dump()
        payload.update(
            job_id=job_id,
            worker_id=worker_id,
            status=ApplicationStatus.PENDING.value,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        return payload
