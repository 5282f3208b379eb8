"""
Data-Access Gateway Interface Definitions

Defines the abstract interface over the hosted marketplace backend
(authentication plus the profiles, jobs and applications tables).
This enables swapping implementations (hosted REST, in-memory fakes in tests)
without changing consumer code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from src.common.types import Application, Job, Profile, Session


class GatewayError(Exception):
    """Base class for failures reported by the data-access gateway."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class GatewayUnavailableError(GatewayError):
    """Backend unreachable or failing (transport error, 5xx, 429). Retryable."""


class RecordNotFoundError(GatewayError):
    """The requested record does not exist (or is not visible to the caller)."""


class RecordValidationError(GatewayError):
    """The backend rejected a write as invalid."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        field_errors: Optional[Dict[str, str]] = None,
    ):
        self.field_errors = field_errors or {}
        super().__init__(message, status_code)


class AuthError(GatewayError):
    """Registration, login or logout was refused."""


@dataclass(frozen=True)
class JobFilter:
    """Server-side filter for job listing. None means 'any'."""
    client_id: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class ApplicationFilter:
    """Server-side filter for application listing. None means 'any'."""
    worker_id: Optional[str] = None
    job_id: Optional[str] = None


class MarketplaceGatewayInterface(ABC):
    """
    Abstract interface for the hosted marketplace backend.

    Implementations:
    - HostedMarketplaceGateway: REST (PostgREST + GoTrue) over httpx

    All methods are coroutines. Failures are raised as GatewayError
    subclasses; nothing is swallowed at this layer.
    """

    # =========================================================================
    # Session / identity
    # =========================================================================

    @abstractmethod
    async def get_current_session(self) -> Optional[Session]:
        """Return the caller's session, or None if not signed in."""
        pass

    @abstractmethod
    async def register(self, data: Dict[str, Any]) -> Session:
        """
        Create an account and its profile record.

        Args:
            data: email, password, full_name, phone, role

        Raises:
            AuthError: If the backend refuses the sign-up
        """
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> Session:
        """Sign in with email/password. Raises AuthError on bad credentials."""
        pass

    @abstractmethod
    async def logout(self) -> None:
        """End the current session. May raise AuthError."""
        pass

    # =========================================================================
    # Profiles
    # =========================================================================

    @abstractmethod
    async def get_profile(self, user_id: str) -> Profile:
        """Fetch a profile. Raises RecordNotFoundError if absent."""
        pass

    @abstractmethod
    async def create_profile(self, user_id: str, data: Dict[str, Any]) -> Profile:
        """Insert the profile row for a newly registered user."""
        pass

    @abstractmethod
    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> Profile:
        """Patch a profile and return the updated record."""
        pass

    # =========================================================================
    # Jobs
    # =========================================================================

    @abstractmethod
    async def list_jobs(self, filter: Optional[JobFilter] = None) -> List[Job]:
        """List jobs, newest first."""
        pass

    @abstractmethod
    async def get_job(self, job_id: str) -> Job:
        """Fetch one job. Raises RecordNotFoundError if absent."""
        pass

    @abstractmethod
    async def create_job(self, data: Dict[str, Any]) -> Job:
        """Insert a job. Raises RecordValidationError if rejected."""
        pass

    @abstractmethod
    async def update_job(self, job_id: str, updates: Dict[str, Any]) -> Job:
        """Patch a job and return the updated record."""
        pass

    # =========================================================================
    # Applications
    # =========================================================================

    @abstractmethod
    async def list_applications(
        self, filter: Optional[ApplicationFilter] = None
    ) -> List[Application]:
        """List applications, newest first."""
        pass

    @abstractmethod
    async def create_application(self, data: Dict[str, Any]) -> Application:
        """Insert an application. Raises RecordValidationError if rejected."""
        pass

    @abstractmethod
    async def update_application(
        self, application_id: str, updates: Dict[str, Any]
    ) -> Application:
        """Patch an application and return the updated record."""
        pass
